from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from .database import get_connection, placeholder

CATALOG_KEY = "catalog"
ORDERS_KEY = "orders"


@dataclass(frozen=True)
class SnapshotRecord:
    key: str
    payload: Any
    updated_at: str


class SnapshotRepository:
    """Stores each collection as one JSON document, replaced wholesale on save."""

    def __init__(self, connection_factory=get_connection):
        self._connection_factory = connection_factory

    @contextmanager
    def _connection(self):
        conn = self._connection_factory()
        try:
            yield conn
        finally:
            conn.close()

    def save(self, key: str, payload: Any) -> SnapshotRecord:
        now = datetime.now(timezone.utc).isoformat()
        payload_json = json.dumps(payload, ensure_ascii=False)
        with self._connection() as conn:
            ph = placeholder(conn)
            conn.execute(
                f"""
                INSERT INTO snapshots (key, payload_json, updated_at)
                VALUES ({ph}, {ph}, {ph})
                ON CONFLICT(key) DO UPDATE SET
                    payload_json=excluded.payload_json,
                    updated_at=excluded.updated_at;
                """,
                (key, payload_json, now),
            )
            conn.commit()
        return SnapshotRecord(key=key, payload=payload, updated_at=now)

    def load(self, key: str) -> Optional[SnapshotRecord]:
        """Return the stored snapshot, or None when absent.

        A row whose JSON cannot be decoded is returned with ``payload=None``
        so the caller can treat it like any other malformed snapshot.
        """
        with self._connection() as conn:
            ph = placeholder(conn)
            row = conn.execute(
                f"SELECT key, payload_json, updated_at FROM snapshots WHERE key = {ph};",
                (key,),
            ).fetchone()
        if row is None:
            return None
        try:
            payload = json.loads(row["payload_json"])
        except ValueError:
            payload = None
        return SnapshotRecord(key=row["key"], payload=payload, updated_at=row["updated_at"])
