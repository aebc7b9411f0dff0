from __future__ import annotations

import logging
import os
import sqlite3
import time
from pathlib import Path
from typing import Iterable

import psycopg
from psycopg.rows import dict_row

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS snapshots (
    key TEXT PRIMARY KEY,
    payload_json TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


def _build_database_url() -> str:
    if url := os.environ.get("DATABASE_URL"):
        return url
    host = os.environ.get("DB_HOST")
    if not host:
        return "sqlite:///data/table_orders.db"
    user = os.environ.get("DB_USER", "todoroki")
    password = os.environ.get("DB_PASSWORD", "todoroki")
    port = os.environ.get("DB_PORT", "5432")
    name = os.environ.get("DB_NAME", "table_orders")
    return f"postgresql://{user}:{password}@{host}:{port}/{name}"


DATABASE_URL = _build_database_url()


def get_connection():
    """Return a connection against Postgres or, for sqlite:// URLs, a local file.

    Postgres may still be starting when the service boots, so failed attempts
    are retried DB_CONNECT_MAX_RETRIES times with DB_CONNECT_RETRY_DELAY
    seconds in between.
    """
    attempts = max(1, int(os.environ.get("DB_CONNECT_MAX_RETRIES", "30")))
    delay = float(os.environ.get("DB_CONNECT_RETRY_DELAY", "2"))
    for attempt in range(1, attempts + 1):
        try:
            return _connect_once()
        except Exception as exc:  # pragma: no cover
            if attempt == attempts:
                logger.error("Giving up on snapshot database after %d attempts", attempts)
                raise
            logger.warning("Snapshot database not reachable (attempt %d/%d): %s", attempt, attempts, exc)
            time.sleep(delay)


def _connect_once():
    if DATABASE_URL.startswith("sqlite://"):
        path = DATABASE_URL.replace("sqlite:///", "")
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(path)
        conn.row_factory = sqlite3.Row
        return conn

    return psycopg.connect(DATABASE_URL, autocommit=True, row_factory=dict_row)


def init_db() -> None:
    conn = get_connection()
    try:
        apply_schema(conn)
    finally:
        conn.close()


def apply_schema(conn) -> None:
    if hasattr(conn, "executescript"):
        conn.executescript(SCHEMA_SQL)
        conn.commit()
        return

    with conn.cursor() as cur:
        for statement in _split_statements(SCHEMA_SQL):
            cur.execute(statement)
    conn.commit()


def _split_statements(sql_blob: str) -> Iterable[str]:
    for statement in sql_blob.split(";"):
        stmt = statement.strip()
        if stmt:
            yield stmt


def placeholder(conn) -> str:
    module = conn.__class__.__module__
    return "%s" if "psycopg" in module else "?"
