from __future__ import annotations

from typing import Dict, List

from .catalog import CatalogStore
from .models import FOOD_CATEGORIES, MenuItem, TableOrderMode

SOLD_OUT_MESSAGE = "売り切れです。"
FOOD_STOPPED_MESSAGE = "ただいまフードのご注文を停止しております。"
COURSE_MESSAGE = "コースご利用中のテーブルではフードを個別にご注文いただけません。"


class OrderingPolicy:
    """Per-table ordering mode plus the kitchen-wide food acceptance switch.

    The policy only stores and reports; callers decide whether to block an
    addition by consulting :meth:`admission_error` before touching the cart.
    """

    def __init__(self, food_accepted: bool = True):
        self._modes: Dict[str, TableOrderMode] = {}
        self._food_accepted = food_accepted

    def set_table_mode(self, table_id: str, mode: TableOrderMode) -> None:
        self._modes[table_id] = TableOrderMode(mode)

    def get_table_mode(self, table_id: str) -> TableOrderMode:
        return self._modes.get(table_id, TableOrderMode.A_LA_CARTE)

    def set_food_acceptance(self, enabled: bool) -> None:
        self._food_accepted = bool(enabled)

    def is_food_accepted(self) -> bool:
        return self._food_accepted

    def admission_error(self, item: MenuItem, table_id: str) -> str | None:
        if item.sold_out:
            return SOLD_OUT_MESSAGE
        if item.category in FOOD_CATEGORIES:
            if not self._food_accepted:
                return FOOD_STOPPED_MESSAGE
            # course tables get their food from the course itself; only drinks are ordered
            if self.get_table_mode(table_id) == TableOrderMode.COURSE:
                return COURSE_MESSAGE
        return None

    def orderable_items(self, catalog: CatalogStore, table_id: str) -> List[MenuItem]:
        return [item for item in catalog.list_items() if self.admission_error(item, table_id) is None]
