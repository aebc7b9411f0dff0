from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class ProductCategory(str, Enum):
    DRINK_ALCOHOL = "アルコール"
    DRINK_SOFT = "ソフトドリンク"
    FOOD = "フード"
    RECOMMEND = "本日のおすすめ"


class FoodSubcategory(str, Enum):
    APPETIZER = "前菜"
    MAIN = "メイン"
    SIDE = "一品"
    SALAD = "サラダ"
    OTHER = "その他"


class OrderStatus(str, Enum):
    PENDING = "pending"
    SERVED = "served"
    PAID = "paid"
    CANCELLED = "cancelled"


class TableOrderMode(str, Enum):
    A_LA_CARTE = "a_la_carte"
    COURSE = "course"


FOOD_CATEGORIES = frozenset({ProductCategory.FOOD, ProductCategory.RECOMMEND})
DRINK_CATEGORIES = frozenset({ProductCategory.DRINK_ALCOHOL, ProductCategory.DRINK_SOFT})


@dataclass
class MenuItemDraft:
    """A menu item that has not been assigned an identity yet."""

    name: str
    price: int
    category: ProductCategory
    image_url: str = ""
    description: Optional[str] = None
    sub_category: Optional[FoodSubcategory] = None
    special: bool = False


@dataclass
class MenuItem:
    id: str
    name: str
    price: int
    category: ProductCategory
    image_url: str = ""
    description: Optional[str] = None
    sub_category: Optional[FoodSubcategory] = None
    sold_out: bool = False
    special: bool = False


@dataclass(frozen=True)
class LineKey:
    """Identity of a cart line: the item plus its customizations, order-independent."""

    menu_item_id: str
    customizations: Tuple[str, ...] = ()

    @classmethod
    def build(cls, menu_item_id: str, customizations=()) -> "LineKey":
        return cls(menu_item_id, tuple(sorted(customizations)))

    @property
    def plain(self) -> bool:
        return not self.customizations

    @property
    def token(self) -> str:
        # URL-safe handle for HTTP callers; lookups still compare the structural key.
        if self.plain:
            return f"{self.menu_item_id}~plain"
        encoded = json.dumps(list(self.customizations), ensure_ascii=False)
        digest = hashlib.sha1(encoded.encode("utf-8")).hexdigest()[:12]
        return f"{self.menu_item_id}~{digest}"


@dataclass
class CartLine:
    key: LineKey
    menu_item_id: str
    name: str
    price: int
    quantity: int
    customizations: list[str] = field(default_factory=list)

    @property
    def subtotal(self) -> int:
        return self.price * self.quantity


@dataclass(frozen=True)
class OrderLine:
    menu_item_id: str
    name: str
    price: int
    quantity: int
    customizations: Tuple[str, ...] = ()

    @property
    def subtotal(self) -> int:
        return self.price * self.quantity


@dataclass(frozen=True)
class Order:
    id: str
    table_id: str
    lines: Tuple[OrderLine, ...]
    status: OrderStatus
    total_amount: int
    timestamp: datetime
    sequence: int = 0

    @property
    def sort_key(self) -> tuple:
        return (self.timestamp, self.sequence)
