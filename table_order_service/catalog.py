from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import FoodSubcategory, MenuItem, MenuItemDraft, ProductCategory

logger = logging.getLogger(__name__)

SERVING_STYLE_LABEL = "割り方"
SERVING_STYLES: Tuple[str, ...] = ("ソーダ割り", "水割り", "お湯割り", "ウーロン割り", "ロック", "ストレート")
GLASS_LABEL = "グラス"

DEFAULT_IMAGE_URL = (
    "https://images.unsplash.com/photo-1467003909585-2f8a72700288?auto=format&fit=crop&w=800&q=80"
)

EDITABLE_FIELDS = frozenset(
    {"name", "price", "category", "sub_category", "description", "image_url", "sold_out", "special"}
)


@dataclass(frozen=True)
class DrinkGroup:
    key: str
    label: str
    category: ProductCategory
    keywords: Tuple[str, ...] = ()

    def matches(self, item: MenuItem) -> bool:
        if item.category != self.category:
            return False
        if not self.keywords:
            return True
        return any(keyword in item.name for keyword in self.keywords)


DRINK_GROUPS: Tuple[DrinkGroup, ...] = (
    DrinkGroup("beer", "ビール", ProductCategory.DRINK_ALCOHOL, ("ビール",)),
    DrinkGroup("highball", "ハイボール", ProductCategory.DRINK_ALCOHOL, ("ハイボール",)),
    DrinkGroup("wine", "ワイン", ProductCategory.DRINK_ALCOHOL, ("ワイン", "利きワイン")),
    DrinkGroup("sparkling", "スパークリングワイン", ProductCategory.DRINK_ALCOHOL, ("スマイルヌブリナ",)),
    DrinkGroup("sangria", "サングリア", ProductCategory.DRINK_ALCOHOL, ("サングリア",)),
    DrinkGroup("sour", "サワー", ProductCategory.DRINK_ALCOHOL, ("サワー",)),
    DrinkGroup("shochu", "焼酎", ProductCategory.DRINK_ALCOHOL, ("海", "蔵の師魂", "つくし")),
    DrinkGroup("sake", "日本酒", ProductCategory.DRINK_ALCOHOL, ("龍力",)),
    DrinkGroup("cocktail", "カクテル", ProductCategory.DRINK_ALCOHOL, ("カシス", "ライチ")),
    DrinkGroup("liqueur", "リキュール", ProductCategory.DRINK_ALCOHOL, ("梅酒", "お酒")),
    DrinkGroup("soft", "ソフトドリンク", ProductCategory.DRINK_SOFT),
)


@dataclass(frozen=True)
class DrinkRules:
    """Name matching rules that decide which drinks need extra input when ordered."""

    shochu_keywords: Tuple[str, ...] = ("海", "蔵の師魂", "つくし")
    bottle_beer_keywords: Tuple[str, ...] = ("瓶ビール",)
    serving_styles: Tuple[str, ...] = SERVING_STYLES
    default_style: str = "ソーダ割り"

    def requires_serving_style(self, item: MenuItem) -> bool:
        return item.category == ProductCategory.DRINK_ALCOHOL and any(
            keyword in item.name for keyword in self.shochu_keywords
        )

    def is_bottle_beer(self, item: MenuItem) -> bool:
        return item.category == ProductCategory.DRINK_ALCOHOL and any(
            keyword in item.name for keyword in self.bottle_beer_keywords
        )


@dataclass
class DrinkSection:
    key: str
    label: str
    groups: List[Tuple[DrinkGroup, List[MenuItem]]] = field(default_factory=list)

    @property
    def item_count(self) -> int:
        return sum(len(items) for _, items in self.groups)


class CatalogStore:
    """In-memory owner of the sellable menu items."""

    def __init__(self, items: Iterable[MenuItem] = (), rules: DrinkRules | None = None):
        self._items: List[MenuItem] = list(items)
        self.rules = rules or DrinkRules()

    def list_items(self) -> List[MenuItem]:
        return list(self._items)

    def get(self, item_id: str) -> MenuItem | None:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def add_item(self, draft: MenuItemDraft) -> MenuItem:
        price = coerce_price(draft.price)
        if price is None:
            raise ValueError(f"Invalid price for menu item {draft.name!r}: {draft.price!r}")
        item = MenuItem(
            id=f"prod-{uuid.uuid4().hex}",
            name=draft.name.strip(),
            price=price,
            category=ProductCategory(draft.category),
            image_url=draft.image_url or DEFAULT_IMAGE_URL,
            description=(draft.description or "").strip() or None,
            sub_category=FoodSubcategory(draft.sub_category) if draft.sub_category else None,
            sold_out=False,
            special=draft.special,
        )
        self._items.insert(0, item)
        logger.info("Added menu item id=%s name=%s price=%d", item.id, item.name, item.price)
        return item

    def update_item(self, item_id: str, fields: Dict[str, object]) -> MenuItem | None:
        index = self._index_of(item_id)
        if index is None:
            return None

        changes = {key: value for key, value in fields.items() if key in EDITABLE_FIELDS}
        if "price" in changes:
            price = coerce_price(changes["price"])
            if price is None:
                logger.info("Rejected price update for item=%s: %r", item_id, changes["price"])
                return None
            changes["price"] = price
        if "name" in changes:
            name = str(changes["name"] or "").strip()
            if not name:
                return None
            changes["name"] = name
        try:
            if "category" in changes:
                changes["category"] = ProductCategory(changes["category"])
            if changes.get("sub_category") is not None:
                changes["sub_category"] = FoodSubcategory(changes["sub_category"])
        except ValueError:
            logger.info("Rejected category update for item=%s: %r", item_id, changes)
            return None

        updated = replace(self._items[index], **changes)
        self._items[index] = updated
        return updated

    def delete_item(self, item_id: str) -> bool:
        index = self._index_of(item_id)
        if index is None:
            return False
        removed = self._items.pop(index)
        logger.info("Deleted menu item id=%s name=%s", removed.id, removed.name)
        return True

    def toggle_sold_out(self, item_id: str) -> MenuItem | None:
        index = self._index_of(item_id)
        if index is None:
            return None
        item = self._items[index]
        updated = replace(item, sold_out=not item.sold_out)
        self._items[index] = updated
        return updated

    def replace_all(self, items: Sequence[MenuItem]) -> None:
        self._items = list(items)

    def grouped_drinks(self) -> List[DrinkSection]:
        alcohol = DrinkSection("alcohol", "アルコール")
        soft = DrinkSection("soft", "ソフトドリンク")
        for group in DRINK_GROUPS:
            items = [item for item in self._items if group.matches(item)]
            if not items:
                continue
            section = soft if group.category == ProductCategory.DRINK_SOFT else alcohol
            section.groups.append((group, items))
        return [section for section in (alcohol, soft) if section.groups]

    def grouped_food(self) -> Dict[FoodSubcategory, List[MenuItem]]:
        buckets: Dict[FoodSubcategory, List[MenuItem]] = {}
        for item in self._items:
            if item.category != ProductCategory.FOOD:
                continue
            buckets.setdefault(item.sub_category or FoodSubcategory.OTHER, []).append(item)
        return buckets

    def _index_of(self, item_id: str) -> Optional[int]:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return None


def coerce_price(value: object) -> int | None:
    """Return a non-negative integer price, or None when the value is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float):
        if not value.is_integer() or value < 0:
            return None
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not (text.isascii() and text.isdigit()):
            return None
        return int(text)
    return None
