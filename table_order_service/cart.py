from __future__ import annotations

from typing import List, Sequence, Union

from .catalog import GLASS_LABEL, SERVING_STYLE_LABEL, DrinkRules
from .models import CartLine, LineKey, MenuItem


class InvalidQuantityError(ValueError):
    """Raised when a cart addition carries a non-positive quantity."""


class CustomizationError(ValueError):
    """Raised when a drink is missing a required customization."""


LineRef = Union[LineKey, str]


class Cart:
    """Quantity-tracked lines of one table's in-progress order."""

    def __init__(self, table_id: str | None = None):
        self.table_id = table_id
        self._lines: List[CartLine] = []

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def add(self, item: MenuItem, customizations: Sequence[str] = (), quantity: int = 1) -> CartLine:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidQuantityError(f"Quantity must be a positive integer, got {quantity!r}")

        key = LineKey.build(item.id, customizations)
        existing = self._find(key)
        if existing is not None:
            existing.quantity += quantity
            return existing

        line = CartLine(
            key=key,
            menu_item_id=item.id,
            name=item.name,
            price=item.price,
            quantity=quantity,
            customizations=list(customizations),
        )
        self._lines.append(line)
        return line

    def update_quantity(self, ref: LineRef, delta: int) -> CartLine | None:
        line = self._find(ref)
        if line is None:
            return None
        line.quantity = max(0, line.quantity + delta)
        if line.quantity == 0:
            self._lines.remove(line)
            return None
        return line

    def remove_line(self, ref: LineRef) -> None:
        line = self._find(ref)
        if line is not None:
            self._lines.remove(line)

    def get_line(self, ref: LineRef) -> CartLine | None:
        return self._find(ref)

    def total_price(self) -> int:
        return sum(line.price * line.quantity for line in self._lines)

    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines)

    def clear(self) -> None:
        self._lines = []

    def restore(self, lines: Sequence[CartLine]) -> None:
        self._lines = list(lines)

    def _find(self, ref: LineRef) -> CartLine | None:
        for line in self._lines:
            if isinstance(ref, LineKey):
                if line.key == ref:
                    return line
            elif line.key.token == ref:
                return line
        return None


def build_customizations(
    item: MenuItem,
    rules: DrinkRules,
    style: str | None = None,
    glasses: int = 0,
) -> List[str]:
    """Customization strings an item must carry before it can enter a cart.

    Shochu needs one serving style out of ``rules.serving_styles``. Bottled
    beer records how many extra glasses to bring; the count is informational
    and never priced. Everything else is ordered plain.
    """
    if rules.requires_serving_style(item):
        if style not in rules.serving_styles:
            raise CustomizationError(f"{item.name}: 割り方を選択してください。")
        return [f"{SERVING_STYLE_LABEL}: {style}"]
    if rules.is_bottle_beer(item):
        if glasses < 0:
            raise CustomizationError("グラスの数は0以上で指定してください。")
        return [f"{GLASS_LABEL}: {glasses}個"]
    return []
