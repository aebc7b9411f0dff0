from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, List

from pydantic import TypeAdapter, ValidationError

from . import schemas
from .cart import Cart
from .catalog import CatalogStore, DrinkRules
from .models import MenuItem, Order, OrderStatus
from .orders import OrderBook
from .policy import OrderingPolicy
from .repository import CATALOG_KEY, ORDERS_KEY, SnapshotRepository
from .seed import seed_menu_items

logger = logging.getLogger(__name__)

_CATALOG_ADAPTER = TypeAdapter(List[schemas.MenuItem])
_ORDERS_ADAPTER = TypeAdapter(List[schemas.Order])


class TableOrderStore:
    """Single owner of catalog, orders, policy and the per-table carts.

    External snapshots replace a whole collection or nothing at all. Derived
    views (kitchen queues, sales days) are always computed from the current
    collections, so accepting a snapshot needs no further bookkeeping.
    """

    def __init__(
        self,
        catalog: CatalogStore | None = None,
        orders: OrderBook | None = None,
        policy: OrderingPolicy | None = None,
        repository: SnapshotRepository | None = None,
    ):
        self.catalog = catalog or CatalogStore(rules=DrinkRules())
        self.orders = orders or OrderBook()
        self.policy = policy or OrderingPolicy()
        self._repository = repository
        self._carts: Dict[str, Cart] = {}

    def cart_for(self, table_id: str) -> Cart:
        cart = self._carts.get(table_id)
        if cart is None:
            cart = self._carts[table_id] = Cart(table_id)
        return cart

    def checkout(self, table_id: str) -> Order | None:
        cart = self.cart_for(table_id)
        previous_orders = self.orders.all()
        previous_lines = cart.lines
        order = self.orders.submit(cart, table_id)
        if order is None:
            return None
        try:
            self.persist_orders()
        except Exception:
            self.orders.replace_all(previous_orders)
            cart.restore(previous_lines)
            logger.warning("Checkout for table=%s rolled back: orders could not be stored", table_id)
            raise
        return order

    def advance_order(self, order_id: str, new_status: OrderStatus) -> Order | None:
        """Move an order along its lifecycle and store the result.

        Raises InvalidStatusTransition for illegal moves. When storing fails the
        order keeps its previous status and the storage error propagates.
        """
        previous = self.orders.get(order_id)
        updated = self.orders.advance(order_id, new_status)
        if updated is None or updated is previous:
            return updated
        try:
            self.persist_orders()
        except Exception:
            self.orders.replace_all(
                [previous if order is updated else order for order in self.orders.all()]
            )
            logger.warning("Status change for order=%s rolled back: orders could not be stored", order_id)
            raise
        return updated

    def apply_catalog_snapshot(self, payload: Any) -> bool:
        items = _parse_catalog(payload)
        if items is None:
            return False
        self.catalog.replace_all(items)
        logger.info("Accepted catalog snapshot with %d items", len(items))
        return True

    def apply_orders_snapshot(self, payload: Any) -> bool:
        orders = _parse_orders(payload)
        if orders is None:
            return False
        self.orders.replace_all(orders)
        logger.info("Accepted orders snapshot with %d orders", len(orders))
        return True

    def catalog_payload(self) -> list:
        return [
            schemas.MenuItem.from_domain(item).model_dump(mode="json", by_alias=True)
            for item in self.catalog.list_items()
        ]

    def orders_payload(self) -> list:
        return [
            schemas.Order.from_domain(order).model_dump(mode="json", by_alias=True)
            for order in self.orders.all()
        ]

    def persist_catalog(self) -> None:
        if self._repository is not None:
            self._repository.save(CATALOG_KEY, self.catalog_payload())

    def persist_orders(self) -> None:
        if self._repository is not None:
            self._repository.save(ORDERS_KEY, self.orders_payload())

    def persist(self) -> None:
        self.persist_catalog()
        self.persist_orders()

    def restore(self) -> None:
        """Load stored collections, falling back to the seed menu and no orders."""
        catalog_record = self._repository.load(CATALOG_KEY) if self._repository else None
        if catalog_record is None or not self.apply_catalog_snapshot(catalog_record.payload):
            self.catalog.replace_all(seed_menu_items())
            logger.info("Catalog initialised from seed menu")

        orders_record = self._repository.load(ORDERS_KEY) if self._repository else None
        if orders_record is not None:
            self.apply_orders_snapshot(orders_record.payload)


def _parse_catalog(payload: Any) -> List[MenuItem] | None:
    try:
        parsed = _CATALOG_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        logger.warning("Discarding malformed catalog snapshot: %s", exc.errors()[:3])
        return None
    return [entry.to_domain() for entry in parsed]


def _parse_orders(payload: Any) -> List[Order] | None:
    try:
        parsed = _ORDERS_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        logger.warning("Discarding malformed orders snapshot: %s", exc.errors()[:3])
        return None
    counts = Counter(entry.id for entry in parsed)
    duplicates = sorted(order_id for order_id, count in counts.items() if count > 1)
    if duplicates:
        logger.warning("Discarding orders snapshot with duplicate ids: %s", duplicates[:3])
        return None
    try:
        return [entry.to_domain(fallback_sequence=index) for index, entry in enumerate(parsed, start=1)]
    except (ValueError, OverflowError, OSError) as exc:
        # timestamps outside the platform's datetime range
        logger.warning("Discarding orders snapshot with unusable timestamps: %s", exc)
        return None
