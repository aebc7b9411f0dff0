from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

from .cart import Cart
from .models import Order, OrderLine, OrderStatus

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.SERVED, OrderStatus.CANCELLED}),
    OrderStatus.SERVED: frozenset({OrderStatus.PAID, OrderStatus.CANCELLED}),
    OrderStatus.PAID: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


class InvalidStatusTransition(Exception):
    """Raised when an order is moved against its lifecycle."""

    def __init__(self, order_id: str, current: OrderStatus, requested: OrderStatus):
        super().__init__(f"Order {order_id} cannot move from {current.value} to {requested.value}")
        self.order_id = order_id
        self.current = current
        self.requested = requested


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OrderBook:
    """Owns the order set: checkout, status changes and kitchen queries."""

    def __init__(self, orders: Iterable[Order] = (), clock: Callable[[], datetime] = _utc_now):
        self._orders: List[Order] = []
        self._clock = clock
        self._last_sequence = 0
        self.replace_all(list(orders))

    def submit(self, cart: Cart, table_id: str) -> Order | None:
        if cart.is_empty:
            return None

        lines = tuple(
            OrderLine(
                menu_item_id=line.menu_item_id,
                name=line.name,
                price=line.price,
                quantity=line.quantity,
                customizations=tuple(line.customizations),
            )
            for line in cart.lines
        )
        self._last_sequence += 1
        sequence = self._last_sequence
        timestamp = self._clock()
        order = Order(
            id=f"ord-{int(timestamp.timestamp() * 1000)}-{sequence}",
            table_id=table_id,
            lines=lines,
            status=OrderStatus.PENDING,
            total_amount=sum(line.subtotal for line in lines),
            timestamp=timestamp,
            sequence=sequence,
        )
        self._orders.append(order)
        cart.clear()
        logger.info(
            "Order submitted id=%s table=%s lines=%d total=%d",
            order.id,
            table_id,
            len(lines),
            order.total_amount,
        )
        return order

    def advance(self, order_id: str, new_status: OrderStatus) -> Order | None:
        index = self._index_of(order_id)
        if index is None:
            logger.debug("Ignoring status change for unknown order=%s", order_id)
            return None

        order = self._orders[index]
        new_status = OrderStatus(new_status)
        if order.status == new_status:
            return order
        if new_status not in ALLOWED_TRANSITIONS[order.status]:
            raise InvalidStatusTransition(order.id, order.status, new_status)

        updated = replace(order, status=new_status)
        self._orders[index] = updated
        logger.info("Order %s moved %s -> %s", order.id, order.status.value, new_status.value)
        return updated

    def get(self, order_id: str) -> Order | None:
        index = self._index_of(order_id)
        return None if index is None else self._orders[index]

    def all(self) -> List[Order]:
        return list(self._orders)

    def pending_orders(self) -> List[Order]:
        return sorted(
            (order for order in self._orders if order.status == OrderStatus.PENDING),
            key=lambda order: order.sort_key,
        )

    def served_orders(self) -> List[Order]:
        return sorted(
            (order for order in self._orders if order.status == OrderStatus.SERVED),
            key=lambda order: order.sort_key,
            reverse=True,
        )

    def for_table(self, table_id: str) -> List[Order]:
        return [order for order in self._orders if order.table_id == table_id]

    def table_history_total(self, table_id: str) -> int:
        return sum(
            order.total_amount
            for order in self.for_table(table_id)
            if order.status != OrderStatus.CANCELLED
        )

    def replace_all(self, orders: List[Order]) -> None:
        self._orders = list(orders)
        highest = max((order.sequence for order in self._orders), default=0)
        self._last_sequence = max(self._last_sequence, highest)

    def _index_of(self, order_id: str) -> Optional[int]:
        for index, order in enumerate(self._orders):
            if order.id == order_id:
                return index
        return None
