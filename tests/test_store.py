from __future__ import annotations

import logging
import sqlite3

import pytest

from table_order_service.cart import Cart
from table_order_service.database import apply_schema
from table_order_service.models import MenuItem, OrderStatus, ProductCategory
from table_order_service.repository import CATALOG_KEY, ORDERS_KEY, SnapshotRepository
from table_order_service.seed import SEED_MENU
from table_order_service.store import TableOrderStore


@pytest.fixture()
def repo(tmp_path):
    db_path = tmp_path / "table_orders.db"

    def connection_factory():
        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row
        return conn

    with connection_factory() as conn:
        apply_schema(conn)

    return SnapshotRepository(connection_factory=connection_factory)


CLIENT_CATALOG = [
    {
        "id": "prod-1",
        "name": "生ビール",
        "price": 600,
        "category": "アルコール",
        "imageUrl": "https://example.com/beer.jpg",
        "isSoldOut": False,
    },
    {
        "id": "prod-2",
        "name": "枝豆",
        "price": 400,
        "category": "フード",
        "subCategory": "前菜",
        "imageUrl": "",
        "isSoldOut": True,
        "description": "塩ゆで",
    },
]

CLIENT_ORDERS = [
    {
        "id": "ord-1760659200000",
        "tableId": "3",
        "items": [{"productId": "prod-1", "name": "生ビール", "price": 600, "quantity": 2}],
        "status": "served",
        "totalAmount": 1200,
        "timestamp": 1760659200000,
    }
]


def test_accepts_wholesale_catalog_snapshot():
    store = TableOrderStore()

    assert store.apply_catalog_snapshot(CLIENT_CATALOG) is True

    items = store.catalog.list_items()
    assert [item.id for item in items] == ["prod-1", "prod-2"]
    assert items[1].sold_out is True
    assert items[1].sub_category.value == "前菜"


@pytest.mark.parametrize(
    "payload",
    [
        {"id": "prod-1"},
        "not a list",
        None,
        [{"id": "prod-1", "name": "生ビール", "price": -5, "category": "アルコール"}],
        [{"id": "prod-1", "name": "生ビール", "price": 600, "category": "unknown"}],
    ],
)
def test_malformed_catalog_snapshot_keeps_previous_state(payload, caplog):
    store = TableOrderStore()
    store.apply_catalog_snapshot(CLIENT_CATALOG)
    before = store.catalog.list_items()

    with caplog.at_level(logging.WARNING):
        assert store.apply_catalog_snapshot(payload) is False

    assert store.catalog.list_items() == before
    assert "Discarding malformed catalog snapshot" in caplog.text


def test_orders_snapshot_replaces_set_and_recomputes_views():
    store = TableOrderStore()
    cart = Cart("1")
    cart.add(MenuItem(id="x", name="烏龍茶", price=350, category=ProductCategory.DRINK_SOFT))
    store.orders.submit(cart, "1")

    assert store.apply_orders_snapshot(CLIENT_ORDERS) is True

    assert store.orders.pending_orders() == []
    (served,) = store.orders.served_orders()
    assert served.id == "ord-1760659200000"
    assert served.total_amount == 1200
    assert served.lines[0].menu_item_id == "prod-1"


@pytest.mark.parametrize(
    "payload",
    [
        [dict(CLIENT_ORDERS[0], status="eaten")],
        [dict(CLIENT_ORDERS[0], timestamp=10**20)],
        [dict(CLIENT_ORDERS[0], totalAmount=999999)],
        [dict(CLIENT_ORDERS[0], totalAmount=-5, items=[])],
        [dict(CLIENT_ORDERS[0], totalAmount=0, items=[])],
        [dict(CLIENT_ORDERS[0], id="o1"), dict(CLIENT_ORDERS[0], id="o1", status="pending")],
    ],
)
def test_malformed_orders_snapshot_is_discarded(payload, caplog):
    store = TableOrderStore()
    store.apply_orders_snapshot(CLIENT_ORDERS)

    with caplog.at_level(logging.WARNING):
        assert store.apply_orders_snapshot(payload) is False

    assert [order.id for order in store.orders.all()] == ["ord-1760659200000"]
    assert store.orders.all()[0].total_amount == 1200
    assert "Discarding" in caplog.text


class BrokenRepository:
    def save(self, key, payload):
        raise RuntimeError("disk full")

    def load(self, key):
        return None


def test_failed_checkout_keeps_cart_and_orders():
    store = TableOrderStore(repository=BrokenRepository())
    store.apply_catalog_snapshot(CLIENT_CATALOG)
    store.cart_for("3").add(store.catalog.get("prod-1"), quantity=2)

    with pytest.raises(RuntimeError):
        store.checkout("3")

    assert store.orders.all() == []
    (line,) = store.cart_for("3").lines
    assert line.quantity == 2


def test_failed_status_change_keeps_previous_status():
    store = TableOrderStore(repository=BrokenRepository())
    store.apply_orders_snapshot(CLIENT_ORDERS)

    with pytest.raises(RuntimeError):
        store.advance_order("ord-1760659200000", OrderStatus.PAID)

    assert store.orders.get("ord-1760659200000").status == OrderStatus.SERVED


def test_advance_order_persists_new_status(repo):
    store = TableOrderStore(repository=repo)
    store.apply_orders_snapshot(CLIENT_ORDERS)

    store.advance_order("ord-1760659200000", OrderStatus.PAID)

    assert repo.load(ORDERS_KEY).payload[0]["status"] == "paid"


def test_checkout_clears_table_cart_and_persists(repo):
    store = TableOrderStore(repository=repo)
    store.apply_catalog_snapshot(CLIENT_CATALOG)
    beer = store.catalog.get("prod-1")
    store.cart_for("3").add(beer, quantity=2)

    order = store.checkout("3")

    assert order.total_amount == 1200
    assert store.cart_for("3").is_empty
    saved = repo.load(ORDERS_KEY)
    assert saved.payload[0]["id"] == order.id
    assert saved.payload[0]["tableId"] == "3"


def test_checkout_of_empty_cart_writes_nothing(repo):
    store = TableOrderStore(repository=repo)

    assert store.checkout("2") is None
    assert repo.load(ORDERS_KEY) is None


def test_restore_round_trips_through_repository(repo):
    first = TableOrderStore(repository=repo)
    first.apply_catalog_snapshot(CLIENT_CATALOG)
    first.apply_orders_snapshot(CLIENT_ORDERS)
    first.persist()

    second = TableOrderStore(repository=repo)
    second.restore()

    assert [item.id for item in second.catalog.list_items()] == ["prod-1", "prod-2"]
    assert second.orders.get("ord-1760659200000").status == OrderStatus.SERVED


def test_restore_without_snapshots_uses_seed_menu(repo):
    store = TableOrderStore(repository=repo)
    store.restore()

    assert len(store.catalog.list_items()) == len(SEED_MENU)
    assert store.orders.all() == []


def test_restore_with_corrupt_catalog_falls_back_to_seed(repo):
    repo.save(CATALOG_KEY, {"broken": True})

    store = TableOrderStore(repository=repo)
    store.restore()

    assert len(store.catalog.list_items()) == len(SEED_MENU)


def test_repository_upserts_by_key(repo):
    repo.save(CATALOG_KEY, [1])
    repo.save(CATALOG_KEY, [1, 2])

    assert repo.load(CATALOG_KEY).payload == [1, 2]
    assert repo.load("unknown") is None
