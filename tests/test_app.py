from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from table_order_service.app import create_app
from table_order_service.catalog import CatalogStore
from table_order_service.menu_generator import MenuGenerationError, MockMenuGenerator
from table_order_service.seed import seed_menu_items
from table_order_service.store import TableOrderStore


class FailingMenuGenerator:
    def generate_daily_special(self, ingredients):
        raise MenuGenerationError()


@pytest.fixture()
def store() -> TableOrderStore:
    return TableOrderStore(catalog=CatalogStore(seed_menu_items()))


@pytest.fixture()
def client(store) -> TestClient:
    return TestClient(create_app(store=store, menu_generator=MockMenuGenerator()))


def _add(client, table_id, product_id, **extra):
    return client.post(f"/tables/{table_id}/cart/lines", json={"productId": product_id, **extra})


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_cart_merges_and_checks_out(client):
    _add(client, "3", "prod-highball", quantity=2)
    _add(client, "3", "prod-highball")
    response = _add(client, "3", "prod-dashimaki", quantity=2)

    cart = response.json()
    assert response.status_code == 201
    assert [line["quantity"] for line in cart["lines"]] == [3, 2]
    assert cart["totalPrice"] == 3 * 500 + 2 * 580

    order = client.post("/tables/3/orders")
    assert order.status_code == 201
    body = order.json()
    assert body["status"] == "pending"
    assert body["tableId"] == "3"
    assert body["totalAmount"] == 2660
    assert client.get("/tables/3/cart").json()["lines"] == []


def test_empty_checkout_is_rejected(client, store):
    response = client.post("/tables/2/orders")

    assert response.status_code == 400
    assert store.orders.all() == []


def test_invalid_table_number(client):
    response = client.get("/tables/8/cart")

    assert response.status_code == 400
    assert "1〜7" in response.json()["detail"]


def test_shochu_needs_style(client):
    assert _add(client, "1", "prod-shochu-umi").status_code == 400

    cart = _add(client, "1", "prod-shochu-umi", style="ロック").json()
    assert cart["lines"][0]["customizations"] == ["割り方: ロック"]


def test_quantity_change_and_removal(client):
    line = _add(client, "4", "prod-beer-bottle", glasses=3).json()["lines"][0]
    assert line["customizations"] == ["グラス: 3個"]

    path = f"/tables/4/cart/lines/{line['key']}"
    assert client.patch(path, json={"delta": 2}).json()["lines"][0]["quantity"] == 3
    assert client.patch(path, json={"delta": -3}).json()["lines"] == []
    assert client.patch(path, json={"delta": 1}).status_code == 404


def test_sold_out_item_cannot_be_added(client):
    client.post("/menu/items/prod-edamame/sold-out")

    response = _add(client, "1", "prod-edamame")

    assert response.status_code == 409
    assert response.json()["detail"] == "売り切れです。"


def test_food_acceptance_and_course_mode_gate_food(client):
    client.put("/tables/5/mode", json={"mode": "course"})
    assert _add(client, "5", "prod-karaage").status_code == 409
    assert _add(client, "5", "prod-oolong").status_code == 201

    client.put("/settings/food-acceptance", json={"enabled": False})
    assert client.get("/settings").json() == {"foodAccepted": False}
    assert _add(client, "1", "prod-karaage").status_code == 409

    names = {item["id"] for item in client.get("/menu", params={"table_id": "1"}).json()}
    assert "prod-karaage" not in names
    assert "prod-oolong" in names


def test_kitchen_flow_and_sales(client):
    _add(client, "3", "prod-highball", quantity=2)
    _add(client, "3", "prod-dashimaki")
    first = client.post("/tables/3/orders").json()
    _add(client, "6", "prod-oolong")
    second = client.post("/tables/6/orders").json()

    queue = client.get("/kitchen/orders").json()
    assert [order["id"] for order in queue["pending"]] == [first["id"], second["id"]]

    assert client.post(f"/orders/{first['id']}/status", json={"status": "served"}).status_code == 200
    assert client.post(f"/orders/{first['id']}/status", json={"status": "paid"}).status_code == 200
    assert client.post(f"/orders/{first['id']}/status", json={"status": "pending"}).status_code == 409
    assert client.post("/orders/ord-missing/status", json={"status": "served"}).status_code == 404

    report = client.get("/sales/daily").json()
    assert report["totalCount"] == 1
    assert report["totalAmount"] == first["totalAmount"]
    assert report["days"][0]["orders"][0]["id"] == first["id"]


def test_table_history_only_shows_own_orders(client):
    _add(client, "1", "prod-oolong")
    client.post("/tables/1/orders")
    _add(client, "2", "prod-highball")
    client.post("/tables/2/orders")

    history = client.get("/tables/2/orders").json()

    assert [order["tableId"] for order in history["orders"]] == ["2"]
    assert history["historyTotal"] == 500


def test_menu_management(client):
    created = client.post("/menu/items", json={"name": "冷奴", "price": 380, "category": "フード"})
    assert created.status_code == 201
    item_id = created.json()["id"]

    assert client.patch(f"/menu/items/{item_id}", json={"price": "abc"}).status_code == 400
    updated = client.patch(f"/menu/items/{item_id}", json={"price": "420"})
    assert updated.json()["price"] == 420
    assert client.patch("/menu/items/missing", json={"price": 1}).status_code == 404

    assert client.delete(f"/menu/items/{item_id}").status_code == 204
    assert client.delete(f"/menu/items/{item_id}").status_code == 404


def test_menu_edit_accepts_whole_yen_float(client):
    response = client.patch("/menu/items/prod-edamame", json={"price": 600.0})

    assert response.status_code == 200
    assert response.json()["price"] == 600
    assert client.patch("/menu/items/prod-edamame", json={"price": 600.5}).status_code == 400


def test_menu_edit_with_blank_name_names_the_problem(client):
    response = client.patch("/menu/items/prod-edamame", json={"name": "  "})

    assert response.status_code == 400
    assert response.json()["detail"] == "商品名を入力してください。"
    names = {item["id"]: item["name"] for item in client.get("/menu").json()}
    assert names["prod-edamame"] == "枝豆"


def test_generated_special_is_added(client):
    response = client.post("/menu/specials", json={"ingredients": "柚子"})

    assert response.status_code == 201
    body = response.json()
    assert body["isSpecial"] is True
    assert body["isSoldOut"] is False
    assert body["category"] == "本日のおすすめ"


def test_generator_failure_is_reported(store):
    client = TestClient(create_app(store=store, menu_generator=FailingMenuGenerator()))
    before = len(store.catalog.list_items())

    response = client.post("/menu/specials", json={"ingredients": "柚子"})

    assert response.status_code == 502
    assert response.json()["detail"] == "メニュー生成に失敗しました"
    assert len(store.catalog.list_items()) == before


def test_sync_endpoints(client):
    exported = client.get("/sync/catalog").json()
    assert client.put("/sync/catalog", json=exported[:2]).json() == {"accepted": True, "count": 2}
    assert client.put("/sync/catalog", json={"not": "a list"}).json() == {"accepted": False, "count": 2}
    assert client.put("/sync/orders", json=[]).json() == {"accepted": True, "count": 0}


def test_grouped_menus(client):
    drinks = client.get("/menu/drinks").json()
    assert [section["key"] for section in drinks] == ["alcohol", "soft"]

    food = client.get("/menu/food").json()
    assert {group["subCategory"] for group in food} >= {"前菜", "その他"}
