from __future__ import annotations

import logging
import os
from typing import Any, List, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from . import schemas
from .cart import CustomizationError, InvalidQuantityError, build_customizations
from .database import init_db
from .menu_generator import GeminiMenuGenerator, MenuGenerationError, MenuGenerator, MockMenuGenerator
from .models import ProductCategory
from .orders import InvalidStatusTransition
from .repository import SnapshotRepository
from .sales import daily_summaries, overall_totals
from .store import TableOrderStore

logger = logging.getLogger(__name__)


def build_store() -> TableOrderStore:
    mode = os.environ.get("PERSISTENCE_MODE", "database").lower()
    if mode == "memory":
        store = TableOrderStore()
    else:
        init_db()
        store = TableOrderStore(repository=SnapshotRepository())
    store.restore()
    return store


def build_menu_generator() -> MenuGenerator:
    api_key = os.environ.get("GEMINI_API_KEY")
    if not api_key:
        logger.warning("GEMINI_API_KEY is not set; daily specials will use mock data.")
        return MockMenuGenerator()
    return GeminiMenuGenerator(
        api_key,
        model=os.environ.get("GEMINI_MODEL", "gemini-2.5-flash"),
        base_url=os.environ.get("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"),
    )


def table_session(table_id: str) -> str:
    """Accept only the table numbers printed on the QR codes (1..TABLE_COUNT)."""
    count = int(os.environ.get("TABLE_COUNT", "7"))
    if not (table_id.isascii() and table_id.isdigit()) or not 1 <= int(table_id) <= count:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"テーブル番号は1〜{count}の範囲で選択してください。",
        )
    return str(int(table_id))


def create_app(
    store: TableOrderStore | None = None,
    menu_generator: MenuGenerator | None = None,
) -> FastAPI:
    if store is None:
        store = build_store()
    generator = menu_generator if menu_generator is not None else build_menu_generator()

    app = FastAPI(
        title="Table Order Service",
        version="0.1.0",
        description="テーブルからの注文を受け付け、キッチンと売上を管理します。",
    )
    allowed_origins = [
        origin.strip() for origin in os.environ.get("ALLOWED_ORIGINS", "*").split(",")
    ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def get_store() -> TableOrderStore:
        return store

    def get_menu_generator() -> MenuGenerator:
        return generator

    def cart_response(table_id: str) -> schemas.Cart:
        cart = store.cart_for(table_id)
        return schemas.Cart(
            table_id=table_id,
            lines=[schemas.CartLine.from_domain(line) for line in cart.lines],
            total_price=cart.total_price(),
            item_count=cart.item_count(),
        )

    @app.get("/healthz", response_model=schemas.HealthResponse, tags=["system"])
    async def healthz() -> schemas.HealthResponse:
        return schemas.HealthResponse(status="ok")

    # --- menu -------------------------------------------------------------

    @app.get("/menu", response_model=List[schemas.MenuItem], tags=["menu"])
    async def list_menu(
        table_id: Optional[str] = None,
        category: Optional[ProductCategory] = None,
        store: TableOrderStore = Depends(get_store),
    ) -> List[schemas.MenuItem]:
        if table_id is not None:
            items = store.policy.orderable_items(store.catalog, table_session(table_id))
        else:
            items = store.catalog.list_items()
        if category is not None:
            items = [item for item in items if item.category == category]
        return [schemas.MenuItem.from_domain(item) for item in items]

    @app.get("/menu/drinks", response_model=List[schemas.DrinkSection], tags=["menu"])
    async def list_drinks(store: TableOrderStore = Depends(get_store)) -> List[schemas.DrinkSection]:
        return [
            schemas.DrinkSection(
                key=section.key,
                label=section.label,
                item_count=section.item_count,
                groups=[
                    schemas.DrinkGroup(
                        key=group.key,
                        label=group.label,
                        items=[schemas.MenuItem.from_domain(item) for item in items],
                    )
                    for group, items in section.groups
                ],
            )
            for section in store.catalog.grouped_drinks()
        ]

    @app.get("/menu/food", response_model=List[schemas.FoodGroup], tags=["menu"])
    async def list_food(store: TableOrderStore = Depends(get_store)) -> List[schemas.FoodGroup]:
        return [
            schemas.FoodGroup(
                sub_category=sub_category,
                items=[schemas.MenuItem.from_domain(item) for item in items],
            )
            for sub_category, items in store.catalog.grouped_food().items()
        ]

    @app.post(
        "/menu/items",
        response_model=schemas.MenuItem,
        status_code=status.HTTP_201_CREATED,
        tags=["menu"],
    )
    async def create_menu_item(
        payload: schemas.MenuItemCreate,
        store: TableOrderStore = Depends(get_store),
    ) -> schemas.MenuItem:
        if not payload.name.strip():
            raise HTTPException(status_code=400, detail="商品名を入力してください。")
        item = store.catalog.add_item(payload.to_draft())
        store.persist_catalog()
        return schemas.MenuItem.from_domain(item)

    @app.patch("/menu/items/{item_id}", response_model=schemas.MenuItem, tags=["menu"])
    async def update_menu_item(
        item_id: str,
        payload: schemas.MenuItemUpdate,
        store: TableOrderStore = Depends(get_store),
    ) -> schemas.MenuItem:
        if store.catalog.get(item_id) is None:
            raise HTTPException(status_code=404, detail="商品が見つかりません。")
        if "name" in payload.model_fields_set and not (payload.name or "").strip():
            raise HTTPException(status_code=400, detail="商品名を入力してください。")
        updated = store.catalog.update_item(item_id, payload.model_dump(exclude_unset=True))
        if updated is None:
            raise HTTPException(status_code=400, detail="価格は0以上の数字で入力してください。")
        store.persist_catalog()
        return schemas.MenuItem.from_domain(updated)

    @app.delete("/menu/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["menu"])
    async def delete_menu_item(item_id: str, store: TableOrderStore = Depends(get_store)) -> None:
        if not store.catalog.delete_item(item_id):
            raise HTTPException(status_code=404, detail="商品が見つかりません。")
        store.persist_catalog()

    @app.post("/menu/items/{item_id}/sold-out", response_model=schemas.MenuItem, tags=["menu"])
    async def toggle_sold_out(item_id: str, store: TableOrderStore = Depends(get_store)) -> schemas.MenuItem:
        updated = store.catalog.toggle_sold_out(item_id)
        if updated is None:
            raise HTTPException(status_code=404, detail="商品が見つかりません。")
        store.persist_catalog()
        return schemas.MenuItem.from_domain(updated)

    @app.post(
        "/menu/specials",
        response_model=schemas.MenuItem,
        status_code=status.HTTP_201_CREATED,
        tags=["menu"],
    )
    async def generate_special(
        payload: schemas.SpecialRequest,
        store: TableOrderStore = Depends(get_store),
        generator: MenuGenerator = Depends(get_menu_generator),
    ) -> schemas.MenuItem:
        try:
            draft = generator.generate_daily_special(payload.ingredients)
        except MenuGenerationError as exc:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
        item = store.catalog.add_item(draft)
        store.persist_catalog()
        return schemas.MenuItem.from_domain(item)

    # --- tables -----------------------------------------------------------

    @app.get("/tables/{table_id}/cart", response_model=schemas.Cart, tags=["tables"])
    async def get_cart(table_id: str = Depends(table_session)) -> schemas.Cart:
        return cart_response(table_id)

    @app.post(
        "/tables/{table_id}/cart/lines",
        response_model=schemas.Cart,
        status_code=status.HTTP_201_CREATED,
        tags=["tables"],
    )
    async def add_cart_line(
        payload: schemas.AddToCartRequest,
        table_id: str = Depends(table_session),
        store: TableOrderStore = Depends(get_store),
    ) -> schemas.Cart:
        item = store.catalog.get(payload.menu_item_id)
        if item is None:
            raise HTTPException(status_code=404, detail="商品が見つかりません。")
        reason = store.policy.admission_error(item, table_id)
        if reason is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=reason)
        try:
            customizations = build_customizations(
                item, store.catalog.rules, style=payload.style, glasses=payload.glasses
            )
            store.cart_for(table_id).add(item, customizations, payload.quantity)
        except (CustomizationError, InvalidQuantityError) as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        return cart_response(table_id)

    @app.patch("/tables/{table_id}/cart/lines/{line_key}", response_model=schemas.Cart, tags=["tables"])
    async def change_cart_line(
        line_key: str,
        payload: schemas.QuantityDelta,
        table_id: str = Depends(table_session),
        store: TableOrderStore = Depends(get_store),
    ) -> schemas.Cart:
        cart = store.cart_for(table_id)
        if cart.get_line(line_key) is None:
            raise HTTPException(status_code=404, detail="カートに該当する商品がありません。")
        cart.update_quantity(line_key, payload.delta)
        return cart_response(table_id)

    @app.delete("/tables/{table_id}/cart/lines/{line_key}", response_model=schemas.Cart, tags=["tables"])
    async def remove_cart_line(
        line_key: str,
        table_id: str = Depends(table_session),
        store: TableOrderStore = Depends(get_store),
    ) -> schemas.Cart:
        store.cart_for(table_id).remove_line(line_key)
        return cart_response(table_id)

    @app.post(
        "/tables/{table_id}/orders",
        response_model=schemas.Order,
        status_code=status.HTTP_201_CREATED,
        tags=["tables"],
    )
    async def checkout(
        table_id: str = Depends(table_session),
        store: TableOrderStore = Depends(get_store),
    ) -> schemas.Order:
        order = store.checkout(table_id)
        if order is None:
            raise HTTPException(status_code=400, detail="カートが空です。")
        return schemas.Order.from_domain(order)

    @app.get("/tables/{table_id}/orders", response_model=schemas.TableOrders, tags=["tables"])
    async def table_orders(
        table_id: str = Depends(table_session),
        store: TableOrderStore = Depends(get_store),
    ) -> schemas.TableOrders:
        return schemas.TableOrders(
            table_id=table_id,
            orders=[schemas.Order.from_domain(order) for order in store.orders.for_table(table_id)],
            history_total=store.orders.table_history_total(table_id),
        )

    @app.put("/tables/{table_id}/mode", response_model=schemas.TableMode, tags=["tables"])
    async def set_table_mode(
        payload: schemas.TableModeUpdate,
        table_id: str = Depends(table_session),
        store: TableOrderStore = Depends(get_store),
    ) -> schemas.TableMode:
        store.policy.set_table_mode(table_id, payload.mode)
        return schemas.TableMode(table_id=table_id, mode=store.policy.get_table_mode(table_id))

    @app.get("/tables/{table_id}/mode", response_model=schemas.TableMode, tags=["tables"])
    async def get_table_mode(
        table_id: str = Depends(table_session),
        store: TableOrderStore = Depends(get_store),
    ) -> schemas.TableMode:
        return schemas.TableMode(table_id=table_id, mode=store.policy.get_table_mode(table_id))

    # --- staff ------------------------------------------------------------

    @app.get("/kitchen/orders", response_model=schemas.KitchenQueue, tags=["staff"])
    async def kitchen_orders(
        served_limit: Optional[int] = None,
        store: TableOrderStore = Depends(get_store),
    ) -> schemas.KitchenQueue:
        served = store.orders.served_orders()
        if served_limit is not None:
            served = served[:served_limit]
        return schemas.KitchenQueue(
            pending=[schemas.Order.from_domain(order) for order in store.orders.pending_orders()],
            served=[schemas.Order.from_domain(order) for order in served],
        )

    @app.post("/orders/{order_id}/status", response_model=schemas.Order, tags=["staff"])
    async def update_order_status(
        order_id: str,
        payload: schemas.StatusUpdate,
        store: TableOrderStore = Depends(get_store),
    ) -> schemas.Order:
        try:
            order = store.advance_order(order_id, payload.status)
        except InvalidStatusTransition as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
        if order is None:
            raise HTTPException(status_code=404, detail="注文が見つかりません。")
        return schemas.Order.from_domain(order)

    @app.get("/sales/daily", response_model=schemas.SalesReport, tags=["staff"])
    async def sales_daily(store: TableOrderStore = Depends(get_store)) -> schemas.SalesReport:
        days = daily_summaries(store.orders.all())
        total_count, total_amount = overall_totals(days)
        return schemas.SalesReport(
            days=[
                schemas.DailySummary(
                    date=day.date.isoformat(),
                    label=day.label,
                    orders=[schemas.Order.from_domain(order) for order in day.orders],
                    total_amount=day.total_amount,
                    count=day.count,
                )
                for day in days
            ],
            total_count=total_count,
            total_amount=total_amount,
        )

    @app.get("/settings", response_model=schemas.Settings, tags=["staff"])
    async def get_settings(store: TableOrderStore = Depends(get_store)) -> schemas.Settings:
        return schemas.Settings(food_accepted=store.policy.is_food_accepted())

    @app.put("/settings/food-acceptance", response_model=schemas.Settings, tags=["staff"])
    async def set_food_acceptance(
        payload: schemas.FoodAcceptanceUpdate,
        store: TableOrderStore = Depends(get_store),
    ) -> schemas.Settings:
        store.policy.set_food_acceptance(payload.enabled)
        return schemas.Settings(food_accepted=store.policy.is_food_accepted())

    # --- sync -------------------------------------------------------------

    @app.get("/sync/catalog", tags=["sync"])
    async def export_catalog(store: TableOrderStore = Depends(get_store)) -> list:
        return store.catalog_payload()

    @app.put("/sync/catalog", response_model=schemas.SyncResult, tags=["sync"])
    async def import_catalog(
        payload: Any = Body(...),
        store: TableOrderStore = Depends(get_store),
    ) -> schemas.SyncResult:
        accepted = store.apply_catalog_snapshot(payload)
        if accepted:
            store.persist_catalog()
        return schemas.SyncResult(accepted=accepted, count=len(store.catalog.list_items()))

    @app.get("/sync/orders", tags=["sync"])
    async def export_orders(store: TableOrderStore = Depends(get_store)) -> list:
        return store.orders_payload()

    @app.put("/sync/orders", response_model=schemas.SyncResult, tags=["sync"])
    async def import_orders(
        payload: Any = Body(...),
        store: TableOrderStore = Depends(get_store),
    ) -> schemas.SyncResult:
        accepted = store.apply_orders_snapshot(payload)
        if accepted:
            store.persist_orders()
        return schemas.SyncResult(accepted=accepted, count=len(store.orders.all()))

    return app
