from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from . import models
from .models import FoodSubcategory, OrderStatus, ProductCategory, TableOrderMode


class CamelModel(BaseModel):
    """Wire models speak the camelCase JSON the table clients already store."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(BaseModel):
    status: Literal["ok"]


class MenuItem(CamelModel):
    id: str
    name: str
    price: int = Field(..., ge=0)
    category: ProductCategory
    image_url: str = ""
    description: Optional[str] = None
    sub_category: Optional[FoodSubcategory] = None
    sold_out: bool = Field(default=False, alias="isSoldOut")
    special: bool = Field(default=False, alias="isSpecial")

    @classmethod
    def from_domain(cls, item: models.MenuItem) -> "MenuItem":
        return cls(
            id=item.id,
            name=item.name,
            price=item.price,
            category=item.category,
            image_url=item.image_url,
            description=item.description,
            sub_category=item.sub_category,
            sold_out=item.sold_out,
            special=item.special,
        )

    def to_domain(self) -> models.MenuItem:
        return models.MenuItem(
            id=self.id,
            name=self.name,
            price=self.price,
            category=self.category,
            image_url=self.image_url,
            description=self.description,
            sub_category=self.sub_category,
            sold_out=self.sold_out,
            special=self.special,
        )


class MenuItemCreate(CamelModel):
    name: str = Field(..., min_length=1)
    price: int = Field(..., ge=0)
    category: ProductCategory = ProductCategory.FOOD
    sub_category: Optional[FoodSubcategory] = None
    description: Optional[str] = None
    image_url: str = ""

    def to_draft(self) -> models.MenuItemDraft:
        return models.MenuItemDraft(
            name=self.name,
            price=self.price,
            category=self.category,
            sub_category=self.sub_category,
            description=self.description,
            image_url=self.image_url,
        )


class MenuItemUpdate(CamelModel):
    name: Optional[str] = None
    # validated by catalog.coerce_price
    price: Optional[Union[int, float, str]] = None
    category: Optional[ProductCategory] = None
    sub_category: Optional[FoodSubcategory] = None
    description: Optional[str] = None
    image_url: Optional[str] = None


class SpecialRequest(BaseModel):
    ingredients: str = Field(..., min_length=1, description="Ingredients or theme for today's special")


class DrinkGroup(CamelModel):
    key: str
    label: str
    items: List[MenuItem]


class DrinkSection(CamelModel):
    key: str
    label: str
    item_count: int
    groups: List[DrinkGroup]


class FoodGroup(CamelModel):
    sub_category: FoodSubcategory
    items: List[MenuItem]


class CartLine(CamelModel):
    key: str
    menu_item_id: str = Field(..., alias="productId")
    name: str
    price: int
    quantity: int
    customizations: List[str] = Field(default_factory=list)
    subtotal: int

    @classmethod
    def from_domain(cls, line: models.CartLine) -> "CartLine":
        return cls(
            key=line.key.token,
            menu_item_id=line.menu_item_id,
            name=line.name,
            price=line.price,
            quantity=line.quantity,
            customizations=list(line.customizations),
            subtotal=line.subtotal,
        )


class Cart(CamelModel):
    table_id: str
    lines: List[CartLine]
    total_price: int
    item_count: int


class AddToCartRequest(CamelModel):
    menu_item_id: str = Field(..., alias="productId")
    quantity: int = Field(default=1, gt=0)
    style: Optional[str] = Field(default=None, description="Serving style for shochu")
    glasses: int = Field(default=0, ge=0, description="Extra glasses for bottled beer")


class QuantityDelta(BaseModel):
    delta: int


class OrderLine(CamelModel):
    menu_item_id: str = Field(..., alias="productId")
    name: str
    price: int = Field(..., ge=0)
    quantity: int = Field(..., gt=0)
    customizations: List[str] = Field(default_factory=list)


class Order(CamelModel):
    id: str
    table_id: str
    items: List[OrderLine] = Field(..., min_length=1)
    status: OrderStatus
    total_amount: int = Field(..., ge=0)
    timestamp: int = Field(..., description="Creation instant in epoch milliseconds")
    sequence: Optional[int] = None

    @model_validator(mode="after")
    def _total_matches_lines(self) -> "Order":
        expected = sum(line.price * line.quantity for line in self.items)
        if self.total_amount != expected:
            raise ValueError(f"totalAmount {self.total_amount} does not match its items ({expected})")
        return self

    @classmethod
    def from_domain(cls, order: models.Order) -> "Order":
        return cls(
            id=order.id,
            table_id=order.table_id,
            items=[
                OrderLine(
                    menu_item_id=line.menu_item_id,
                    name=line.name,
                    price=line.price,
                    quantity=line.quantity,
                    customizations=list(line.customizations),
                )
                for line in order.lines
            ],
            status=order.status,
            total_amount=order.total_amount,
            timestamp=int(order.timestamp.timestamp() * 1000),
            sequence=order.sequence,
        )

    def to_domain(self, fallback_sequence: int = 0) -> models.Order:
        return models.Order(
            id=self.id,
            table_id=self.table_id,
            lines=tuple(
                models.OrderLine(
                    menu_item_id=line.menu_item_id,
                    name=line.name,
                    price=line.price,
                    quantity=line.quantity,
                    customizations=tuple(line.customizations),
                )
                for line in self.items
            ),
            status=self.status,
            total_amount=self.total_amount,
            timestamp=datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc),
            sequence=self.sequence if self.sequence is not None else fallback_sequence,
        )


class TableOrders(CamelModel):
    table_id: str
    orders: List[Order]
    history_total: int


class KitchenQueue(BaseModel):
    pending: List[Order]
    served: List[Order]


class StatusUpdate(BaseModel):
    status: OrderStatus


class DailySummary(CamelModel):
    date: str
    label: str
    orders: List[Order]
    total_amount: int
    count: int


class SalesReport(CamelModel):
    days: List[DailySummary]
    total_count: int
    total_amount: int


class TableMode(CamelModel):
    table_id: str
    mode: TableOrderMode


class TableModeUpdate(BaseModel):
    mode: TableOrderMode


class Settings(CamelModel):
    food_accepted: bool


class FoodAcceptanceUpdate(BaseModel):
    enabled: bool


class SyncResult(BaseModel):
    accepted: bool
    count: int
