# storefront/schemas/order.py
import uuid
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.models.order import OrderStatus
from storefront.schemas.base import CamelModel

OrderSortField = Literal[
    "createdAt",
    "itemsPrice",
    "totalPrice",
    "status",
    "isPaid",
    "paidAt",
    "isDelivered",
    "deliveredAt",
]
SortOrder = Literal["asc", "desc"]


class ShippingAddress(CamelModel):
    full_name: str
    address: str
    city: str
    state: str | None = None
    zip_code: str
    country: str

    @field_validator("full_name", "address", "city", "zip_code", "country")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("state")
    @classmethod
    def normalize_state(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class OrderItemCreate(CamelModel):
    """
    One requested line. Name, image and prices are snapshotted from the
    catalog by the backend.

    `quantity` is range-checked by the order service, like cart quantities.
    """

    product_id: uuid.UUID
    quantity: int


class OrderCreate(CamelModel):
    """
    Payload for placing an order.

    The client sends the price breakdown it showed at checkout; the backend
    derives owner, status='pending' and the item snapshots.
    """

    model_config = ConfigDict(extra="forbid")

    order_items: list[OrderItemCreate]
    shipping_address: ShippingAddress
    payment_method: str = Field(min_length=1, max_length=50)
    items_price: float = Field(ge=0)
    tax_price: float = Field(default=0, ge=0)
    shipping_price: float = Field(default=0, ge=0)
    total_price: float = Field(ge=0)


class PaymentPayer(BaseModel):
    email_address: str | None = None


class PaymentResultCreate(BaseModel):
    """
    Payment provider callback body, kept in the provider's own key style.
    """

    id: str
    status: str
    update_time: str | None = None
    payer: PaymentPayer = PaymentPayer()


class PaymentResultRead(BaseModel):
    id: str | None = None
    status: str | None = None
    update_time: str | None = None
    email_address: str | None = None


class OrderItemRead(CamelModel):
    product_id: uuid.UUID
    name: str
    image: str | None = None
    unit_price: float
    discount: float
    quantity: int
    line_total: float


class OrderRead(CamelModel):
    """
    Full order representation.
    """

    id: uuid.UUID
    user_id: uuid.UUID
    order_items: list[OrderItemRead]
    shipping_address: ShippingAddress
    payment_method: str
    payment_result: PaymentResultRead | None = None
    items_price: float
    tax_price: float
    shipping_price: float
    total_price: float
    status: OrderStatus
    is_paid: bool
    paid_at: datetime | None = None
    is_delivered: bool
    delivered_at: datetime | None = None
    created_at: datetime


class OrderStatusUpdate(CamelModel):
    """
    Admin payload to change order status.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus


class OrderListQuery(CamelModel):
    """
    Recognized filters, sort and paging for the admin order list.

    `end_date` is inclusive (the whole day counts).
    Without `sort_by` orders come newest first; with it the default order
    is ascending.
    """

    status: OrderStatus | None = None
    is_paid: bool | None = None
    is_delivered: bool | None = None
    start_date: date | None = None
    end_date: date | None = None
    sort_by: OrderSortField | None = None
    order: SortOrder | None = None
    page: int = Field(default=1, ge=1)
    limit: int | None = Field(default=None, ge=1)


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_count: int
    limit: int


class OrderListRead(CamelModel):
    orders: list[OrderRead]
    pagination: Pagination
