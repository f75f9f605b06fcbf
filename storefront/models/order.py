# storefront/models/order.py
import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlmodel import SQLModel, Field


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Legal moves of the fulfilment lifecycle. Terminal states map to an empty set.
ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return new in ORDER_TRANSITIONS[current]


class Order(SQLModel, table=True):
    """
    Customer order.

    Prices and items are a snapshot taken at checkout. The fulfilment
    `status` and the payment flag (`is_paid`/`paid_at`) are independent:
    an order may be pending and paid at the same time.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    # Shipping address
    full_name: str
    address: str
    city: str
    state: str | None = None
    zip_code: str
    country: str

    payment_method: str

    items_price: float = Field(ge=0)
    tax_price: float = Field(default=0, ge=0)
    shipping_price: float = Field(default=0, ge=0)
    total_price: float = Field(ge=0)

    status: OrderStatus = Field(
        default=OrderStatus.PENDING,
        index=True,
        description="Order status lifecycle",
    )

    is_paid: bool = Field(default=False, index=True)
    paid_at: datetime | None = None

    # Opaque payment confirmation from the payment provider
    payment_id: str | None = None
    payment_status: str | None = None
    payment_update_time: str | None = None
    payment_email_address: str | None = None

    is_delivered: bool = Field(default=False, index=True)
    delivered_at: datetime | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
        description="Creation timestamp (UTC)",
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order, copied from the product at checkout.
    Never updated after creation.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    name: str
    image: str | None = None

    unit_price: float = Field(
        description="List price at time of order",
    )
    discount: float = Field(
        default=0,
        description="Line discount percent at time of order",
    )

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )
