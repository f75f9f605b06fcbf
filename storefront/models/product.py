# storefront/models/product.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Catalog entry as seen by the cart and order core.

    The catalog itself is managed elsewhere; here we only read
    price/discount/stock and move the `count_in_stock` and `sold`
    counters when orders are placed.
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=100,
        index=True,
    )

    image: str | None = Field(
        default=None,
        description="Main image URL",
    )

    category: str = Field(
        index=True,
        max_length=50,
    )

    price: float = Field(
        ge=0,
        description="List price per unit",
    )

    discount: float = Field(
        default=0,
        ge=0,
        le=100,
        description="Line discount in percent (0 = none)",
    )

    count_in_stock: int = Field(
        default=0,
        ge=0,
        description="Units currently available",
    )

    sold: int = Field(
        default=0,
        ge=0,
        description="Units sold across all orders",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
