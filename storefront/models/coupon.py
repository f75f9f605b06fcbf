# storefront/models/coupon.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Coupon(SQLModel, table=True):
    """
    Discount code that can be applied to a cart.

    A coupon is applicable iff:
      - is_active
      - start_date <= now <= end_date
      - usage_limit is unset or usage_count < usage_limit

    `code` is stored upper-cased; lookups upper-case the input.
    """

    __tablename__ = "coupons"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    code: str = Field(
        unique=True,
        index=True,
        max_length=50,
    )

    description: str | None = None

    discount_type: str = Field(
        description="percentage | fixed",
    )

    # <= 100 for percentage coupons, enforced by whoever creates them
    discount_value: float = Field(ge=0)

    minimum_purchase: float = Field(default=0, ge=0)

    start_date: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    end_date: datetime

    is_active: bool = Field(default=True)

    usage_limit: int | None = Field(default=None, ge=0)
    usage_count: int = Field(default=0, ge=0)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
