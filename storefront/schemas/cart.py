# storefront/schemas/cart.py
import uuid

from pydantic import Field, field_validator

from storefront.schemas.base import CamelModel


class CartItemCreate(CamelModel):
    """
    Payload for adding to cart.

    `quantity` is deliberately not range-checked here; the service rejects
    non-positive values with an invalid_argument error.
    """

    product_id: uuid.UUID
    quantity: int = 1


class CartItemUpdate(CamelModel):
    """
    Payload for replacing the quantity of a cart line.
    """

    quantity: int


class ApplyCouponRequest(CamelModel):
    coupon_code: str = Field(min_length=1, max_length=50)

    @field_validator("coupon_code")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("coupon code cannot be empty")
        return v


class CartProductRead(CamelModel):
    """
    Current catalog view of a product in the cart.
    """

    id: uuid.UUID
    name: str
    image: str | None = None
    price: float
    discount: float
    count_in_stock: int


class CartItemRead(CamelModel):
    """
    A cart line priced against the current catalog.
    """

    product: CartProductRead
    quantity: int
    unit_price: float
    line_total: float


class AppliedCouponRead(CamelModel):
    code: str
    discount_type: str
    discount_value: float


class CartRead(CamelModel):
    """
    Full cart response with totals.
    """

    items: list[CartItemRead] = []
    subtotal: float = 0.0
    discount: float = 0.0
    total: float = 0.0
    item_count: int = 0
    coupon: AppliedCouponRead | None = None
