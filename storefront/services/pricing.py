# storefront/services/pricing.py
"""
Cart pricing.

Pure functions only: callers pass in current product prices and the
applied coupon (if it is currently applicable) and get fresh totals
back. Nothing here reads or writes the database, so totals are
recomputed on every cart read instead of being cached on the cart.
"""
from dataclasses import dataclass
from typing import Iterable, Protocol


class PricedProduct(Protocol):
    price: float
    discount: float


class DiscountSource(Protocol):
    discount_type: str
    discount_value: float


@dataclass(frozen=True)
class CartTotals:
    subtotal: float = 0.0
    discount: float = 0.0
    total: float = 0.0
    item_count: int = 0


def _money(value: float) -> float:
    return round(value, 2)


def effective_price(price: float, discount: float | None) -> float:
    """
    Unit price after the product's own line discount (percent).

    A product without a discount (0 or None) sells at list price.
    """
    if not discount:
        return price
    return price * (1 - discount / 100)


def line_total(product: PricedProduct, quantity: int) -> float:
    return _money(effective_price(product.price, product.discount) * quantity)


def coupon_discount(subtotal: float, coupon: DiscountSource | None) -> float:
    """
    Discount granted by a coupon on the given subtotal.

    Clamped to the subtotal so a cart total never goes negative.
    """
    if coupon is None:
        return 0.0

    if coupon.discount_type == "percentage":
        discount = subtotal * coupon.discount_value / 100
    elif coupon.discount_type == "fixed":
        discount = coupon.discount_value
    else:
        discount = 0.0

    return _money(min(discount, subtotal))


def calculate_totals(
    lines: Iterable[tuple[PricedProduct, int]],
    coupon: DiscountSource | None = None,
) -> CartTotals:
    """
    Compute subtotal, coupon discount, total and item count.

    Args:
        lines: (product, quantity) pairs resolved against the catalog.
        coupon: an applicable coupon, or None.

    Empty input gives all zeros.
    """
    subtotal = 0.0
    item_count = 0

    for product, quantity in lines:
        subtotal += effective_price(product.price, product.discount) * quantity
        item_count += quantity

    subtotal = _money(subtotal)
    discount = coupon_discount(subtotal, coupon)

    return CartTotals(
        subtotal=subtotal,
        discount=discount,
        total=_money(subtotal - discount),
        item_count=item_count,
    )
