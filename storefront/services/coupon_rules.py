# storefront/services/coupon_rules.py
from datetime import datetime, timezone

from storefront.core.errors import CouponInvalidError, CouponRuleViolationError
from storefront.models.coupon import Coupon


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_in_window(coupon: Coupon, now: datetime) -> bool:
    return _as_utc(coupon.start_date) <= _as_utc(now) <= _as_utc(coupon.end_date)


def has_uses_left(coupon: Coupon) -> bool:
    return coupon.usage_limit is None or coupon.usage_count < coupon.usage_limit


def still_discounts(coupon: Coupon, subtotal: float, now: datetime) -> bool:
    """
    Whether a coupon already applied to a cart keeps discounting it.

    Usage is not re-checked here: applying the coupon is what consumed
    the use, so the cart holding it may sit exactly at the limit.
    """
    return (
        coupon.is_active
        and is_in_window(coupon, now)
        and subtotal >= coupon.minimum_purchase
    )


def ensure_redeemable(coupon: Coupon | None, now: datetime) -> Coupon:
    """
    Reject codes that are unknown, switched off or outside their window.

    Raises:
        CouponInvalidError
    """
    if coupon is None or not coupon.is_active or not is_in_window(coupon, now):
        raise CouponInvalidError("Invalid or expired coupon code")
    return coupon


def ensure_rules_met(coupon: Coupon, subtotal: float) -> None:
    """
    Minimum purchase and usage limit checks for a cart subtotal
    (before any coupon discount).

    Raises:
        CouponRuleViolationError
    """
    if coupon.minimum_purchase > 0 and subtotal < coupon.minimum_purchase:
        raise CouponRuleViolationError(
            f"Minimum purchase of ${coupon.minimum_purchase:.2f} required for this coupon",
            minimumPurchase=coupon.minimum_purchase,
            subtotal=subtotal,
        )

    if not has_uses_left(coupon):
        raise CouponRuleViolationError(
            "This coupon has reached its usage limit",
            usageLimit=coupon.usage_limit,
        )
