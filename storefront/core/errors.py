# storefront/core/errors.py
from typing import Any

from fastapi import HTTPException, status


class StorefrontError(HTTPException):
    """
    Base class for business-rule and input errors raised by services.

    Subclasses HTTPException so FastAPI renders it directly. The response
    body looks like:

        {"detail": {"code": "insufficient_stock",
                    "message": "Not enough items in stock",
                    "productId": "...", "requested": 5, "available": 2}}
    """

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(
            status_code=self.status_code,
            detail={"code": self.code, "message": message, **context},
        )


class NotFoundError(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class InvalidArgumentError(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_argument"


class InsufficientStockError(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "insufficient_stock"


class CouponInvalidError(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "coupon_invalid"


class CouponRuleViolationError(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "coupon_rule_violation"


class InvalidStatusTransitionError(StorefrontError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_status_transition"


class UnauthorizedError(StorefrontError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "unauthorized"


class UnavailableError(StorefrontError):
    """Storage layer unreachable; safe for the caller to retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "unavailable"
