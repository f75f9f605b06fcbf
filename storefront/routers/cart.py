# storefront/routers/cart.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from storefront.core.auth import require_auth
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.coupon_repo import CouponRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.cart import (
    ApplyCouponRequest,
    CartItemCreate,
    CartItemUpdate,
    CartRead,
)
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])

service = CartService(CartRepository(), ProductRepository(), CouponRepository())


@router.get("", response_model=CartRead)
def get_my_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get current user's cart with fresh totals.
    An empty cart is created on first access.
    """
    return service.get_cart(session, current_user.id)


@router.delete("", response_model=CartRead)
def clear_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Empty the cart and drop any applied coupon.
    """
    return service.clear_cart(session, current_user.id)


@router.post("/items", response_model=CartRead)
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Add product to the current user's cart.

    Adding a product that is already in the cart adds the quantities.
    """
    return service.add_item(session, current_user.id, payload)


@router.put("/items/{product_id}", response_model=CartRead)
def update_cart_item(
    product_id: uuid.UUID,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Replace the quantity of a product in the cart.
    """
    return service.update_item(
        session=session,
        user_id=current_user.id,
        product_id=product_id,
        payload=payload,
    )


@router.delete("/items/{product_id}", response_model=CartRead)
def remove_cart_item(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Remove a product from the cart (no error if it is not there).
    """
    return service.remove_item(session, current_user.id, product_id)


@router.post("/apply-coupon", response_model=CartRead)
def apply_coupon(
    payload: ApplyCouponRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Apply a coupon code to the cart.

    Returns the cart with the discount breakdown.
    """
    return service.apply_coupon(session, current_user.id, payload.coupon_code)


@router.delete("/coupon", response_model=CartRead)
def remove_coupon(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Remove the applied coupon from the cart.
    """
    return service.remove_coupon(session, current_user.id)
