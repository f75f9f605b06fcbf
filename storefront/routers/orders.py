# storefront/routers/orders.py
import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from storefront.core.auth import require_auth, require_admin
from storefront.core.config import get_settings
from storefront.database import get_session
from storefront.models.order import OrderStatus
from storefront.models.user import User
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.order import (
    OrderCreate,
    OrderListQuery,
    OrderListRead,
    OrderRead,
    OrderSortField,
    OrderStatusUpdate,
    PaymentResultCreate,
    SortOrder,
)
from storefront.services.order_service import OrderService

settings = get_settings()

router = APIRouter(prefix="/orders", tags=["Orders"])

service = OrderService(
    OrderRepository(),
    CartRepository(),
    ProductRepository(),
    default_page_size=settings.ORDERS_PAGE_SIZE,
    max_page_size=settings.ORDERS_MAX_PAGE_SIZE,
)


def order_list_query(
    order_status: OrderStatus | None = Query(default=None, alias="status"),
    is_paid: bool | None = Query(default=None, alias="isPaid"),
    is_delivered: bool | None = Query(default=None, alias="isDelivered"),
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    sort_by: OrderSortField | None = Query(default=None, alias="sortBy"),
    order: SortOrder | None = None,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
) -> OrderListQuery:
    return OrderListQuery(
        status=order_status,
        is_paid=is_paid,
        is_delivered=is_delivered,
        start_date=start_date,
        end_date=end_date,
        sort_by=sort_by,
        order=order,
        page=page,
        limit=limit,
    )


# -------- User-facing endpoints --------


@router.post(
    "",
    response_model=OrderRead,
    status_code=status.HTTP_201_CREATED,
)
def create_order(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Place an order and empty the caller's cart.
    """
    return service.create_order(session, current_user, payload)


@router.get("/my-orders", response_model=list[OrderRead])
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    List the authenticated user's orders, newest first.
    """
    return service.list_my_orders(session, current_user)


@router.get("/{order_id}", response_model=OrderRead)
def get_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get a single order. Owner or admin only.
    """
    return service.get_order(session, current_user, order_id)


@router.put("/{order_id}/pay", response_model=OrderRead)
def pay_order(
    order_id: uuid.UUID,
    payload: PaymentResultCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Record a payment confirmation for the order. Status is unchanged.
    """
    return service.mark_paid(session, current_user, order_id, payload)


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=OrderListRead,
    dependencies=[Depends(require_admin)],
)
def list_orders(
    query: OrderListQuery = Depends(order_list_query),
    session: Session = Depends(get_session),
):
    """
    List all orders (admin only).

    Filters: status, isPaid, isDelivered, startDate, endDate (inclusive).
    Sorting: sortBy + order=asc|desc (default newest first).
    Paging: page, limit.
    """
    return service.list_orders(session, query)


@router.put(
    "/{order_id}/status",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
):
    """
    Update order status (admin only).

      pending    -> processing, cancelled

      processing -> shipped, cancelled

      shipped    -> delivered, cancelled

      delivered, cancelled -> (terminal)

    """
    return service.update_status(session, order_id, payload)
