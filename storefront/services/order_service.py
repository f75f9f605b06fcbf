# storefront/services/order_service.py
import logging
import math
import uuid
from datetime import datetime, timezone

from sqlmodel import Session

from storefront.core.errors import (
    InsufficientStockError,
    InvalidArgumentError,
    InvalidStatusTransitionError,
    NotFoundError,
    UnauthorizedError,
)
from storefront.models.order import Order, OrderItem, OrderStatus, can_transition
from storefront.models.user import User
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.order import (
    OrderCreate,
    OrderItemRead,
    OrderListQuery,
    OrderListRead,
    OrderRead,
    OrderStatusUpdate,
    Pagination,
    PaymentResultCreate,
    PaymentResultRead,
    ShippingAddress,
)
from storefront.services.pricing import effective_price

logger = logging.getLogger(__name__)


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Create an order snapshot from requested items
      - Take stock for every line in one all-or-nothing transaction
      - Empty the owner's cart after a successful checkout
      - Record payment confirmations
      - Enforce the status lifecycle (admin)
      - Filtered, paginated order listing (admin)
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        default_page_size: int = 10,
        max_page_size: int = 100,
    ):
        self.order_repo = order_repo
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    # -------- User-facing operations --------

    def create_order(
        self,
        session: Session,
        user: User,
        payload: OrderCreate,
    ) -> OrderRead:
        """
        Place an order.

        Steps:
          1. Reject an empty item list or a non-positive quantity
             (nothing is touched).
          2. Load every referenced product; any missing one fails the order.
          3. Create Order row (status='pending', unpaid, undelivered).
          4. For each line, atomically take stock and bump `sold`.
             If any line lacks stock, roll everything back.
          5. Snapshot name/image/price/discount into OrderItem rows.
          6. Empty the owner's cart.
          7. Commit once and return the full order.
        """
        # 1) Items
        if not payload.order_items:
            raise InvalidArgumentError("No order items", field="orderItems")
        for i, line in enumerate(payload.order_items):
            if line.quantity <= 0:
                raise InvalidArgumentError(
                    "Quantity must be greater than 0",
                    field=f"orderItems[{i}].quantity",
                )

        # 2) Products
        product_ids = [it.product_id for it in payload.order_items]
        products = self.product_repo.get_many(session, product_ids)
        for pid in product_ids:
            if pid not in products:
                raise NotFoundError("Product not found", productId=str(pid))

        # 3) Order row
        address = payload.shipping_address
        order = Order(
            user_id=user.id,
            full_name=address.full_name,
            address=address.address,
            city=address.city,
            state=address.state,
            zip_code=address.zip_code,
            country=address.country,
            payment_method=payload.payment_method,
            items_price=payload.items_price,
            tax_price=payload.tax_price,
            shipping_price=payload.shipping_price,
            total_price=payload.total_price,
            status=OrderStatus.PENDING,
            is_paid=False,
            is_delivered=False,
        )
        order = self.order_repo.create_order(session, order)

        # 4) + 5) Stock and snapshots
        order_items: list[OrderItem] = []
        for line in payload.order_items:
            product = products[line.product_id]
            available = product.count_in_stock

            if not self.product_repo.take_stock(session, product.id, line.quantity):
                session.rollback()
                logger.warning(
                    "Order rejected for user %s: product %s has %s, requested %s",
                    user.id,
                    line.product_id,
                    available,
                    line.quantity,
                )
                raise InsufficientStockError(
                    "Not enough items in stock",
                    productId=str(line.product_id),
                    requested=line.quantity,
                    available=available,
                )

            order_items.append(
                OrderItem(
                    order_id=order.id,
                    product_id=product.id,
                    name=product.name,
                    image=product.image,
                    unit_price=product.price,
                    discount=product.discount,
                    quantity=line.quantity,
                )
            )

        order_items = self.order_repo.create_items(session, order_items)

        # 6) Empty cart
        cart = self.cart_repo.get_for_user(session, user.id)
        if cart is not None:
            self.cart_repo.clear(session, cart, commit=False)

        # 7) Commit transaction
        session.commit()
        session.refresh(order)

        logger.info(
            "Order %s created for user %s (%s lines, total %.2f)",
            order.id,
            user.id,
            len(order_items),
            order.total_price,
        )
        return self._build_order_dto(order, order_items)

    def list_my_orders(self, session: Session, user: User) -> list[OrderRead]:
        """
        The caller's orders, newest first.
        """
        orders = self.order_repo.list_for_user(session, user.id)
        return self._build_order_dtos(session, orders)

    def get_order(
        self,
        session: Session,
        user: User,
        order_id: uuid.UUID,
    ) -> OrderRead:
        """
        Get a single order with items.

        - 404 if the order does not exist.
        - 403 unless the caller owns it or is an admin.
        """
        order = self._get_visible_order(session, user, order_id)
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_dto(order, items)

    def mark_paid(
        self,
        session: Session,
        user: User,
        order_id: uuid.UUID,
        payload: PaymentResultCreate,
    ) -> OrderRead:
        """
        Record the payment provider's confirmation.

        Only sets is_paid/paid_at and the payment result; status is left
        untouched. An order can be paid once.
        """
        order = self._get_visible_order(session, user, order_id)
        if order.is_paid:
            raise InvalidArgumentError("Order is already paid", orderId=str(order.id))

        order.is_paid = True
        order.paid_at = self._now()
        order.payment_id = payload.id
        order.payment_status = payload.status
        order.payment_update_time = payload.update_time
        order.payment_email_address = payload.payer.email_address

        self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)

        logger.info("Order %s marked paid (payment %s)", order.id, payload.id)
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_dto(order, items)

    # -------- Admin operations --------

    def update_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: OrderStatusUpdate,
    ) -> OrderRead:
        """
        Admin-only status update with the lifecycle state machine:

          pending    -> processing, cancelled
          processing -> shipped, cancelled
          shipped    -> delivered, cancelled
          delivered  -> (terminal)
          cancelled  -> (terminal)

        Moving to 'delivered' also sets is_delivered and delivered_at.
        Re-sending the current status changes nothing.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFoundError("Order not found", orderId=str(order_id))

        current = OrderStatus(order.status)
        new = payload.status

        if current != new:
            if not can_transition(current, new):
                logger.warning(
                    "Rejected status change for order %s: %s -> %s",
                    order.id,
                    current.value,
                    new.value,
                )
                raise InvalidStatusTransitionError(
                    f"Invalid status transition: {current.value} -> {new.value}",
                    **{"from": current.value, "to": new.value},
                )

            order.status = new
            if new == OrderStatus.DELIVERED:
                order.is_delivered = True
                order.delivered_at = self._now()

            self.order_repo.update_order(session, order)
            session.commit()
            session.refresh(order)
            logger.info("Order %s status %s -> %s", order.id, current.value, new.value)

        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_dto(order, items)

    def list_orders(self, session: Session, query: OrderListQuery) -> OrderListRead:
        """
        Filtered, sorted, paginated list of all orders (admin only).
        """
        limit = min(query.limit or self.default_page_size, self.max_page_size)
        orders, total_count = self.order_repo.search(session, query, limit)

        return OrderListRead(
            orders=self._build_order_dtos(session, orders),
            pagination=Pagination(
                current_page=query.page,
                total_pages=math.ceil(total_count / limit),
                total_count=total_count,
                limit=limit,
            ),
        )

    # -------- Helpers --------

    def _get_visible_order(
        self,
        session: Session,
        user: User,
        order_id: uuid.UUID,
    ) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFoundError("Order not found", orderId=str(order_id))
        if order.user_id != user.id and not user.is_admin:
            raise UnauthorizedError(
                "Not authorized to access this order", orderId=str(order_id)
            )
        return order

    def _build_order_dtos(
        self,
        session: Session,
        orders: list[Order],
    ) -> list[OrderRead]:
        items_by_order = self.order_repo.list_items_for_orders(
            session, [o.id for o in orders]
        )
        return [self._build_order_dto(o, items_by_order[o.id]) for o in orders]

    def _build_order_dto(
        self,
        order: Order,
        items: list[OrderItem],
    ) -> OrderRead:
        """
        Compose OrderRead from ORM rows.
        """
        item_dtos = [
            OrderItemRead(
                product_id=it.product_id,
                name=it.name,
                image=it.image,
                unit_price=it.unit_price,
                discount=it.discount,
                quantity=it.quantity,
                line_total=round(
                    effective_price(it.unit_price, it.discount) * it.quantity, 2
                ),
            )
            for it in items
        ]

        payment_result = None
        if order.payment_id is not None:
            payment_result = PaymentResultRead(
                id=order.payment_id,
                status=order.payment_status,
                update_time=order.payment_update_time,
                email_address=order.payment_email_address,
            )

        return OrderRead(
            id=order.id,
            user_id=order.user_id,
            order_items=item_dtos,
            shipping_address=ShippingAddress(
                full_name=order.full_name,
                address=order.address,
                city=order.city,
                state=order.state,
                zip_code=order.zip_code,
                country=order.country,
            ),
            payment_method=order.payment_method,
            payment_result=payment_result,
            items_price=order.items_price,
            tax_price=order.tax_price,
            shipping_price=order.shipping_price,
            total_price=order.total_price,
            status=order.status,
            is_paid=order.is_paid,
            paid_at=order.paid_at,
            is_delivered=order.is_delivered,
            delivered_at=order.delivered_at,
            created_at=order.created_at,
        )
