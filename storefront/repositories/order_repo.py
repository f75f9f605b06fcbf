# storefront/repositories/order_repo.py
import uuid
from datetime import datetime, time, timedelta, timezone

from sqlalchemy import func
from sqlmodel import Session, select

from storefront.models.order import Order, OrderItem
from storefront.schemas.order import OrderListQuery

# Wire name -> sortable column
SORT_COLUMNS = {
    "createdAt": Order.created_at,
    "itemsPrice": Order.items_price,
    "totalPrice": Order.total_price,
    "status": Order.status,
    "isPaid": Order.is_paid,
    "paidAt": Order.paid_at,
    "isDelivered": Order.is_delivered,
    "deliveredAt": Order.delivered_at,
}


def _day_start(day) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class OrderRepository:
    """
    Data access layer for orders and order_items.

    NOTE:
      - No commits here; order creation is a multi-step transaction.
        The service is responsible for calling session.commit().
    """

    # ---- Orders ----

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
    ) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
        )
        return session.exec(stmt).all()

    def search(
        self,
        session: Session,
        query: OrderListQuery,
        limit: int,
    ) -> tuple[list[Order], int]:
        """
        Filter, sort and page orders.

        Returns:
            (orders on the requested page, total matching count)
        """
        conditions = []
        if query.status is not None:
            conditions.append(Order.status == query.status)
        if query.is_paid is not None:
            conditions.append(Order.is_paid == query.is_paid)
        if query.is_delivered is not None:
            conditions.append(Order.is_delivered == query.is_delivered)
        if query.start_date is not None:
            conditions.append(Order.created_at >= _day_start(query.start_date))
        if query.end_date is not None:
            # end date is inclusive: everything before the next midnight
            conditions.append(
                Order.created_at < _day_start(query.end_date + timedelta(days=1))
            )

        count_stmt = select(func.count()).select_from(Order).where(*conditions)
        total_count = int(session.exec(count_stmt).one() or 0)

        if query.sort_by:
            column = SORT_COLUMNS[query.sort_by]
            ordering = column.desc() if query.order == "desc" else column.asc()
        else:
            ordering = Order.created_at.desc()

        stmt = (
            select(Order)
            .where(*conditions)
            .order_by(ordering, Order.id)
            .offset((query.page - 1) * limit)
            .limit(limit)
        )
        return session.exec(stmt).all(), total_count

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        return order

    def update_order(self, session: Session, order: Order) -> Order:
        session.add(order)
        session.flush()
        return order

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = select(OrderItem).where(OrderItem.order_id == order_id)
        return session.exec(stmt).all()

    def list_items_for_orders(
        self,
        session: Session,
        order_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, list[OrderItem]]:
        grouped: dict[uuid.UUID, list[OrderItem]] = {oid: [] for oid in order_ids}
        if not order_ids:
            return grouped
        stmt = select(OrderItem).where(OrderItem.order_id.in_(order_ids))
        for item in session.exec(stmt).all():
            grouped[item.order_id].append(item)
        return grouped

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        return items
