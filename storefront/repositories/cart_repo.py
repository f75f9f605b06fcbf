# storefront/repositories/cart_repo.py
import uuid
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from storefront.models.cart import Cart, CartItem


class CartRepository:

    # Cart rows
    def get_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> Cart | None:
        """
        Load the user's cart.

        With for_update=True the row is locked (SELECT ... FOR UPDATE) until
        the transaction ends, which serializes concurrent mutations of the
        same cart. SQLite ignores the lock clause.
        """
        stmt = select(Cart).where(Cart.user_id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        return session.exec(stmt).first()

    def get_or_create(
        self,
        session: Session,
        user_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> Cart:
        cart = self.get_for_user(session, user_id, for_update=for_update)
        if cart is not None:
            return cart

        cart = Cart(user_id=user_id)
        session.add(cart)
        try:
            session.commit()
        except IntegrityError:
            # Another request created it first
            session.rollback()
            return self.get_for_user(session, user_id, for_update=for_update)

        session.refresh(cart)
        if for_update:
            return self.get_for_user(session, user_id, for_update=True)
        return cart

    def touch(self, session: Session, cart: Cart) -> None:
        cart.updated_at = datetime.now(timezone.utc)
        session.add(cart)

    # Items
    def list_items(self, session: Session, cart_id: uuid.UUID) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .where(CartItem.cart_id == cart_id)
            .order_by(CartItem.created_at)
        )
        return session.exec(stmt).all()

    def get_item(
        self, session: Session, cart_id: uuid.UUID, product_id: uuid.UUID
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.cart_id == cart_id, CartItem.product_id == product_id
        )
        return session.exec(stmt).first()

    # CRUD
    def create_item(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    def update_item(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    def delete_item(self, session: Session, item: CartItem) -> None:
        session.delete(item)
        session.commit()

    def clear(self, session: Session, cart: Cart, *, commit: bool = True) -> None:
        """
        Remove every line and the applied coupon.

        commit=False leaves the changes pending so checkout can empty the
        cart in the same transaction that creates the order.
        """
        for row in self.list_items(session, cart.id):
            session.delete(row)
        cart.coupon_id = None
        self.touch(session, cart)
        if commit:
            session.commit()
