# storefront/repositories/product_repo.py
import uuid

from sqlalchemy import update
from sqlmodel import Session, select

from storefront.models.product import Product


class ProductRepository:
    """
    Data access layer for the product catalog.

    - Reads products for pricing and stock checks.
    - Moves stock/sold counters with single conditional UPDATEs so the
      database, not a read-modify-write in Python, decides whether enough
      stock is left.
    - No commits; the calling service owns the transaction.
    """

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_many(
        self,
        session: Session,
        product_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, Product]:
        if not product_ids:
            return {}
        stmt = select(Product).where(Product.id.in_(product_ids))
        return {p.id: p for p in session.exec(stmt).all()}

    def take_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        quantity: int,
    ) -> bool:
        """
        Atomically decrement count_in_stock and increment sold.

        Returns False (and changes nothing) when fewer than `quantity`
        units are left or the product does not exist.
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.count_in_stock >= quantity)
            .values(
                count_in_stock=Product.count_in_stock - quantity,
                sold=Product.sold + quantity,
            )
        )
        result = session.connection().execute(stmt)
        return result.rowcount == 1
