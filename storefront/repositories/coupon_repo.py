# storefront/repositories/coupon_repo.py
import uuid

from sqlalchemy import or_, update
from sqlmodel import Session, select

from storefront.models.coupon import Coupon


class CouponRepository:
    """
    Data access layer for coupons.

    NOTE:
      - Codes are matched upper-cased.
      - No commits here; the cart service commits together with the cart.
    """

    @staticmethod
    def normalize_code(code: str) -> str:
        return code.strip().upper()

    def get_by_code(self, session: Session, code: str) -> Coupon | None:
        stmt = select(Coupon).where(Coupon.code == self.normalize_code(code))
        return session.exec(stmt).first()

    def get_by_id(self, session: Session, coupon_id: uuid.UUID) -> Coupon | None:
        return session.get(Coupon, coupon_id)

    def increment_usage(self, session: Session, coupon: Coupon) -> bool:
        """
        Count one more use of the coupon, unless its usage limit is reached.

        The limit check and the increment happen in a single UPDATE, so two
        carts racing for the last use cannot both get it.

        Returns:
            True if the use was recorded.
        """
        stmt = (
            update(Coupon)
            .where(
                Coupon.id == coupon.id,
                or_(
                    Coupon.usage_limit.is_(None),
                    Coupon.usage_count < Coupon.usage_limit,
                ),
            )
            .values(usage_count=Coupon.usage_count + 1)
        )
        result = session.connection().execute(stmt)
        if result.rowcount != 1:
            return False
        session.expire(coupon, ["usage_count"])
        return True
