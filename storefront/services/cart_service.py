# storefront/services/cart_service.py
import logging
import uuid
from datetime import datetime, timezone

from sqlmodel import Session

from storefront.core.errors import (
    CouponRuleViolationError,
    InsufficientStockError,
    InvalidArgumentError,
    NotFoundError,
)
from storefront.models.cart import Cart, CartItem
from storefront.models.coupon import Coupon
from storefront.models.product import Product
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.coupon_repo import CouponRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.cart import (
    AppliedCouponRead,
    CartItemCreate,
    CartItemRead,
    CartItemUpdate,
    CartProductRead,
    CartRead,
)
from storefront.services import coupon_rules
from storefront.services.pricing import calculate_totals, effective_price, line_total

logger = logging.getLogger(__name__)


class CartService:
    """
    Business logic for cart operations.

    Responsibilities:
      - lazily create the one cart per user
      - validate product existence, quantity and stock on every mutation
      - merge repeated adds of the same product
      - apply/remove coupons (validity, minimum purchase, usage limit)
      - price the cart against the current catalog on every read

    Concurrency:
      - mutations lock the cart row first, so two requests for the same
        user cannot interleave read-merge-write of a line
      - stock is checked at mutation time only; it can still change before
        checkout, where it is checked again atomically
    """

    def __init__(
        self,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        coupon_repo: CouponRepository,
    ):
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.coupon_repo = coupon_repo

    # ---- internal helpers ----

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    @staticmethod
    def _ensure_positive(quantity: int) -> None:
        if quantity <= 0:
            raise InvalidArgumentError(
                "Quantity must be greater than 0",
                field="quantity",
            )

    @staticmethod
    def _ensure_stock(product: Product, quantity: int) -> None:
        if product.count_in_stock < quantity:
            raise InsufficientStockError(
                "Not enough items in stock",
                productId=str(product.id),
                requested=quantity,
                available=product.count_in_stock,
            )

    def _get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.product_repo.get_by_id(session, product_id)
        if not product:
            raise NotFoundError("Product not found", productId=str(product_id))
        return product

    def _priced_lines(
        self,
        session: Session,
        cart: Cart,
    ) -> list[tuple[Product, int]]:
        items = self.cart_repo.list_items(session, cart.id)
        products = self.product_repo.get_many(
            session, [it.product_id for it in items]
        )
        lines = []
        for it in items:
            product = products.get(it.product_id)
            if product is None:
                # Kept in storage so the shopper can still remove the line
                logger.warning(
                    "Cart %s holds product %s which is no longer in the catalog",
                    cart.id,
                    it.product_id,
                )
                continue
            lines.append((product, it.quantity))
        return lines

    def _build_cart_dto(
        self,
        session: Session,
        cart: Cart,
        coupon: Coupon | None = None,
    ) -> CartRead:
        """
        Price the cart against current product data.

        If `coupon` is not given, the coupon stored on the cart is loaded
        and only counts while it is still active, in its window and the
        subtotal meets its minimum purchase.
        """
        lines = self._priced_lines(session, cart)

        if coupon is None and cart.coupon_id is not None:
            coupon = self.coupon_repo.get_by_id(session, cart.coupon_id)

        totals = calculate_totals(lines)
        if coupon is not None and coupon_rules.still_discounts(
            coupon, totals.subtotal, self._now()
        ):
            totals = calculate_totals(lines, coupon)

        items = [
            CartItemRead(
                product=CartProductRead(
                    id=product.id,
                    name=product.name,
                    image=product.image,
                    price=product.price,
                    discount=product.discount,
                    count_in_stock=product.count_in_stock,
                ),
                quantity=quantity,
                unit_price=round(effective_price(product.price, product.discount), 2),
                line_total=line_total(product, quantity),
            )
            for product, quantity in lines
        ]

        coupon_dto = None
        if coupon is not None:
            coupon_dto = AppliedCouponRead(
                code=coupon.code,
                discount_type=coupon.discount_type,
                discount_value=coupon.discount_value,
            )

        return CartRead(
            items=items,
            subtotal=totals.subtotal,
            discount=totals.discount,
            total=totals.total,
            item_count=totals.item_count,
            coupon=coupon_dto,
        )

    # ---- public operations ----

    def get_cart(self, session: Session, user_id: uuid.UUID) -> CartRead:
        """
        Return the user's priced cart, creating an empty one if needed.
        """
        cart = self.cart_repo.get_or_create(session, user_id)
        return self._build_cart_dto(session, cart)

    def add_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: CartItemCreate,
    ) -> CartRead:
        """
        Add a product to the user's cart.

        Rules:
          - product must exist
          - quantity must be > 0
          - requested quantity <= count_in_stock
          - adding a product already in the cart adds the quantities,
            and the merged quantity must still fit in stock
        """
        product = self._get_product(session, payload.product_id)
        self._ensure_positive(payload.quantity)
        self._ensure_stock(product, payload.quantity)

        cart = self.cart_repo.get_or_create(session, user_id, for_update=True)
        existing = self.cart_repo.get_item(session, cart.id, product.id)

        self.cart_repo.touch(session, cart)
        if existing:
            new_qty = existing.quantity + payload.quantity
            self._ensure_stock(product, new_qty)
            existing.quantity = new_qty
            self.cart_repo.update_item(session, existing)
        else:
            self.cart_repo.create_item(
                session,
                CartItem(
                    cart_id=cart.id,
                    product_id=product.id,
                    quantity=payload.quantity,
                ),
            )

        return self._build_cart_dto(session, cart)

    def update_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
        payload: CartItemUpdate,
    ) -> CartRead:
        """
        Replace the quantity of a line already in the cart.

        A quantity of 0 is rejected; use remove_item to drop a line.
        """
        self._ensure_positive(payload.quantity)

        cart = self.cart_repo.get_for_user(session, user_id, for_update=True)
        if not cart:
            raise NotFoundError("Cart not found")

        item = self.cart_repo.get_item(session, cart.id, product_id)
        if not item:
            raise NotFoundError("Item not found in cart", productId=str(product_id))

        product = self._get_product(session, product_id)
        self._ensure_stock(product, payload.quantity)

        item.quantity = payload.quantity
        self.cart_repo.touch(session, cart)
        self.cart_repo.update_item(session, item)

        return self._build_cart_dto(session, cart)

    def remove_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
    ) -> CartRead:
        """
        Remove a product from the cart if present.
        Removing a product that is not in the cart is not an error.
        """
        cart = self.cart_repo.get_or_create(session, user_id, for_update=True)
        item = self.cart_repo.get_item(session, cart.id, product_id)
        if item:
            self.cart_repo.touch(session, cart)
            self.cart_repo.delete_item(session, item)
        return self._build_cart_dto(session, cart)

    def clear_cart(self, session: Session, user_id: uuid.UUID) -> CartRead:
        """
        Empty the cart and drop any applied coupon.
        """
        cart = self.cart_repo.get_or_create(session, user_id, for_update=True)
        self.cart_repo.clear(session, cart)
        return CartRead()

    def apply_coupon(
        self,
        session: Session,
        user_id: uuid.UUID,
        code: str,
    ) -> CartRead:
        """
        Attach a coupon to the cart and count one use of it.

        Checks, in order:
          1. code exists, is active and inside its date window
          2. cart subtotal (before coupon) >= minimum_purchase
          3. usage_count < usage_limit (when a limit is set)

        The use is counted even if the coupon is later removed from the
        cart; removal never gives the use back.
        """
        coupon = coupon_rules.ensure_redeemable(
            self.coupon_repo.get_by_code(session, code), self._now()
        )

        cart = self.cart_repo.get_or_create(session, user_id, for_update=True)
        subtotal = calculate_totals(self._priced_lines(session, cart)).subtotal
        coupon_rules.ensure_rules_met(coupon, subtotal)

        if not self.coupon_repo.increment_usage(session, coupon):
            session.rollback()
            raise CouponRuleViolationError(
                "This coupon has reached its usage limit",
                usageLimit=coupon.usage_limit,
            )

        cart.coupon_id = coupon.id
        self.cart_repo.touch(session, cart)
        session.commit()
        session.refresh(coupon)

        logger.info(
            "Coupon %s applied to cart %s (uses %s/%s)",
            coupon.code,
            cart.id,
            coupon.usage_count,
            coupon.usage_limit if coupon.usage_limit is not None else "-",
        )
        return self._build_cart_dto(session, cart, coupon)

    def remove_coupon(self, session: Session, user_id: uuid.UUID) -> CartRead:
        """
        Detach the coupon from the cart. usage_count is left as is.
        """
        cart = self.cart_repo.get_or_create(session, user_id, for_update=True)
        if cart.coupon_id is not None:
            cart.coupon_id = None
            self.cart_repo.touch(session, cart)
            session.commit()
        return self._build_cart_dto(session, cart)
