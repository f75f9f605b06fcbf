import os
import uuid
from datetime import datetime, timedelta, timezone

# Settings are read at import time; point them at an in-memory DB first.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlmodel import Session, SQLModel

from storefront.core.config import get_settings
from storefront.database import engine
from storefront.main import app
from storefront.models.coupon import Coupon
from storefront.models.order import Order
from storefront.models.product import Product
from storefront.models.user import User

API = get_settings().API_V1_STR


@pytest.fixture(autouse=True)
def fresh_db():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def make_token(user_id: uuid.UUID, email: str) -> str:
    settings = get_settings()
    claims = {
        "sub": str(user_id),
        "email": email,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def auth_headers(user_id: uuid.UUID, email: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, email)}"}


@pytest.fixture
def customer_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def customer(customer_id) -> dict[str, str]:
    return auth_headers(customer_id, "alice@example.com")


@pytest.fixture
def other_customer() -> dict[str, str]:
    return auth_headers(uuid.uuid4(), "bob@example.com")


@pytest.fixture
def admin() -> dict[str, str]:
    admin_id = uuid.uuid4()
    with Session(engine) as s:
        s.add(User(id=admin_id, email="admin@example.com", name="admin", role="admin"))
        s.commit()
    return auth_headers(admin_id, "admin@example.com")


@pytest.fixture
def make_product():
    def _make(**overrides) -> uuid.UUID:
        values = {
            "name": "Widget",
            "category": "gadgets",
            "price": 10.0,
            "discount": 0,
            "count_in_stock": 10,
        }
        values.update(overrides)
        product = Product(**values)
        with Session(engine) as s:
            s.add(product)
            s.commit()
            return product.id

    return _make


@pytest.fixture
def make_coupon():
    def _make(**overrides) -> uuid.UUID:
        now = datetime.now(timezone.utc)
        values = {
            "code": "SAVE20",
            "discount_type": "percentage",
            "discount_value": 20,
            "start_date": now - timedelta(days=1),
            "end_date": now + timedelta(days=7),
        }
        values.update(overrides)
        coupon = Coupon(**values)
        with Session(engine) as s:
            s.add(coupon)
            s.commit()
            return coupon.id

    return _make


def load(model, obj_id):
    with Session(engine) as s:
        return s.get(model, obj_id)


def load_product(product_id) -> Product:
    return load(Product, product_id)


def load_coupon(coupon_id) -> Coupon:
    return load(Coupon, coupon_id)


def load_order(order_id) -> Order:
    return load(Order, order_id)
