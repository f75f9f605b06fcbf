# storefront/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Local mirror of an authenticated customer.

    Identity comes from the bearer token ("sub" claim); this row only
    records who owns carts and orders and whether they may administer
    orders. Rows are created on first sight by the auth dependency.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches the token subject",
    )

    email: str = Field(
        unique=True,
        index=True,
    )

    name: str = Field(max_length=50)

    # user | admin
    role: str = Field(
        default="user",
        index=True,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
