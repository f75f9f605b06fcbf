# storefront/core/auth.py
import uuid
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session

from storefront.core.config import get_settings
from storefront.database import get_session
from storefront.models.user import User

settings = get_settings()

# Missing header resolves to "anonymous"; require_auth decides what that means.
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthenticated(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Verify a shopper's bearer token and return its claims.

    The storefront trusts tokens signed with JWT_SECRET. `exp` is honoured
    when present; the audience claim is ignored.
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise _unauthenticated("Invalid or expired token")


def _identity_from_claims(claims: dict[str, Any]) -> tuple[uuid.UUID, str]:
    sub = claims.get("sub")
    email = claims.get("email")
    if not sub or not email:
        raise _unauthenticated("Token missing sub/email")
    try:
        return uuid.UUID(sub), email
    except ValueError:
        raise _unauthenticated("Invalid sub in token")


def _provision_shopper(session: Session, user_id: uuid.UUID, email: str) -> User:
    # New identities always start as shoppers; admins are promoted by hand.
    user = User(id=user_id, email=email, name=email.split("@", 1)[0][:50], role="user")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    Map the bearer token to the owner of carts and orders.

    Anonymous requests yield None. The first request of a new token
    subject records it as a shopper, so carts and orders always have a
    users row to point at.
    """
    if credentials is None:
        return None

    user_id, email = _identity_from_claims(decode_access_token(credentials.credentials))
    user = session.get(User, user_id)
    if user is None:
        user = _provision_shopper(session, user_id, email)
    return user


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    """Cart and order routes need a shopper; anonymous callers get 401."""
    if user is None:
        raise _unauthenticated("Authentication required")
    return user


def require_admin(user: User = Depends(require_auth)) -> User:
    """Order administration (listing all orders, status changes) is admin only."""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
