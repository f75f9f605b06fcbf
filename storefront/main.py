# storefront/main.py
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import DBAPIError, OperationalError

from storefront.core.config import get_settings
from storefront.core.errors import InvalidArgumentError, UnavailableError
from storefront.database import create_db_and_tables

# Import models so SQLModel metadata is populated before create_all()
from storefront.models import user as _user_models  # noqa: F401
from storefront.models import product as _product_models  # noqa: F401
from storefront.models import coupon as _coupon_models  # noqa: F401
from storefront.models import cart as _cart_models  # noqa: F401
from storefront.models import order as _order_models  # noqa: F401

# Routers
from storefront.routers.cart import router as cart_router
from storefront.routers.orders import router as orders_router

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.
    """
    logger.info("Startup: connecting to database...")
    try:
        create_db_and_tables()
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"Startup: DB connection FAILED: {e}")
        raise
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _field_path(loc) -> str:
    # ("body", "orderItems", 0, "quantity") -> "orderItems[0].quantity"
    parts = list(loc)
    if parts and parts[0] in ("body", "query", "path", "header"):
        parts = parts[1:]
    path = ""
    for part in parts:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path or "body"


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """
    Render malformed requests as invalid_argument, naming the first
    offending field.
    """
    first = exc.errors()[0]
    return await http_exception_handler(
        request,
        InvalidArgumentError(first["msg"], field=_field_path(first["loc"])),
    )


@app.exception_handler(DBAPIError)
async def storage_unavailable_handler(request: Request, exc: DBAPIError):
    """
    Report storage outages as 503 so clients know they may retry.

    An outage is an OperationalError or any driver error that invalidated
    the connection. Other database errors keep surfacing as 500.
    """
    if not isinstance(exc, OperationalError) and not exc.connection_invalidated:
        raise exc
    logger.error("Storage unavailable on %s %s: %s", request.method, request.url.path, exc)
    return await http_exception_handler(
        request, UnavailableError("Storage temporarily unavailable")
    )


# Versioned API prefix, e.g. /api/v1
app.include_router(cart_router, prefix=settings.API_V1_STR)
app.include_router(orders_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "storefront-backend"}
