# storefront/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (SQLAlchemy URL, Postgres in production)
      - JWT_SECRET (secret used to verify bearer tokens)

    Optional:
      - DATABASE_REQUIRE_SSL (append sslmode=require to Postgres URLs)
      - CORS_ORIGINS, LOG_LEVEL, ORDERS_PAGE_SIZE, ORDERS_MAX_PAGE_SIZE
    """

    PROJECT_NAME: str = "Storefront API"
    API_V1_STR: str = "/api/v1"

    # DB config
    DATABASE_URL: str
    DATABASE_REQUIRE_SSL: bool = True
    DATABASE_ECHO: bool = False

    # JWT verification (backend-side)
    JWT_SECRET: str
    JWT_ALG: str = "HS256"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    LOG_LEVEL: str = "INFO"

    # Admin order listing
    ORDERS_PAGE_SIZE: int = 10
    ORDERS_MAX_PAGE_SIZE: int = 100

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
