from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Redis (ARQ worker, optional pending-order cache backend)
    REDIS_URL: str = "redis://localhost:6379/0"

    # Auth
    JWT_SECRET: str = "test-jwt-secret"
    JWT_ALGORITHM: str = "HS256"

    # Checkout
    CURRENCY: str = "NGN"
    PENDING_ORDER_TTL_HOURS: int = 24
    PENDING_ORDER_CACHE_BACKEND: Literal["database", "redis"] = "database"

    # Payment gateways
    PAYSTACK_SECRET_KEY: Optional[str] = None
    PAYSTACK_API_BASE_URL: str = "https://api.paystack.co"
    PAYSTACK_CALLBACK_URL: Optional[str] = None
    PAYMENT_GATEWAY_TIMEOUT_SECONDS: float = 30.0
    MANUAL_TRANSFER_ACCOUNT_NAME: str = "Storefront Ltd"
    MANUAL_TRANSFER_ACCOUNT_NUMBER: str = ""
    MANUAL_TRANSFER_BANK_NAME: str = ""

    # Email
    SMTP_HOST: str = "smtp-relay.brevo.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    DEFAULT_FROM_EMAIL: str = "no-reply@storefront.local"
    DEFAULT_FROM_NAME: str = "Storefront"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
