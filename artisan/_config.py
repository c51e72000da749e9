# artisan/_config.py

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Core settings.
    Loads values from environment variables (ARTISAN_ prefix, .env file)
    """
    model_config = SettingsConfigDict(
        env_prefix="ARTISAN_",
        env_file=".env",
        extra="ignore",
    )

    LOG_LEVEL: str = "INFO"

    # Query cache
    STALE_AFTER_SECONDS: float = Field(default=120.0, ge=0)
    CACHE_MAX_SIZE: int = Field(default=1000, ge=1)

    # Remote calls
    REMOTE_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)
    IDEMPOTENT_RETRY_ATTEMPTS: int = Field(default=3, ge=1)
    IDEMPOTENT_RETRY_DELAY_SECONDS: float = Field(default=0.2, ge=0)

    # Live session listings re-fetch interval
    LIVE_REFRESH_SECONDS: float = Field(default=30.0, gt=0)

    # Checkout
    PLATFORM_FEE_PERCENT: int = Field(default=8, ge=0, le=100)
    CURRENCY: str = "INR"
    MINOR_UNITS: int = Field(default=100, ge=1)  # paise per rupee
    MAX_ORDER_QUANTITY: int = Field(default=10, ge=1)
    REQUIRE_PAYMENT_PROOF: bool = False

    # Reference SQL store
    DATABASE_URL: str = "sqlite+aiosqlite:///:memory:"


@lru_cache
def get_settings() -> Settings:
    return Settings()


__all__ = ("Settings", "get_settings")
