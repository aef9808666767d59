from collections.abc import Callable
from dataclasses import dataclass, field

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "recurring"
    version: str = "0.1.0"
    DEBUG: bool = False
    APP_DATABASE_DSN: str = "sqlite:////tmp/recurring.db"
    REDIS_URL: str = "redis://localhost:6379"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Checkout backend used by the installment worker
    CHECKOUT_BACKEND: str = "manual"

    # Skip limits
    MAXIMUM_SUCCESSIVE_SKIPS: int = 1
    MAXIMUM_TOTAL_SKIPS: int = 9999

    # Comma-separated payment source types accepted on new subscriptions
    PAYMENT_SOURCE_TYPES: str = "credit_card,bank_account,store_credit"


settings = Settings()


@dataclass(frozen=True)
class SubscriptionConfig:
    """Limits and hooks handed to subscription services for one operation."""

    maximum_successive_skips: int = 1
    maximum_total_skips: int = 9999
    # Called with the raised error when installment checkout fails.
    # Re-raise inside the handler to abort the batch.
    process_job_error_handler: Callable[[Exception], None] | None = None
    payment_source_types: frozenset[str] = field(
        default_factory=lambda: frozenset({"credit_card", "bank_account", "store_credit"})
    )


def get_subscription_config() -> SubscriptionConfig:
    """Build a SubscriptionConfig snapshot from the current settings."""
    return SubscriptionConfig(
        maximum_successive_skips=settings.MAXIMUM_SUCCESSIVE_SKIPS,
        maximum_total_skips=settings.MAXIMUM_TOTAL_SKIPS,
        payment_source_types=frozenset(
            t.strip() for t in settings.PAYMENT_SOURCE_TYPES.split(",") if t.strip()
        ),
    )
