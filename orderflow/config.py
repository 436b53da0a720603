"""orderflow configuration"""

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from ORDERFLOW_* environment variables or .env"""

    model_config = SettingsConfigDict(
        env_prefix="ORDERFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Persistence
    database_url: str = "sqlite+aiosqlite:///:memory:"
    store_timeout_seconds: float = 10.0

    # Commit guard: how long a placed order's receipt is replayed for a session
    commit_guard_ttl_seconds: float = 24 * 3600

    # Confirmation email
    notification_retry_times: int = 3
    notification_retry_delay_seconds: float = 2.0
    notification_timeout_seconds: float = 15.0

    # Storefront
    order_number_prefix: str = "ORD"
    default_city: str = "Kuwait"
    card_payments_enabled: bool = False

    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Install the root handler; call once from the embedding application."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


__all__ = ("Settings", "get_settings", "configure_logging")
