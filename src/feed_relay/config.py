# ABOUTME: Centralized configuration using Pydantic Settings.
# ABOUTME: Loads polling, storage, delivery and logging settings from environment and .env.

from functools import lru_cache
from pathlib import Path

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Feed fetching
    feed_timeout: float = 10.0
    feed_max_attempts: int = 3
    feed_retry_base_delay: float = 1.0
    feed_max_bytes: int = 2 * 1024 * 1024
    feed_user_agent: str = "FeedRelay/1.0 (+https://github.com/feed-relay/feed-relay)"

    # Update engine
    min_fetch_interval: int = 300  # seconds between checks of one subscription
    seen_set_cap: int = 100
    max_concurrent_fetches: int = 4
    run_soft_deadline: float = 240.0  # remaining subscribers deferred after this
    poll_interval: int = 300  # cadence of the `watch` trigger

    # Storage
    store_dir: Path = Path("data/store")
    subscription_cache_ttl: float = 3600.0
    subscription_cache_max_entries: int = 1024

    # Notifications (Telegram Bot API)
    telegram_bot_token: SecretStr | None = None
    telegram_api_url: str = "https://api.telegram.org"
    telegram_timeout: float = 10.0
    preview_max_chars: int = 200

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"  # "console" or "json"

    # Web trigger
    trigger_token: SecretStr | None = None  # bearer token for POST /api/run


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded from environment variables and .env file.
    The Telegram token is optional - only required for delivering notifications.
    """
    return Settings()
