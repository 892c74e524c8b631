"""Configuration management service with Pydantic Settings.

This module provides centralized configuration management for the Whale
Swap Tracker, loading and validating environment variables at startup.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from whale_swap_tracker.ingestor.feed import DEFAULT_FEED_URL
from whale_swap_tracker.pricing.sources import (
    DEFAULT_PRIMARY_URL,
    DEFAULT_SECONDARY_URL,
    MAX_BATCH_SIZE,
)
from whale_swap_tracker.tokens import NATIVE_FALLBACK_PRICE_USD

_ENV_FILE = ".env"
_ENV_FILE_ENCODING = "utf-8"


def _validate_http_url(v: str) -> str:
    if not v.startswith(("http://", "https://")):
        raise ValueError("URL must be an HTTP(S) endpoint")
    return v


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    url: str = Field(
        alias="DATABASE_URL",
        description="PostgreSQL connection string",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate database URL format."""
        if not v.startswith(("postgresql://", "postgresql+asyncpg://")):
            raise ValueError("DATABASE_URL must be a PostgreSQL connection string")
        return v


class RedisSettings(BaseSettings):
    """Redis connection settings."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    url: str | None = Field(
        default=None,
        alias="REDIS_URL",
        description="Redis connection string, required for the redis history backend",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        """Validate Redis URL format."""
        if v is not None and not v.startswith(("redis://", "rediss://")):
            raise ValueError("REDIS_URL must start with redis:// or rediss://")
        return v


class FeedSettings(BaseSettings):
    """Whale swap feed settings."""

    model_config = SettingsConfigDict(env_prefix="SWAP_FEED_", extra="ignore")

    url: str = Field(
        default=DEFAULT_FEED_URL,
        alias="SWAP_FEED_URL",
        description="HTTP endpoint returning the JSON array of recent swaps",
    )
    poll_interval_seconds: float = Field(
        default=10.0,
        alias="POLL_INTERVAL_SECONDS",
        ge=1.0,
        le=3600.0,
        description="Seconds between poll cycles",
    )
    timeout_seconds: float = Field(
        default=10.0,
        alias="SWAP_FEED_TIMEOUT_SECONDS",
        gt=0.0,
        le=120.0,
        description="Total timeout for one feed request",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return _validate_http_url(v)


class PriceSettings(BaseSettings):
    """Price enrichment settings."""

    model_config = SettingsConfigDict(env_prefix="PRICE_", extra="ignore")

    primary_url: str = Field(
        default=DEFAULT_PRIMARY_URL,
        alias="PRICE_PRIMARY_URL",
        description="Bulk price endpoint (Jupiter price v3)",
    )
    secondary_url: str = Field(
        default=DEFAULT_SECONDARY_URL,
        alias="PRICE_SECONDARY_URL",
        description="Per-token market data endpoint (DexScreener)",
    )
    batch_size: int = Field(
        default=MAX_BATCH_SIZE,
        alias="PRICE_BATCH_SIZE",
        ge=1,
        le=MAX_BATCH_SIZE,
        description="Mints per bulk price request",
    )
    bulk_timeout_seconds: float = Field(
        default=5.0,
        alias="PRICE_BULK_TIMEOUT_SECONDS",
        gt=0.0,
        le=60.0,
    )
    item_timeout_seconds: float = Field(
        default=3.0,
        alias="PRICE_ITEM_TIMEOUT_SECONDS",
        gt=0.0,
        le=60.0,
    )
    max_concurrency: int = Field(
        default=10,
        alias="PRICE_MAX_CONCURRENCY",
        ge=1,
        le=100,
        description="Concurrent outbound price requests",
    )
    native_fallback_usd: Decimal = Field(
        default=NATIVE_FALLBACK_PRICE_USD,
        alias="PRICE_NATIVE_FALLBACK_USD",
        gt=Decimal("0"),
        description="SOL price used when no live price is available",
    )

    @field_validator("primary_url", "secondary_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return _validate_http_url(v)


class DeliverySettings(BaseSettings):
    """Alert delivery and duplicate suppression settings."""

    model_config = SettingsConfigDict(env_prefix="DELIVERY_", extra="ignore")

    history_backend: Literal["memory", "redis"] = Field(
        default="memory",
        alias="DELIVERY_HISTORY_BACKEND",
        description="Where delivered swap ids are remembered",
    )
    history_capacity: int = Field(
        default=100,
        alias="DELIVERY_HISTORY_CAPACITY",
        ge=1,
        le=100_000,
    )
    history_evict: int = Field(
        default=50,
        alias="DELIVERY_HISTORY_EVICT",
        ge=1,
        le=100_000,
        description="Oldest ids dropped when the history overflows",
    )
    user_concurrency: int = Field(
        default=20,
        alias="DELIVERY_USER_CONCURRENCY",
        ge=1,
        le=1000,
        description="Users evaluated concurrently per cycle",
    )


class TelegramSettings(BaseSettings):
    """Telegram notification settings."""

    model_config = SettingsConfigDict(env_prefix="TELEGRAM_", extra="ignore")

    bot_token: SecretStr | None = Field(
        default=None,
        alias="TELEGRAM_BOT_TOKEN",
        description="Telegram bot token",
    )

    @property
    def enabled(self) -> bool:
        """Check if Telegram notifications are enabled."""
        return self.bot_token is not None


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from whale_swap_tracker.config import get_settings

        settings = get_settings()
        print(settings.feed.url)
        print(settings.log_level)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding=_ENV_FILE_ENCODING,
        extra="ignore",
    )

    # Nested groups need the same env_file, otherwise they only read the
    # process environment.
    database: DatabaseSettings = Field(
        default_factory=lambda: DatabaseSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    redis: RedisSettings = Field(
        default_factory=lambda: RedisSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    feed: FeedSettings = Field(
        default_factory=lambda: FeedSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    price: PriceSettings = Field(
        default_factory=lambda: PriceSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    delivery: DeliverySettings = Field(
        default_factory=lambda: DeliverySettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    telegram: TelegramSettings = Field(
        default_factory=lambda: TelegramSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )

    # Application settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )
    dry_run: bool = Field(
        default=False,
        alias="DRY_RUN",
        description="Run without sending actual alerts",
    )

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level

    def redacted_summary(self) -> dict[str, str | dict[str, str]]:
        """Get a summary of settings with secrets redacted.

        Returns:
            Dictionary of settings with sensitive values masked.
        """
        return {
            "database_url": self._redact_url(self.database.url),
            "redis_url": self._redact_url(self.redis.url) if self.redis.url else "unset",
            "feed": {
                "url": self.feed.url,
                "poll_interval_seconds": str(self.feed.poll_interval_seconds),
            },
            "price": {
                "primary_url": self.price.primary_url,
                "secondary_url": self.price.secondary_url,
                "batch_size": str(self.price.batch_size),
                "max_concurrency": str(self.price.max_concurrency),
            },
            "delivery": {
                "history_backend": self.delivery.history_backend,
                "history_capacity": str(self.delivery.history_capacity),
                "user_concurrency": str(self.delivery.user_concurrency),
            },
            "telegram_enabled": str(self.telegram.enabled),
            "log_level": self.log_level,
            "dry_run": str(self.dry_run),
        }

    def validate_requirements(self, *, command: Literal["run", "once", "init-db"]) -> None:
        """Validate command-specific requirements.

        Raises:
            ValueError: If a capability the command needs is not configured.
        """
        if self.delivery.history_evict > self.delivery.history_capacity:
            raise ValueError("DELIVERY_HISTORY_EVICT must not exceed DELIVERY_HISTORY_CAPACITY")

        if self.delivery.history_backend == "redis" and not self.redis.url:
            raise ValueError("REDIS_URL is required when DELIVERY_HISTORY_BACKEND is redis")

        if command in ("run", "once") and not self.dry_run and not self.telegram.enabled:
            raise ValueError("TELEGRAM_BOT_TOKEN is required unless DRY_RUN is set")

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact password from URL if present."""
        if "@" in url and "://" in url:
            protocol_end = url.index("://") + 3
            at_pos = url.index("@")
            creds_part = url[protocol_end:at_pos]
            if ":" in creds_part:
                username = creds_part.split(":")[0]
                return f"{url[:protocol_end]}{username}:***@{url[at_pos + 1 :]}"
        return url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If required environment variables are missing
            or have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
