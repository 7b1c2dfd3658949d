"""Configuration settings for Stormwatch."""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    feed_base_url: str = "https://api.weather.gov"
    feed_user_agent: str = "(stormwatch, stormwatch@example.com)"
    feed_source_name: str = "National Weather Service"
    fetch_timeout_seconds: float = 10.0
    health_timeout_seconds: float = 5.0

    cache_ttl_seconds: int = 300
    cache_max_entries: int = 1000
    historical_retention_hours: int = 24
    scheduler_interval_seconds: int = 300

    subscription_keys_raw: str = Field(default="", alias="ALERT_SUBSCRIPTIONS")

    @model_validator(mode="after")
    def _require_feed_identity(self) -> "Settings":
        for attr in ("feed_base_url", "feed_user_agent"):
            value = getattr(self, attr)
            if not value or not str(value).strip():
                raise ValueError(f"{attr} must be configured")
        for attr in (
            "fetch_timeout_seconds",
            "health_timeout_seconds",
            "cache_ttl_seconds",
            "cache_max_entries",
            "historical_retention_hours",
            "scheduler_interval_seconds",
        ):
            if getattr(self, attr) <= 0:
                raise ValueError(f"{attr} must be positive")
        self.feed_base_url = self.feed_base_url.strip().rstrip("/")
        return self

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(seconds=self.cache_ttl_seconds)

    @property
    def historical_retention(self) -> timedelta:
        return timedelta(hours=self.historical_retention_hours)

    @property
    def subscription_keys(self) -> list[str]:
        return _split_subscription_keys(self.subscription_keys_raw)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def _split_subscription_keys(value: Any) -> list[str]:
    # keys contain a comma themselves, so entries are separated by ';'
    if not value:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(";") if part.strip()]
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    raise TypeError("subscription keys must be a ';'-delimited string or list")
