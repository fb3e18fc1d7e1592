from dataclasses import dataclass
from datetime import timedelta, tzinfo
from functools import lru_cache

import pytz
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True, slots=True)
class SchedulerSettings:
    """Immutable scheduling options handed to the engines."""
    new_items_per_day_goal: int = 20
    reviews_per_day_goal: int = 50
    recovery_snapshot_ttl: timedelta | None = None  # None = end of the snapshot's calendar day
    quick_review_limit: int = 20
    store_retry_attempts: int = 3
    store_retry_base_delay: float = 0.2
    store_timeout: float = 10.0
    day_timezone: tzinfo = pytz.utc  # learner's calendar day for goals, stats and expiry


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./recall.db"

    # Backend
    BACKEND_HOST: str = "0.0.0.0"
    BACKEND_PORT: int = 8000
    APP_DEBUG: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # True for production (structured JSON), False for dev (colored)
    LOG_SQL: bool = False   # Enable SQLAlchemy query logging

    # Scheduling
    NEW_ITEMS_PER_DAY_GOAL: int = 20
    REVIEWS_PER_DAY_GOAL: int = 50
    RECOVERY_SNAPSHOT_TTL_MINUTES: int | None = None
    QUICK_REVIEW_LIMIT: int = 20
    TIMEZONE: str = "UTC"  # IANA name, e.g. "Europe/Madrid"

    # Item store access
    STORE_RETRY_ATTEMPTS: int = 3
    STORE_RETRY_BASE_DELAY_SECONDS: float = 0.2
    STORE_TIMEOUT_SECONDS: float = 10.0

    @field_validator("TIMEZONE")
    @classmethod
    def known_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError as e:
            raise ValueError(f"unknown timezone '{value}'") from e
        return value

    @property
    def is_production(self) -> bool:
        return not self.APP_DEBUG

    def scheduler_settings(self) -> SchedulerSettings:
        ttl = None
        if self.RECOVERY_SNAPSHOT_TTL_MINUTES is not None:
            ttl = timedelta(minutes=self.RECOVERY_SNAPSHOT_TTL_MINUTES)
        return SchedulerSettings(
            new_items_per_day_goal=self.NEW_ITEMS_PER_DAY_GOAL,
            reviews_per_day_goal=self.REVIEWS_PER_DAY_GOAL,
            recovery_snapshot_ttl=ttl,
            quick_review_limit=self.QUICK_REVIEW_LIMIT,
            store_retry_attempts=self.STORE_RETRY_ATTEMPTS,
            store_retry_base_delay=self.STORE_RETRY_BASE_DELAY_SECONDS,
            store_timeout=self.STORE_TIMEOUT_SECONDS,
            day_timezone=pytz.timezone(self.TIMEZONE),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
