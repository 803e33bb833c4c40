# backend/appointments/core/config.py
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import pytz


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


_BACKEND_ROOT = Path(__file__).resolve().parents[2]

logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = _BACKEND_ROOT / ".env"
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


class Settings(BaseSettings):
    """Runtime configuration for the appointments backend."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field(default="development", alias="ENVIRONMENT")
    is_testing: bool = Field(default=False, validation_alias=AliasChoices("is_testing", "IS_TESTING"))
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    database_url: str = Field(
        default="sqlite:///./appointments.db",
        validation_alias=AliasChoices("DATABASE_URL", "database_url"),
    )
    test_database_url: Optional[str] = Field(default=None, alias="TEST_DATABASE_URL")
    db_pool_size: int = Field(default=5, ge=1)
    db_max_overflow: int = Field(default=10, ge=0)

    # Tenants without a resolved timezone fall back to this zone
    default_timezone: str = Field(default="UTC", alias="DEFAULT_TIMEZONE")

    reference_code_length: int = Field(default=8, ge=4, le=32)
    reference_code_max_attempts: int = Field(default=5, ge=1, le=50)

    available_dates_horizon_days: int = Field(default=30, ge=1, le=366)
    upcoming_window_days: int = Field(default=7, ge=1)
    reminder_lead_hours: int = Field(default=24, ge=1)

    # Reschedule only re-checks booking conflicts unless this is switched on
    reschedule_enforces_rule_window: bool = Field(
        default=False, alias="RESCHEDULE_ENFORCES_RULE_WINDOW"
    )

    event_dispatch_workers: int = Field(default=4, ge=0, le=64)

    @field_validator("default_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = (value or "INFO").strip().upper()
        if not isinstance(logging.getLevelName(normalized), int):
            raise ValueError(f"Unknown log level: {value}")
        return normalized

    def get_database_url(self) -> str:
        """Return the URL the engine should bind to (test URL wins under pytest)."""
        if (self.is_testing or is_running_tests()) and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()
