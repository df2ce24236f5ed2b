# backend/barberbook/core/config.py
from decimal import Decimal
import logging
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_BACKEND_ROOT = Path(__file__).resolve().parents[2]

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Runtime settings for the booking core, read from the environment or backend/.env."""

    model_config = SettingsConfigDict(
        env_file=_BACKEND_ROOT / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: str = Field(default="development", description="Deployment environment name")
    database_url: str = Field(default="sqlite:///./barberbook.db")
    redis_url: Optional[str] = Field(
        default=None, description="Redis URL; in-memory cache is used when unset"
    )
    log_level: str = "INFO"

    # Pricing
    default_currency: str = Field(default="USD", min_length=3, max_length=3)
    default_tax_rate: Decimal = Decimal("0.08")

    # Scheduling rules
    booking_buffer_minutes: int = Field(default=15, ge=0)
    min_booking_duration_minutes: int = Field(default=15, gt=0)
    max_booking_duration_minutes: int = Field(default=480, gt=0)
    min_advance_booking_hours: int = Field(default=1, ge=0)
    max_advance_booking_days: int = Field(default=30, gt=0)
    enforce_advance_notice: bool = True

    # Business hours used when suggesting alternative slots (UTC hours)
    business_hours_start: int = Field(default=9, ge=0, le=23)
    business_hours_end: int = Field(default=18, ge=1, le=24)
    time_slot_interval_minutes: int = Field(default=30, gt=0)

    # Cache
    provider_cache_ttl_seconds: int = Field(default=900, gt=0)

    # Cancellation policy
    cancellation_notice_hours: int = Field(default=24, ge=0)
    late_cancellation_fee_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)

    @field_validator("default_tax_rate")
    @classmethod
    def _validate_tax_rate(cls, value: Decimal) -> Decimal:
        if value < 0 or value > 1:
            raise ValueError("default_tax_rate must be between 0 and 1")
        return value

    @field_validator("default_currency")
    @classmethod
    def _normalize_currency(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def _validate_ranges(self) -> "Settings":
        if self.min_booking_duration_minutes > self.max_booking_duration_minutes:
            raise ValueError(
                "min_booking_duration_minutes cannot exceed max_booking_duration_minutes"
            )
        if self.business_hours_start >= self.business_hours_end:
            raise ValueError("business_hours_start must be before business_hours_end")
        return self

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def resolved_database_url(self) -> str:
        """Resolve relative SQLite paths against the backend directory."""
        url = self.database_url
        if url.startswith("sqlite:///./"):
            relative_path = url.replace("sqlite:///./", "")
            return f"sqlite:///{_BACKEND_ROOT / relative_path}"
        return url


settings = Settings()
