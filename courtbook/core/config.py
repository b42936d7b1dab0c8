"""Application configuration via pydantic settings."""

from functools import lru_cache
from pathlib import Path

from typing import Any

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed application configuration."""

    app_env: str = Field("local", alias="APP_ENV")
    app_name: str = "Court Booking API"
    api_v1_prefix: str = "/api/v1"

    database_url: str = Field(..., alias="DATABASE_URL")
    sync_database_url: str | None = Field(default=None, alias="SYNC_DATABASE_URL")
    store_timeout_seconds: float = Field(5.0, alias="STORE_TIMEOUT_SECONDS")

    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    smtp_host: str | None = Field(default=None, alias="SMTP_HOST")
    smtp_port: int | None = Field(default=None, alias="SMTP_PORT")
    smtp_username: str | None = Field(default=None, alias="SMTP_USER")
    smtp_password: str | None = Field(default=None, alias="SMTP_PASSWORD")
    smtp_from: str | None = Field(default=None, alias="SMTP_FROM")

    venue_name: str = Field("Padel Club", alias="VENUE_NAME")
    venue_timezone: str = Field("Asia/Riyadh", alias="VENUE_TIMEZONE")
    currency: str = Field("SAR", alias="CURRENCY")

    operating_open: str = Field("09:00", alias="OPERATING_OPEN")
    operating_close: str = Field("04:00", alias="OPERATING_CLOSE")
    min_booking_minutes: int = Field(60, alias="MIN_BOOKING_MINUTES")
    booking_increment_minutes: int = Field(30, alias="BOOKING_INCREMENT_MINUTES")

    promo_default_expiry_days: int = Field(7, alias="PROMO_DEFAULT_EXPIRY_DAYS")
    max_pricing_rules: int = Field(8, alias="MAX_PRICING_RULES")

    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://localhost:3000",
        ],
        alias="CORS_ALLOW_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=False, alias="CORS_ALLOW_CREDENTIALS")
    cors_allowlist: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"], alias="CORS_ALLOWLIST"
    )

    rate_limit_default: str = Field("100/minute", alias="RATE_LIMIT_DEFAULT")
    rate_limit_booking: str = Field("20/minute", alias="RATE_LIMIT_BOOKING")

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[2] / ".env",
        case_sensitive=False,
    )

    @field_validator("cors_allow_origins", "cors_allowlist", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("operating_open", "operating_close")
    @classmethod
    def _check_clock_time(cls, value: str) -> str:
        hours, _, minutes = value.partition(":")
        if not (hours.isdigit() and minutes.isdigit()):
            raise ValueError(f"Expected HH:MM, got {value!r}")
        if int(hours) > 23 or int(minutes) > 59:
            raise ValueError(f"Expected HH:MM, got {value!r}")
        return value


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()  # type: ignore[call-arg]
