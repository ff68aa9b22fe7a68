"""Typed runtime settings with dotenv support and startup validation."""

from __future__ import annotations

import logging
from typing import Annotated
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class SettingsLoadError(RuntimeError):
    """Raised when runtime settings cannot be loaded or validated."""


class LedgerSettings(BaseSettings):
    """Settings for ledger computations and the station API record source.

    Environment variable names map directly to field names in uppercase.
    Example: `station_timezone` reads from `STATION_TIMEZONE`.

    Attributes:
        environment_name: Runtime environment label.
        station_timezone: IANA timezone used for local dates and naive timestamps.
        currency_code: Display currency code.
        currency_minor_units: Decimal places used when rounding for presentation.
        aging_boundaries_days: Ascending lower bounds of the overdue buckets.
        station_id: Station identifier used in station API paths.
        station_api_base_url: Base URL of the station backend.
        station_api_token: Optional bearer token for the station backend.
        station_api_timeout_seconds: HTTP request timeout.
        station_api_retry_attempts: Attempts per request before giving up.
        station_api_backoff_base_seconds: Base delay for exponential backoff.
        station_api_backoff_max_seconds: Maximum backoff delay.
        log_level: Root logging level name.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment_name: str = Field(default="development")
    station_timezone: str = Field(default="Asia/Karachi", min_length=1)
    currency_code: str = Field(default="PKR", min_length=1)
    currency_minor_units: int = Field(default=2, ge=0, le=4)
    aging_boundaries_days: Annotated[tuple[int, ...], NoDecode] = Field(default=(30, 60, 90))
    station_id: str = Field(default="default-station", min_length=1)
    station_api_base_url: str = Field(default="http://localhost:5000")
    station_api_token: str | None = Field(default=None)
    station_api_timeout_seconds: float = Field(default=30.0, gt=0)
    station_api_retry_attempts: int = Field(default=3, ge=1)
    station_api_backoff_base_seconds: float = Field(default=0.5, ge=0)
    station_api_backoff_max_seconds: float = Field(default=8.0, gt=0)
    log_level: str = Field(default="INFO")

    @field_validator("station_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        stripped_value = value.strip()
        try:
            ZoneInfo(stripped_value)
        except (ZoneInfoNotFoundError, ValueError) as error:
            raise ValueError(f"unknown timezone={stripped_value}") from error
        return stripped_value

    @field_validator("currency_code", "station_id")
    @classmethod
    def _validate_non_empty_string(cls, value: str) -> str:
        stripped_value = value.strip()
        if not stripped_value:
            raise ValueError("value must not be blank")
        return stripped_value

    @field_validator("aging_boundaries_days", mode="before")
    @classmethod
    def _split_boundaries(cls, value: object) -> object:
        if isinstance(value, str):
            return tuple(int(part) for part in value.split(",") if part.strip())
        return value

    @field_validator("aging_boundaries_days")
    @classmethod
    def _validate_boundaries(cls, value: tuple[int, ...]) -> tuple[int, ...]:
        if not value:
            raise ValueError("aging_boundaries_days must not be empty")
        if value[0] <= 0:
            raise ValueError("aging_boundaries_days must be positive")
        if any(upper <= lower for lower, upper in zip(value, value[1:])):
            raise ValueError("aging_boundaries_days must be strictly increasing")
        return value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized_value = value.strip().upper()
        if normalized_value not in logging.getLevelNamesMapping():
            raise ValueError(f"unsupported log_level={value}")
        return normalized_value

    @field_validator("station_api_backoff_max_seconds")
    @classmethod
    def _validate_backoff_cap_bounds(cls, value: float, info) -> float:
        backoff_base_seconds = float(info.data.get("station_api_backoff_base_seconds", 0.5))
        if value < backoff_base_seconds:
            raise ValueError(
                "station_api_backoff_max_seconds must be greater than or equal to station_api_backoff_base_seconds"
            )
        return value


def config_load_settings() -> LedgerSettings:
    """Load and validate runtime settings from environment and dotenv.

    Returns:
        LedgerSettings: Validated runtime settings object.

    Raises:
        SettingsLoadError: Raised when settings are missing or invalid.
    """

    try:
        return LedgerSettings()
    except ValidationError as error:
        raise SettingsLoadError(
            f"Startup configuration validation failed. Update .env or environment variables. Details: {error}"
        ) from error


def config_configure_logging(settings: LedgerSettings) -> None:
    """Apply the configured log level to the root logger.

    Args:
        settings: Validated runtime settings.

    Returns:
        None: Configures logging as side effect.

    Raises:
        ValueError: Raised when settings is None.
    """

    if settings is None:
        raise ValueError("settings must not be None")
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logging.getLogger().setLevel(settings.log_level)
