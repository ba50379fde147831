"""
Centralized configuration with environment variable overrides.

Scheduling windows, booking limits, and decimal precision live here.
Nothing is hardcoded in availability, booking, or notes logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class SchedulingConfig:
    """Availability expansion and listing settings."""

    availability_window_days: int = _safe_int("AVAILABILITY_WINDOW_DAYS", "90")
    max_recurring_range_days: int = _safe_int("MAX_RECURRING_RANGE_DAYS", "366")


@dataclass(frozen=True)
class BookingConfig:
    """Booking batch limits and decimal precision for totals."""

    max_sessions_per_booking: int = _safe_int("MAX_SESSIONS_PER_BOOKING", "50")
    amount_decimal_places: int = _safe_int("AMOUNT_DECIMAL_PLACES", "2")
    hours_decimal_places: int = _safe_int("HOURS_DECIMAL_PLACES", "2")
    rating_decimal_places: int = _safe_int("RATING_DECIMAL_PLACES", "1")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    booking: BookingConfig = field(default_factory=BookingConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "tutor-scheduling")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    for name, value in [
        ("AVAILABILITY_WINDOW_DAYS", config.scheduling.availability_window_days),
        ("MAX_RECURRING_RANGE_DAYS", config.scheduling.max_recurring_range_days),
        ("MAX_SESSIONS_PER_BOOKING", config.booking.max_sessions_per_booking),
    ]:
        if value < 1:
            raise ValueError(f"{name} must be >= 1, got {value}")

    for name, value in [
        ("AMOUNT_DECIMAL_PLACES", config.booking.amount_decimal_places),
        ("HOURS_DECIMAL_PLACES", config.booking.hours_decimal_places),
        ("RATING_DECIMAL_PLACES", config.booking.rating_decimal_places),
    ]:
        if value < 0:
            raise ValueError(f"{name} must be >= 0, got {value}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.app_name)
    return config


# Singleton instance
settings = load_config()
