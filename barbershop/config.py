"""
Centralized configuration with environment variable overrides.

Shop-wide defaults (advance notice, slot granularity, default service
duration, currency) live here and seed the per-request CompanyConfig.
The store still returns the authoritative CompanyConfig on every call;
nothing here is cached on behalf of the engine.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from barbershop.logging_context import RequestIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

MAX_SLOT_INTERVAL_MINUTES = 240


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class ShopDefaults:
    """Fallback business rules used when a CompanyConfig omits a value."""

    name: str = os.getenv("SHOP_NAME", "Classic Cuts Barbershop")
    booking_advance_hours: float = _safe_float("BOOKING_ADVANCE_HOURS", "1")
    time_slot_interval: int = _safe_int("TIME_SLOT_INTERVAL", "30")
    default_service_duration: int = _safe_int("DEFAULT_SERVICE_DURATION", "30")
    currency: str = os.getenv("CURRENCY", "BHD")


@dataclass(frozen=True)
class AvailabilityConfig:
    """Limits for multi-day availability listings."""

    max_days: int = _safe_int("MAX_AVAILABILITY_DAYS", "14")
    workers: int = _safe_int("AVAILABILITY_WORKERS", "4")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    shop: ShopDefaults = field(default_factory=ShopDefaults)
    availability: AvailabilityConfig = field(default_factory=AvailabilityConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "barbershop-booking")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.shop.booking_advance_hours < 0:
        raise ValueError(
            f"BOOKING_ADVANCE_HOURS must be >= 0, got {config.shop.booking_advance_hours}"
        )
    if not 1 <= config.shop.time_slot_interval <= MAX_SLOT_INTERVAL_MINUTES:
        raise ValueError(
            f"TIME_SLOT_INTERVAL must be between 1 and {MAX_SLOT_INTERVAL_MINUTES}, "
            f"got {config.shop.time_slot_interval}"
        )
    if config.shop.default_service_duration < 1:
        raise ValueError(
            "DEFAULT_SERVICE_DURATION must be >= 1, "
            f"got {config.shop.default_service_duration}"
        )
    if not config.shop.currency.strip():
        raise ValueError("CURRENCY must not be empty")
    if config.availability.max_days < 1:
        raise ValueError(
            f"MAX_AVAILABILITY_DAYS must be >= 1, got {config.availability.max_days}"
        )
    if config.availability.workers < 1:
        raise ValueError(
            f"AVAILABILITY_WORKERS must be >= 1, got {config.availability.workers}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] [%(request_id)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())
    logger.info("Configuration loaded for '%s'", config.shop.name)
    return config


# Singleton instance
settings = load_config()
