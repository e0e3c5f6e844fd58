"""
Centralized configuration with environment variable overrides.

Clinic hours, storage and notification settings are configurable here.
Nothing is hardcoded in the engine, store or dispatcher.
"""

import logging
import os
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from clinic_booking.logging_context import RequestIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("memory", "file", "redis")
NOTIFY_TRANSPORTS = ("log", "whatsapp", "webhook")


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


def _safe_bool(env_var: str, default: str) -> bool:
    raw = os.getenv(env_var, default).strip().lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"Invalid boolean for {env_var}: {raw!r}")


@dataclass(frozen=True)
class ClinicConfig:
    """Clinic identity, operating window and input rules."""

    name: str = os.getenv("CLINIC_NAME", "Clinic")
    timezone: str = os.getenv("CLINIC_TIMEZONE", "Africa/Cairo")
    opening_hour: int = _safe_int("OPENING_HOUR", "9")
    closing_hour: int = _safe_int("CLOSING_HOUR", "20")
    slot_minutes: int = _safe_int("SLOT_MINUTES", "30")
    min_phone_length: int = _safe_int("MIN_PHONE_LENGTH", "11")


@dataclass(frozen=True)
class StorageConfig:
    """Key-value persistence settings."""

    backend: str = os.getenv("STORAGE_BACKEND", "memory")
    bookings_key: str = os.getenv("BOOKINGS_KEY", "clinic_bookings")
    storage_dir: str = os.getenv("STORAGE_DIR", ".data")
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    strict_persistence: bool = _safe_bool("STRICT_PERSISTENCE", "false")


@dataclass(frozen=True)
class NotificationConfig:
    """Outbound notification channel settings."""

    transport: str = os.getenv("NOTIFY_TRANSPORT", "log")
    destination: str = os.getenv("CLINIC_WHATSAPP_NUMBER", "201010557102")
    webhook_url: str = os.getenv("NOTIFY_WEBHOOK_URL", "")
    delay_sec: float = _safe_float("NOTIFY_DELAY_SEC", "1.0")
    timeout_sec: float = _safe_float("NOTIFY_TIMEOUT_SEC", "10.0")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    clinic: ClinicConfig = field(default_factory=ClinicConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    clinic = config.clinic
    for name, hour in [("OPENING_HOUR", clinic.opening_hour), ("CLOSING_HOUR", clinic.closing_hour)]:
        if not 0 <= hour <= 23:
            raise ValueError(f"{name} must be between 0 and 23, got {hour}")
    if clinic.opening_hour >= clinic.closing_hour:
        raise ValueError(
            f"OPENING_HOUR must be before CLOSING_HOUR, got {clinic.opening_hour} >= "
            f"{clinic.closing_hour}"
        )
    if clinic.slot_minutes < 1 or 60 % clinic.slot_minutes != 0:
        raise ValueError(f"SLOT_MINUTES must divide 60, got {clinic.slot_minutes}")
    if clinic.min_phone_length < 1:
        raise ValueError(f"MIN_PHONE_LENGTH must be >= 1, got {clinic.min_phone_length}")
    try:
        ZoneInfo(clinic.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"CLINIC_TIMEZONE is not a known zone: {clinic.timezone!r}") from None

    if config.storage.backend not in STORAGE_BACKENDS:
        raise ValueError(
            f"STORAGE_BACKEND must be one of {STORAGE_BACKENDS}, got {config.storage.backend!r}"
        )
    if not config.storage.bookings_key:
        raise ValueError("BOOKINGS_KEY must not be empty")

    notifications = config.notifications
    if notifications.transport not in NOTIFY_TRANSPORTS:
        raise ValueError(
            f"NOTIFY_TRANSPORT must be one of {NOTIFY_TRANSPORTS}, got {notifications.transport!r}"
        )
    if notifications.transport == "webhook" and not notifications.webhook_url:
        raise ValueError("NOTIFY_WEBHOOK_URL is required when NOTIFY_TRANSPORT=webhook")
    if not notifications.destination:
        raise ValueError("CLINIC_WHATSAPP_NUMBER must not be empty")
    if notifications.delay_sec < 0:
        raise ValueError(f"NOTIFY_DELAY_SEC must be >= 0, got {notifications.delay_sec}")
    if notifications.timeout_sec <= 0:
        raise ValueError(f"NOTIFY_TIMEOUT_SEC must be > 0, got {notifications.timeout_sec}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] [%(request_id)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Handler-level so records from any logger can fill %(request_id)s
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())
    logger.info("Configuration loaded for '%s'", config.clinic.name)
    return config


# Singleton instance
settings = load_config()
