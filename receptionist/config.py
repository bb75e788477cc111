"""
Centralized configuration with environment variable overrides.

Firm details, conversation limits, and the credentials for the calendar,
intent oracle, and notification webhook all live here. Nothing in the
conversation core reads the environment directly.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from receptionist.logging_context import CallIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] [%(call_id)s] %(levelname)s: %(message)s"


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
class BusinessConfig:
    """Firm-specific wording spoken to callers."""

    name: str = os.getenv("BUSINESS_NAME", "Ahad and Co CPA Firm")
    short_name: str = os.getenv("BUSINESS_SHORT_NAME", "Ahad and Co")
    office_hours: str = os.getenv(
        "BUSINESS_OFFICE_HOURS", "Tuesday to Thursday from 11:00 AM to 5:00 PM"
    )
    default_call_reason: str = os.getenv("DEFAULT_CALL_REASON", "Tax consultation")


@dataclass(frozen=True)
class ConversationConfig:
    """Limits that keep every call moving toward a terminal state."""

    max_slot_rejections: int = _safe_int("MAX_SLOT_REJECTIONS", "4")
    history_window: int = _safe_int("HISTORY_WINDOW", "16")
    max_silent_turns: int = _safe_int("MAX_SILENT_TURNS", "4")
    min_free_text_length: int = _safe_int("MIN_FREE_TEXT_LENGTH", "2")


@dataclass(frozen=True)
class IntentConfig:
    """Intent oracle settings."""

    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    model: str = os.getenv("INTENT_MODEL", "gpt-4o-mini")
    temperature: float = _safe_float("INTENT_TEMPERATURE", "0.0")
    confidence_threshold: float = _safe_float("INTENT_CONFIDENCE_THRESHOLD", "0.6")
    timeout_sec: float = _safe_float("INTENT_TIMEOUT", "4.0")


@dataclass(frozen=True)
class CalendarConfig:
    """Cal.com availability and booking settings."""

    calcom_api_key: str = os.getenv("CALCOM_API_KEY", "")
    calcom_event_type_id: str = os.getenv("CALCOM_EVENT_TYPE_ID", "")
    calcom_base_url: str = os.getenv("CALCOM_BASE_URL", "https://api.cal.com/v1")
    timezone: str = os.getenv("CALENDAR_TIMEZONE", "America/New_York")
    search_days: int = _safe_int("CALENDAR_SEARCH_DAYS", "14")
    slot_minutes: int = _safe_int("SLOT_DURATION_MINUTES", "15")
    max_offered_slots: int = _safe_int("MAX_OFFERED_SLOTS", "5")
    timeout_sec: float = _safe_float("CALENDAR_TIMEOUT", "10.0")

    @property
    def calcom_configured(self) -> bool:
        return bool(self.calcom_api_key and self.calcom_event_type_id)


@dataclass(frozen=True)
class NotificationConfig:
    """Outbound webhook (n8n or similar) for bookings and messages."""

    webhook_url: str = os.getenv("NOTIFICATION_WEBHOOK_URL", "")
    timeout_sec: float = _safe_float("NOTIFICATION_TIMEOUT", "5.0")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    business: BusinessConfig = field(default_factory=BusinessConfig)
    conversation: ConversationConfig = field(default_factory=ConversationConfig)
    intent: IntentConfig = field(default_factory=IntentConfig)
    calendar: CalendarConfig = field(default_factory=CalendarConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    conv = config.conversation
    if conv.max_slot_rejections < 1:
        raise ValueError(
            f"MAX_SLOT_REJECTIONS must be >= 1, got {conv.max_slot_rejections}"
        )
    if conv.history_window < 2:
        raise ValueError(f"HISTORY_WINDOW must be >= 2, got {conv.history_window}")
    if conv.max_silent_turns < 2:
        raise ValueError(f"MAX_SILENT_TURNS must be >= 2, got {conv.max_silent_turns}")
    if conv.min_free_text_length < 1:
        raise ValueError(
            f"MIN_FREE_TEXT_LENGTH must be >= 1, got {conv.min_free_text_length}"
        )

    if not 0.0 <= config.intent.confidence_threshold <= 1.0:
        raise ValueError(
            "INTENT_CONFIDENCE_THRESHOLD must be between 0.0 and 1.0, "
            f"got {config.intent.confidence_threshold}"
        )
    if not 0.0 <= config.intent.temperature <= 2.0:
        raise ValueError(
            f"INTENT_TEMPERATURE must be between 0.0 and 2.0, got {config.intent.temperature}"
        )

    cal = config.calendar
    if cal.search_days < 1:
        raise ValueError(f"CALENDAR_SEARCH_DAYS must be >= 1, got {cal.search_days}")
    if cal.slot_minutes < 1:
        raise ValueError(f"SLOT_DURATION_MINUTES must be >= 1, got {cal.slot_minutes}")
    if cal.max_offered_slots < 1:
        raise ValueError(f"MAX_OFFERED_SLOTS must be >= 1, got {cal.max_offered_slots}")

    for name, value in [
        ("INTENT_TIMEOUT", config.intent.timeout_sec),
        ("CALENDAR_TIMEOUT", cal.timeout_sec),
        ("NOTIFICATION_TIMEOUT", config.notifications.timeout_sec),
    ]:
        if value <= 0:
            raise ValueError(f"{name} must be > 0, got {value}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, CallIdFilter) for f in handler.filters):
            handler.addFilter(CallIdFilter())
    logger.info("Configuration loaded for '%s'", config.business.name)
    return config


# Singleton instance
settings = load_config()
