"""Load run settings from the environment (and a local .env file)."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from shiftsync.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_SCHEDULE_URL = "https://mysite.starbucks.com/MySchedule/Schedule.aspx"
DEFAULT_TIMEZONE = "America/New_York"
SECONDARY_CALENDAR_SUFFIX = "@group.calendar.google.com"


def _str_to_bool(value: str) -> bool:
    """Convert environment variable string to boolean."""
    return value.lower() in ("true", "1", "yes", "on")


def _int_env(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"{name} must be at least {minimum}, got {value}")
    return value


def is_dedicated_calendar_id(calendar_id: str) -> bool:
    """Secondary (non-primary) Google calendars have ids under group.calendar.google.com."""
    return calendar_id.lower().endswith(SECONDARY_CALENDAR_SUFFIX)


@dataclass(frozen=True)
class Credentials:
    """What the login screens ask for."""
    partner_id: str
    password: str
    security_answers: dict[str, str] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"Credentials(partner_id={self.partner_id!r}, password=***, security_answers={len(self.security_answers)})"


@dataclass(frozen=True)
class Settings:
    credentials: Credentials
    service_account_info: dict
    calendar_id: str | None = None
    calendar_name: str | None = None
    schedule_url: str = DEFAULT_SCHEDULE_URL
    timezone: str = DEFAULT_TIMEZONE
    event_label: str = "Starbucks"
    event_location: str = ""
    reminder_minutes: tuple[int, ...] = (240, 60, 15)
    headless: bool = True
    nav_timeout_ms: int = 30000
    nav_poll_interval_ms: int = 2000
    nav_max_stalls: int = 5
    nav_max_steps: int = 12

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def _parse_security_answers(raw: str) -> dict[str, str]:
    if not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"SECURITY_ANSWERS is not valid JSON: {e}") from e
    if not isinstance(parsed, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in parsed.items()
    ):
        raise ConfigError("SECURITY_ANSWERS must be a JSON object mapping question text to answer text")
    return parsed


def _parse_reminders(raw: str) -> tuple[int, ...]:
    try:
        return tuple(int(part) for part in raw.split(",") if part.strip())
    except ValueError:
        raise ConfigError(f"REMINDER_MINUTES must be a comma-separated list of integers, got {raw!r}") from None


def load_settings(env_file: str | None = None) -> Settings:
    """Read settings from the environment.

    A .env file (or ``env_file``) is loaded first; real environment variables win.
    Raises ConfigError naming every missing or malformed value.
    """
    load_dotenv(env_file)

    required = {
        "PARTNER_ID": os.getenv("PARTNER_ID", "").strip(),
        "PARTNER_PASSWORD": os.getenv("PARTNER_PASSWORD", ""),
        "GOOGLE_SERVICE_ACCOUNT_JSON": os.getenv("GOOGLE_SERVICE_ACCOUNT_JSON", "").strip(),
    }
    missing = [k for k, v in required.items() if not v]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

    try:
        service_account_info = json.loads(required["GOOGLE_SERVICE_ACCOUNT_JSON"])
    except json.JSONDecodeError as e:
        raise ConfigError(f"GOOGLE_SERVICE_ACCOUNT_JSON is not valid JSON: {e}") from e

    calendar_id = os.getenv("GOOGLE_CALENDAR_ID", "").strip() or None
    calendar_name = os.getenv("GOOGLE_CALENDAR_NAME", "").strip() or None
    if not calendar_id and not calendar_name:
        raise ConfigError(
            "Set GOOGLE_CALENDAR_ID or GOOGLE_CALENDAR_NAME to a calendar used only for shifts"
        )
    # Every unmatched upcoming event gets deleted, so only secondary calendars are allowed
    if calendar_id and not is_dedicated_calendar_id(calendar_id):
        raise ConfigError(
            f"GOOGLE_CALENDAR_ID {calendar_id!r} is not a dedicated calendar; "
            f"use the id of a secondary calendar (...{SECONDARY_CALENDAR_SUFFIX}) that holds only shifts"
        )

    timezone_name = os.getenv("LOCAL_TIMEZONE", DEFAULT_TIMEZONE).strip()
    try:
        ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigError(f"LOCAL_TIMEZONE {timezone_name!r} is not a valid IANA timezone") from None

    settings = Settings(
        credentials=Credentials(
            partner_id=required["PARTNER_ID"],
            password=required["PARTNER_PASSWORD"],
            security_answers=_parse_security_answers(os.getenv("SECURITY_ANSWERS", "")),
        ),
        service_account_info=service_account_info,
        calendar_id=calendar_id,
        calendar_name=calendar_name,
        schedule_url=os.getenv("SCHEDULE_URL", DEFAULT_SCHEDULE_URL).strip(),
        timezone=timezone_name,
        event_label=os.getenv("EVENT_LABEL", "Starbucks"),
        event_location=os.getenv("EVENT_LOCATION", ""),
        reminder_minutes=_parse_reminders(os.getenv("REMINDER_MINUTES", "240,60,15")),
        headless=_str_to_bool(os.getenv("HEADLESS", "true")),
        nav_timeout_ms=_int_env("NAV_TIMEOUT_MS", 30000),
        nav_poll_interval_ms=_int_env("NAV_POLL_INTERVAL_MS", 2000),
        nav_max_stalls=_int_env("NAV_MAX_STALLS", 5),
        nav_max_steps=_int_env("NAV_MAX_STEPS", 12),
    )
    logger.info(
        f"Config: calendar={settings.calendar_id or settings.calendar_name!r}, "
        f"tz={settings.timezone}, headless={settings.headless}, "
        f"{len(settings.credentials.security_answers)} security answer(s)"
    )
    return settings
