from __future__ import annotations

from dataclasses import dataclass, field
import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from yourspend.currency_conversion import REFERENCE_CURRENCY, normalize_currency
from yourspend.date_ranges import MONDAY, SUNDAY, CalendarConfig

DEFAULT_DATABASE_URL = "sqlite:///./yourspend.db"
DEFAULT_TIMEZONE = "UTC"
DEFAULT_FRONTEND_ORIGIN = "http://localhost:3000"


def get_system_default_currency() -> str:
    raw = os.getenv("DEFAULT_CURRENCY", REFERENCE_CURRENCY)
    try:
        return normalize_currency(raw)
    except ValueError:
        return REFERENCE_CURRENCY


def get_timezone_name() -> str:
    raw = os.getenv("TIMEZONE", DEFAULT_TIMEZONE).strip()
    try:
        ZoneInfo(raw)
    except (ZoneInfoNotFoundError, ValueError):
        return DEFAULT_TIMEZONE
    return raw


def get_first_weekday() -> int:
    raw = os.getenv("FIRST_WEEKDAY", str(MONDAY))
    try:
        value = int(raw)
    except ValueError:
        return MONDAY
    return value if MONDAY <= value <= SUNDAY else MONDAY


@dataclass(frozen=True)
class Settings:
    database_url: str = field(default_factory=lambda: os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL))
    default_currency: str = field(default_factory=get_system_default_currency)
    timezone: str = field(default_factory=get_timezone_name)
    first_weekday: int = field(default_factory=get_first_weekday)
    frontend_origin: str = field(
        default_factory=lambda: os.getenv("FRONTEND_ORIGIN", DEFAULT_FRONTEND_ORIGIN)
    )
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def calendar(self) -> CalendarConfig:
        # Stored timestamps are naive wall-clock times in ``tz``.
        return CalendarConfig(first_weekday=self.first_weekday)
