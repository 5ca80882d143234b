from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum

ONE_SECOND = timedelta(seconds=1)
MONDAY = 0
SUNDAY = 6


class Granularity(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    CUSTOM = "custom"


@dataclass(frozen=True)
class CalendarConfig:
    """Calendar rules used to cut time windows.

    ``first_weekday`` follows ``datetime.weekday()`` numbering (Monday is 0).
    ``tz`` is the zone wall-clock boundaries are computed in; ``None`` keeps
    every value in whatever zone (or lack of one) it arrives with.
    """

    first_weekday: int = MONDAY
    tz: tzinfo | None = None

    def __post_init__(self) -> None:
        if not MONDAY <= self.first_weekday <= SUNDAY:
            raise ValueError("first_weekday must be between 0 (Monday) and 6 (Sunday).")

    def localize(self, value: date | datetime) -> datetime:
        value = _as_datetime(value)
        if self.tz is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=self.tz)
        return value.astimezone(self.tz)

    def now(self) -> datetime:
        if self.tz is None:
            return datetime.now()
        return datetime.now(self.tz)


DEFAULT_CALENDAR = CalendarConfig()


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    def contains(self, value: date | datetime) -> bool:
        """Inclusive membership test.

        A naive value is read as wall-clock time in the range's zone; an aware
        value checked against a naive range is compared by its own wall clock.
        """
        aligned = align_to(_as_datetime(value), self.start)
        return self.start <= aligned <= self.end

    @property
    def is_empty(self) -> bool:
        return self.end < self.start


def parse_granularity(value: Granularity | str) -> Granularity:
    if isinstance(value, Granularity):
        return value
    normalized = value.strip().lower()
    try:
        return Granularity(normalized)
    except ValueError as exc:
        raise ValueError(f"Unsupported granularity: {value}") from exc


def resolve_range(
    granularity: Granularity | str,
    anchor: date | datetime,
    custom_start: date | datetime | None = None,
    custom_end: date | datetime | None = None,
    calendar: CalendarConfig = DEFAULT_CALENDAR,
) -> DateRange:
    granularity = parse_granularity(granularity)
    anchor = calendar.localize(anchor)

    if granularity is Granularity.DAY:
        return DateRange(start=start_of_day(anchor), end=end_of_day(anchor))
    if granularity is Granularity.WEEK:
        start = week_start(anchor, calendar.first_weekday)
        return DateRange(start=start, end=start + timedelta(days=7) - ONE_SECOND)
    if granularity is Granularity.MONTH:
        start = start_of_day(anchor).replace(day=1)
        return DateRange(start=start, end=add_months(start, 1) - ONE_SECOND)
    if granularity is Granularity.YEAR:
        start = start_of_day(anchor).replace(month=1, day=1)
        return DateRange(start=start, end=start.replace(year=start.year + 1) - ONE_SECOND)
    if granularity is Granularity.CUSTOM:
        # No ordering is enforced; an inverted pick matches nothing.
        start = calendar.localize(custom_start if custom_start is not None else anchor)
        end = calendar.localize(custom_end if custom_end is not None else anchor)
        # Both bounds must share the start's awareness.
        return DateRange(start=start_of_day(start), end=align_to(end_of_day(end), start))
    raise ValueError(f"Unsupported granularity: {granularity}")


def can_navigate_forward(
    granularity: Granularity | str,
    anchor: date | datetime,
    now: date | datetime | None = None,
    calendar: CalendarConfig = DEFAULT_CALENDAR,
) -> bool:
    granularity = parse_granularity(granularity)
    if granularity is Granularity.CUSTOM:
        return False

    anchor = calendar.localize(anchor)
    current = calendar.localize(now) if now is not None else calendar.now()
    window = resolve_range(granularity, anchor, calendar=calendar)
    if window.contains(current):
        return False
    return anchor < align_to(current, anchor)


def navigate(
    granularity: Granularity | str,
    anchor: datetime,
    direction: int,
) -> datetime:
    """Move the anchor by ``direction`` calendar units of the granularity."""
    granularity = parse_granularity(granularity)
    if granularity is Granularity.DAY:
        return anchor + timedelta(days=direction)
    if granularity is Granularity.WEEK:
        return anchor + timedelta(weeks=direction)
    if granularity is Granularity.MONTH:
        return add_months(anchor, direction)
    if granularity is Granularity.YEAR:
        return add_months(anchor, 12 * direction)
    return anchor


def range_label(
    granularity: Granularity | str,
    anchor: date | datetime,
    custom_start: date | datetime | None = None,
    custom_end: date | datetime | None = None,
    calendar: CalendarConfig = DEFAULT_CALENDAR,
) -> str:
    granularity = parse_granularity(granularity)
    window = resolve_range(granularity, anchor, custom_start, custom_end, calendar=calendar)
    start = window.start
    if granularity is Granularity.DAY:
        return f"{start:%b} {start.day}, {start.year}"
    if granularity is Granularity.MONTH:
        return f"{start:%B} {start.year}"
    if granularity is Granularity.YEAR:
        return str(start.year)

    last_day = window.end.date()
    if start.date() == last_day:
        return f"{start:%m/%d}"
    return f"{start:%m/%d} - {last_day:%m/%d}"


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0, fold=0)


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=0, fold=0)


def week_start(value: datetime, first_weekday: int = MONDAY) -> datetime:
    day = start_of_day(value)
    offset = (day.weekday() - first_weekday) % 7
    return day - timedelta(days=offset)


def add_months(value: datetime, months: int) -> datetime:
    month_index = (value.year * 12 + value.month - 1) + months
    year = month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def align_to(value: datetime, reference: datetime) -> datetime:
    if reference.tzinfo is None and value.tzinfo is not None:
        return value.replace(tzinfo=None)
    if reference.tzinfo is not None and value.tzinfo is None:
        return value.replace(tzinfo=reference.tzinfo)
    return value


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time())
