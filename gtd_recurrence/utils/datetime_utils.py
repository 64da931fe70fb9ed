"""
Date and datetime utilities.

Task dates are stored in three shapes and each shape must survive a
recurrence shift unchanged:

- date-only: "2024-01-20"
- local wall-clock time (no zone): "2024-01-20T09:30"
- zoned: "2024-01-20T09:30:00Z" or "2024-01-20T09:30:00+09:00"
"""

import calendar
import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

# UTC timezone constant
UTC = timezone.utc

TaskDate = Union[datetime, date]

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_HAS_ZONE = re.compile(r"(Z|[+-]\d{2}:?\d{2})$")
_COMPACT_OFFSET = re.compile(r"(T.*[+-]\d{2})(\d{2})$")


def now_utc() -> datetime:
    """
    Get current UTC datetime (timezone-aware).

    Returns:
        datetime: Current UTC time with tzinfo set to UTC
    """
    return datetime.now(UTC)


def now_in_zone(zone_name: str) -> datetime:
    """Current time in an IANA zone (e.g. "Asia/Tokyo")."""
    return now_utc().astimezone(ZoneInfo(zone_name))


def is_date_only(value: Optional[str]) -> bool:
    return bool(value) and bool(_DATE_ONLY.match(value.strip()))


def has_zone(value: Optional[str]) -> bool:
    return bool(value) and bool(_HAS_ZONE.search(value.strip()))


def parse_task_date(value: Optional[str]) -> Optional[TaskDate]:
    """
    Parse a stored task date without changing its shape.

    Args:
        value: ISO 8601 date or datetime string

    Returns:
        date for date-only input, naive datetime for local wall-clock input,
        aware datetime for zoned input, None if empty or unparseable
    """
    if not value or not isinstance(value, str):
        return None
    raw = value.strip()
    try:
        if _DATE_ONLY.match(raw):
            return date.fromisoformat(raw)
        # fromisoformat before 3.11 accepts neither "Z" nor "+0900"
        raw = raw.replace(" ", "T").replace("Z", "+00:00")
        return datetime.fromisoformat(_COMPACT_OFFSET.sub(r"\1:\2", raw))
    except ValueError:
        return None


def format_task_date(value: TaskDate, template: Optional[str]) -> str:
    """
    Render ``value`` in the same shape as ``template`` (the string it was derived from).

    Zoned values keep their offset ("Z" stays "Z"), local wall-clock values are
    written to the minute, dates are written as YYYY-MM-DD.
    """
    if not isinstance(value, datetime):
        return value.isoformat()
    if is_date_only(template):
        return value.date().isoformat()
    if value.tzinfo is not None:
        timespec = "milliseconds" if template and "." in template else "seconds"
        rendered = value.isoformat(timespec=timespec)
        if template and template.strip().endswith("Z") and value.utcoffset() == timedelta(0):
            rendered = rendered.replace("+00:00", "Z")
        return rendered
    return value.strftime("%Y-%m-%dT%H:%M")


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months_clamped(value: date, months: int) -> date:
    """Shift by whole months, clamping the day to the target month's length."""
    month_index = value.year * 12 + value.month - 1 + months
    year, month = month_index // 12, month_index % 12 + 1
    return value.replace(year=year, month=month, day=min(value.day, days_in_month(year, month)))


def add_years_clamped(value: date, years: int) -> date:
    """Shift by whole years. Feb 29 becomes Feb 28 in non-leap years."""
    year = value.year + years
    return value.replace(year=year, day=min(value.day, days_in_month(year, value.month)))
