"""
Calendar helpers shared by the clock and reporting services.

Timestamps are stored in UTC; calendar days, display strings and report
windows are computed in the service's local timezone.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from geoclock.core.exceptions import InvalidDateFormat

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DISPLAY_DATE_FORMAT = "%d/%m/%Y"
DISPLAY_TIME_FORMAT = "%H:%M:%S"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Normalise a potentially-naive timestamp (SQLite drops tzinfo) to UTC-aware."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_day(value: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` string into a calendar date."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise InvalidDateFormat()
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidDateFormat(f"Invalid calendar date: {value}. Use YYYY-MM-DD.") from None


def day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Return ``[00:00:00.000, 23:59:59.999]`` of *day* in *tz*."""
    start = datetime.combine(day, time(0, 0, 0, 0), tzinfo=tz)
    end = datetime.combine(day, time(23, 59, 59, 999000), tzinfo=tz)
    return start, end


def local_day(dt: datetime, tz: ZoneInfo) -> date:
    return ensure_utc(dt).astimezone(tz).date()


def split_timestamp(dt: datetime | None, tz: ZoneInfo) -> tuple[str | None, str | None]:
    """Split a stored timestamp into local display date and time strings."""
    if dt is None:
        return None, None
    local = ensure_utc(dt).astimezone(tz)
    return local.strftime(DISPLAY_DATE_FORMAT), local.strftime(DISPLAY_TIME_FORMAT)


def elapsed(start: datetime, end: datetime) -> timedelta:
    delta = ensure_utc(end) - ensure_utc(start)
    return max(delta, timedelta(0))


def hours_minutes(delta: timedelta) -> tuple[int, int]:
    total_minutes = int(delta.total_seconds() // 60)
    return total_minutes // 60, total_minutes % 60
