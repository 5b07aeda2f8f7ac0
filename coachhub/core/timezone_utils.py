"""
Timezone utilities for the CoachHub platform.

Session times are stored in UTC. Coach availability is expressed as
wall-clock "HH:MM" windows in the coach's own timezone.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

import pytz

DEFAULT_TIMEZONE = "UTC"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are assumed to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_timezone(name: Optional[str]) -> pytz.BaseTzInfo:
    """Resolve a timezone name, falling back to UTC for unknown values."""
    try:
        return pytz.timezone(name or DEFAULT_TIMEZONE)
    except pytz.UnknownTimeZoneError:
        return pytz.utc


def parse_hhmm(value: str) -> time:
    """Parse an "HH:MM" wall-clock string."""
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def local_to_utc(day: date, wall_clock: time, tz_name: Optional[str]) -> datetime:
    """Combine a local date and wall-clock time in ``tz_name`` into UTC."""
    tz = get_timezone(tz_name)
    local_dt = tz.localize(datetime.combine(day, wall_clock))
    return local_dt.astimezone(timezone.utc)


def local_day_bounds_utc(day: date, tz_name: Optional[str]) -> tuple[datetime, datetime]:
    """UTC [start, end) covering ``day`` in the given timezone."""
    tz = get_timezone(tz_name)
    start = tz.localize(datetime.combine(day, time.min))
    end = tz.localize(datetime.combine(day + timedelta(days=1), time.min))
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def period_start(period: str, now: datetime) -> datetime:
    """Start of a reporting period ending at ``now``: day, week (last 7 days), month or year."""
    if period == "day":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "week":
        return now - timedelta(days=7)
    if period == "year":
        return now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
