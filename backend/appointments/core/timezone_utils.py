"""
Timezone utilities for the appointments backend.

Bookings are stored in UTC. Availability rules are expressed in minutes
since local midnight in the tenant's timezone, so every conversion between
the two goes through these helpers.
"""

from datetime import date, datetime, time, timedelta
import re
from typing import Optional

import pytz

from .config import settings

MINUTES_PER_DAY = 24 * 60

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def get_tenant_timezone(timezone_name: Optional[str] = None) -> pytz.BaseTzInfo:
    """
    Resolve a tenant timezone, falling back to the configured default.

    Raises:
        pytz.UnknownTimeZoneError: If the name is not a known zone
    """
    return pytz.timezone(timezone_name or settings.default_timezone)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive values are assumed to already be UTC (SQLite hands back naive
    datetimes for timezone-aware columns).
    """
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def to_tenant_time(dt: datetime, tz: pytz.BaseTzInfo) -> datetime:
    """Convert a datetime (naive = UTC) into the tenant's local time."""
    return ensure_utc(dt).astimezone(tz)


def local_datetime(target_date: date, minute_of_day: int, tz: pytz.BaseTzInfo) -> datetime:
    """
    Build an aware datetime for ``minute_of_day`` on ``target_date`` in ``tz``.

    1440 is accepted and means midnight at the end of the day.
    """
    if not 0 <= minute_of_day <= MINUTES_PER_DAY:
        raise ValueError(f"minute_of_day out of range: {minute_of_day}")
    naive = datetime.combine(target_date, time.min) + timedelta(minutes=minute_of_day)
    return tz.normalize(tz.localize(naive))


def day_of_week(target_date: date) -> int:
    """Return the weekday with 0 = Sunday ... 6 = Saturday."""
    return (target_date.weekday() + 1) % 7


def parse_hhmm(value: str) -> int:
    """
    Parse an "HH:MM" string into minutes since midnight.

    "24:00" is allowed so a window can run to the end of the day.

    Raises:
        ValueError: If the string is malformed or out of range
    """
    match = _HHMM_RE.match((value or "").strip())
    if not match:
        raise ValueError(f"Invalid time format: {value!r}. Expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes > 59 or hours > 24 or (hours == 24 and minutes != 0):
        raise ValueError(f"Time out of range: {value!r}")
    return hours * 60 + minutes


def format_hhmm(minute_of_day: int) -> str:
    """Format minutes since midnight as "HH:MM"."""
    hours, minutes = divmod(minute_of_day, 60)
    return f"{hours:02d}:{minutes:02d}"


def minute_of_day(dt: datetime) -> int:
    """Minutes since local midnight for an aware, already-localized datetime."""
    return dt.hour * 60 + dt.minute
