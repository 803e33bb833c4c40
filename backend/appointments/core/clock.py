"""Clock abstraction so "now" can be pinned in tests and per tenant."""

from datetime import date, datetime
from typing import Optional, Protocol

import pytz

from .timezone_utils import ensure_utc, get_tenant_timezone


class Clock(Protocol):
    """Source of the current instant."""

    def now(self) -> datetime:
        """Return the current time as an aware UTC datetime."""
        ...


class SystemClock:
    """Wall clock backed by the host time."""

    def now(self) -> datetime:
        return datetime.now(pytz.UTC)


class FixedClock:
    """Clock frozen at a given instant (naive values are read as UTC)."""

    def __init__(self, instant: datetime):
        self._instant = ensure_utc(instant)

    def now(self) -> datetime:
        return self._instant


def tenant_now(clock: Clock, timezone_name: Optional[str] = None) -> datetime:
    """Current time in the tenant's timezone."""
    return clock.now().astimezone(get_tenant_timezone(timezone_name))


def tenant_today(clock: Clock, timezone_name: Optional[str] = None) -> date:
    """Today's date in the tenant's timezone."""
    return tenant_now(clock, timezone_name).date()
