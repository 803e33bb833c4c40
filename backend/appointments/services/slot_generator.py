# backend/appointments/services/slot_generator.py
"""
Slot tiling from weekly availability rules.

Each rule is tiled on its own: starting at the rule start, a slot of the
booking type's duration is emitted and the cursor advances by the same
duration, until the next slot would run past the rule end. A remainder
shorter than one duration is dropped. Slots never span two rules.

Wall times are resolved against the tenant timezone; the arithmetic
between slots is in absolute minutes, so a DST jump inside a window
shifts the local labels rather than the slot lengths.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Iterator, List, Sequence

import pytz

from ..core.timezone_utils import day_of_week, local_datetime, to_tenant_time
from ..models.booking_type import AvailabilityRule


@dataclass(frozen=True)
class Slot:
    """A candidate bookable interval [start, end) in tenant-local time."""

    start: datetime
    end: datetime

    def to_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def rules_for_date(rules: Iterable[AvailabilityRule], target_date: date) -> List[AvailabilityRule]:
    """Rules matching the date's weekday, in stable (start, id) order."""
    weekday = day_of_week(target_date)
    matching = [rule for rule in rules if rule.day_of_week == weekday]
    return sorted(matching, key=lambda rule: (rule.start_minute, rule.id or ""))


def iter_rule_slots(
    target_date: date,
    duration_minutes: int,
    rule: AvailabilityRule,
    tz: pytz.BaseTzInfo,
) -> Iterator[Slot]:
    window_start = local_datetime(target_date, rule.start_minute, tz)
    window_end = local_datetime(target_date, rule.end_minute, tz)
    step = timedelta(minutes=duration_minutes)

    cursor = window_start.astimezone(pytz.UTC)
    limit = window_end.astimezone(pytz.UTC)
    while cursor + step <= limit:
        yield Slot(start=to_tenant_time(cursor, tz), end=to_tenant_time(cursor + step, tz))
        cursor += step


def generate_slots(
    target_date: date,
    duration_minutes: int,
    rules: Sequence[AvailabilityRule],
    tz: pytz.BaseTzInfo,
) -> List[Slot]:
    """
    Tile every matching rule for ``target_date`` into slots.

    Args:
        target_date: Calendar date in the tenant timezone
        duration_minutes: Booking type duration, already validated > 0
        rules: Availability rules of the booking type (any weekday)
        tz: Tenant timezone

    Returns:
        Ordered slots, rule by rule. Empty when no rule matches the weekday.
    """
    if duration_minutes <= 0:
        return []
    slots: List[Slot] = []
    for rule in rules_for_date(rules, target_date):
        slots.extend(iter_rule_slots(target_date, duration_minutes, rule, tz))
    return slots
