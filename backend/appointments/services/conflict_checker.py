# backend/appointments/services/conflict_checker.py
"""
Conflict detection between candidate intervals and active bookings.

All interval comparisons use one half-open predicate: [a_start, a_end)
and [b_start, b_end) overlap iff a_start < b_end and a_end > b_start.
Touching endpoints never conflict. The repository's SQL conflict scan
applies the same comparison.
"""

from datetime import datetime
import logging
from typing import Iterable, List, Optional, Sequence

from ..core.timezone_utils import ensure_utc
from ..models.booking import ACTIVE_STATUSES, Booking
from ..repositories.booking_repository import BookingRepository
from .slot_generator import Slot

logger = logging.getLogger(__name__)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return ensure_utc(a_start) < ensure_utc(b_end) and ensure_utc(a_end) > ensure_utc(b_start)


def filter_available(
    candidate_slots: Iterable[Slot],
    existing_bookings: Sequence[Booking],
    now: datetime,
) -> List[Slot]:
    """
    Drop slots that are not bookable.

    A slot is removed when it overlaps a PENDING/CONFIRMED booking or when
    its start is not strictly after ``now``. ``existing_bookings`` must all
    belong to the slot's booking type.
    """
    active = [
        (ensure_utc(booking.start_time), ensure_utc(booking.end_time))
        for booking in existing_bookings
        if booking.status in ACTIVE_STATUSES
    ]
    now_utc = ensure_utc(now)
    available: List[Slot] = []
    for slot in candidate_slots:
        if ensure_utc(slot.start) <= now_utc:
            continue
        if any(overlaps(slot.start, slot.end, start, end) for start, end in active):
            continue
        available.append(slot)
    return available


class ConflictChecker:
    """Transactional availability check against the booking store."""

    def __init__(self, repository: BookingRepository):
        self.repository = repository

    def is_available(
        self,
        booking_type_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        conflicts = self.repository.find_conflicts(
            booking_type_id, start_time, end_time, exclude_booking_id=exclude_booking_id
        )
        if conflicts:
            logger.debug(
                "Interval %s-%s conflicts with %d booking(s) of type %s",
                start_time,
                end_time,
                len(conflicts),
                booking_type_id,
            )
        return not conflicts
