# backend/appointments/services/availability_service.py
"""
Availability Service for the appointments backend.

Read-only queries behind the public booking page:
- concrete open slots for a booking type on a date
- dates within a horizon that have any weekly rule
- point availability checks for an interval
"""

from datetime import date, datetime, timedelta
import logging
from typing import Any, Dict, List, Optional, Sequence

import pytz
from sqlalchemy.orm import Session

from ..core.clock import Clock, tenant_today
from ..core.config import settings
from ..core.exceptions import (
    BookingTypeInactiveException,
    NotFoundException,
    ValidationException,
)
from ..core.timezone_utils import (
    day_of_week,
    ensure_utc,
    get_tenant_timezone,
    local_datetime,
    to_tenant_time,
)
from ..models.booking_type import AvailabilityRule, BookingType
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .conflict_checker import ConflictChecker, filter_available
from .slot_generator import Slot, generate_slots, rules_for_date

logger = logging.getLogger(__name__)


def fits_rule_window(
    rules: Sequence[AvailabilityRule],
    start_time: datetime,
    end_time: datetime,
    tz: pytz.BaseTzInfo,
) -> bool:
    """True when [start, end) lies inside a single rule window on its local date."""
    local_start = to_tenant_time(start_time, tz)
    local_end = to_tenant_time(end_time, tz)
    for rule in rules_for_date(rules, local_start.date()):
        window_start = local_datetime(local_start.date(), rule.start_minute, tz)
        window_end = local_datetime(local_start.date(), rule.end_minute, tz)
        if window_start <= local_start and local_end <= window_end:
            return True
    return False


class AvailabilityService(BaseService):
    """Slot and date availability for booking types."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.booking_type_repository = RepositoryFactory.create_booking_type_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.conflict_checker = ConflictChecker(self.booking_repository)

    def _get_bookable_type(self, tenant_id: str, booking_type_id: str) -> BookingType:
        booking_type = self.booking_type_repository.get_for_tenant(tenant_id, booking_type_id)
        if not booking_type:
            raise NotFoundException("Booking type not found", code="BOOKING_TYPE_NOT_FOUND")
        if not booking_type.is_active:
            raise BookingTypeInactiveException(booking_type_id)
        return booking_type

    @BaseService.measure_operation("list_available_slots")
    def list_available_slots(
        self,
        tenant_id: str,
        booking_type_id: str,
        target_date: date,
        timezone: Optional[str] = None,
    ) -> List[Slot]:
        """
        Open slots for ``target_date`` in the tenant timezone.

        Slots overlapping a PENDING/CONFIRMED booking and slots starting at
        or before now are excluded.

        Raises:
            NotFoundException: Unknown booking type for the tenant
            BookingTypeInactiveException: Booking type is disabled
        """
        booking_type = self._get_bookable_type(tenant_id, booking_type_id)
        tz = get_tenant_timezone(timezone)

        rules = self.booking_type_repository.get_rules_for_weekday(
            booking_type.id, day_of_week(target_date)
        )
        candidates = generate_slots(target_date, booking_type.duration_minutes, rules, tz)
        if not candidates:
            return []

        existing = self.booking_repository.get_active_in_range(
            booking_type.id, candidates[0].start, max(slot.end for slot in candidates)
        )
        available = filter_available(candidates, existing, self.clock.now())
        logger.debug(
            "Booking type %s on %s: %d of %d slots open",
            booking_type_id,
            target_date,
            len(available),
            len(candidates),
        )
        return available

    @BaseService.measure_operation("list_available_dates")
    def list_available_dates(
        self,
        tenant_id: str,
        booking_type_id: str,
        horizon_days: Optional[int] = None,
        timezone: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Dates in [today, today + horizon) whose weekday has at least one rule.

        Existing bookings are not consulted; a listed date may be fully booked.
        """
        booking_type = self._get_bookable_type(tenant_id, booking_type_id)
        horizon = (
            settings.available_dates_horizon_days if horizon_days is None else horizon_days
        )
        if horizon <= 0:
            raise ValidationException("horizon_days must be positive")

        weekdays = self.booking_type_repository.get_weekdays_with_rules(booking_type.id)
        if not weekdays:
            return []

        today = tenant_today(self.clock, timezone)
        dates: List[Dict[str, Any]] = []
        for offset in range(horizon):
            candidate = today + timedelta(days=offset)
            weekday = day_of_week(candidate)
            if weekday in weekdays:
                dates.append({"date": candidate, "day_of_week": weekday})
        return dates

    def is_slot_available(
        self,
        tenant_id: str,
        booking_type_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        """
        Whether [start, end) is free of active bookings for the booking type.

        Outside a reservation transaction this is advisory only.
        """
        if ensure_utc(end_time) <= ensure_utc(start_time):
            raise ValidationException("end_time must be after start_time")
        self._get_bookable_type(tenant_id, booking_type_id)
        return self.conflict_checker.is_available(
            booking_type_id, start_time, end_time, exclude_booking_id=exclude_booking_id
        )
