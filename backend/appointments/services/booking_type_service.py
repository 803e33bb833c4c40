# backend/appointments/services/booking_type_service.py
"""
Booking type administration: definitions, weekly rules and linked forms.

A booking type that has ever been booked cannot be deleted; bookings keep
their history and the foreign key from bookings is RESTRICT.
"""

from dataclasses import dataclass
import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError

from ..core.exceptions import (
    BookingTypeInUseException,
    ConflictException,
    NotFoundException,
    RepositoryException,
    ValidationException,
)
from ..core.timezone_utils import MINUTES_PER_DAY
from ..models.booking_type import AvailabilityRule, BookingType
from ..models.form import FormBookingType
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"name", "description", "location", "duration_minutes", "is_active"})


@dataclass(frozen=True)
class RuleWindow:
    """One weekly window: 0 = Sunday, minutes since local midnight."""

    day_of_week: int
    start_minute: int
    end_minute: int


# Mon-Fri 09:00-17:00, Sat 09:00-13:00
DEFAULT_RULES = tuple(RuleWindow(day, 9 * 60, 17 * 60) for day in range(1, 6)) + (
    RuleWindow(6, 9 * 60, 13 * 60),
)


def validate_rule(rule: RuleWindow) -> RuleWindow:
    if not 0 <= rule.day_of_week <= 6:
        raise ValidationException(
            "day_of_week must be between 0 (Sunday) and 6 (Saturday)",
            details={"day_of_week": rule.day_of_week},
        )
    if not 0 <= rule.start_minute < MINUTES_PER_DAY or not 0 < rule.end_minute <= MINUTES_PER_DAY:
        raise ValidationException("Rule times must fall within the day")
    if rule.end_minute <= rule.start_minute:
        raise ValidationException("End time must be after start time")
    return rule


def validate_duration(duration_minutes: Any) -> int:
    if not isinstance(duration_minutes, int) or isinstance(duration_minutes, bool):
        raise ValidationException("duration_minutes must be an integer")
    if duration_minutes <= 0:
        raise ValidationException(
            "duration_minutes must be positive", details={"duration_minutes": duration_minutes}
        )
    return duration_minutes


class BookingTypeService(BaseService):
    """CRUD for booking types scoped to a tenant."""

    def __init__(self, db, clock=None):
        super().__init__(db, clock)
        self.repository = RepositoryFactory.create_booking_type_repository(db)
        self.form_repository = RepositoryFactory.create_form_repository(db)

    def _get_or_404(self, tenant_id: str, booking_type_id: str) -> BookingType:
        booking_type = self.repository.get_for_tenant(tenant_id, booking_type_id)
        if not booking_type:
            raise NotFoundException("Booking type not found", code="BOOKING_TYPE_NOT_FOUND")
        return booking_type

    def list_booking_types(self, tenant_id: str, include_inactive: bool = False) -> List[BookingType]:
        return self.repository.list_for_tenant(tenant_id, active_only=not include_inactive)

    def get_booking_type(self, tenant_id: str, booking_type_id: str) -> BookingType:
        return self._get_or_404(tenant_id, booking_type_id)

    def get_linked_form_ids(self, booking_type_id: str) -> List[str]:
        return self.form_repository.get_linked_form_ids(booking_type_id)

    @BaseService.measure_operation("create_booking_type")
    def create_booking_type(
        self,
        tenant_id: str,
        name: str,
        duration_minutes: int,
        description: Optional[str] = None,
        location: Optional[str] = None,
        rules: Optional[Sequence[RuleWindow]] = None,
    ) -> BookingType:
        """
        Create a booking type with its weekly rules.

        When ``rules`` is None the default weekday schedule is used; an
        explicit empty list creates a type with no availability.
        """
        if not (name or "").strip():
            raise ValidationException("Booking type name is required")
        validate_duration(duration_minutes)
        windows = [validate_rule(rule) for rule in (DEFAULT_RULES if rules is None else rules)]

        self.log_operation("create_booking_type", tenant_id=tenant_id, duration=duration_minutes)
        with self.unit_of_work() as uow:
            booking_type = BookingType(
                tenant_id=tenant_id,
                name=name.strip(),
                description=description,
                location=location,
                duration_minutes=duration_minutes,
                is_active=True,
                availability_rules=[
                    AvailabilityRule(
                        day_of_week=window.day_of_week,
                        start_minute=window.start_minute,
                        end_minute=window.end_minute,
                    )
                    for window in windows
                ],
            )
            uow.session.add(booking_type)
            uow.session.flush()

        self.logger.info("Created booking type %s for tenant %s", booking_type.id, tenant_id)
        return booking_type

    @BaseService.measure_operation("update_booking_type")
    def update_booking_type(
        self, tenant_id: str, booking_type_id: str, changes: Dict[str, Any]
    ) -> BookingType:
        """
        Apply partial changes.

        A new duration applies to future bookings only; existing bookings
        keep the interval they were created with.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationException(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if "duration_minutes" in changes:
            validate_duration(changes["duration_minutes"])
        if "name" in changes and not (changes["name"] or "").strip():
            raise ValidationException("Booking type name is required")

        with self.unit_of_work() as uow:
            booking_type = uow.booking_types.get_for_tenant(tenant_id, booking_type_id)
            if not booking_type:
                raise NotFoundException("Booking type not found", code="BOOKING_TYPE_NOT_FOUND")
            for key, value in changes.items():
                setattr(booking_type, key, value)
            uow.session.flush()
        return booking_type

    @BaseService.measure_operation("delete_booking_type")
    def delete_booking_type(self, tenant_id: str, booking_type_id: str) -> None:
        """
        Delete a booking type that has never been booked.

        Raises:
            NotFoundException: Unknown booking type for the tenant
            BookingTypeInUseException: Any booking (in any status) references it
        """
        try:
            with self.unit_of_work() as uow:
                booking_type = uow.booking_types.lock_for_update(tenant_id, booking_type_id)
                if not booking_type:
                    raise NotFoundException(
                        "Booking type not found", code="BOOKING_TYPE_NOT_FOUND"
                    )
                booking_count = uow.bookings.count_for_booking_type(booking_type_id)
                if booking_count:
                    raise BookingTypeInUseException(booking_type_id, booking_count)
                uow.booking_types.delete(booking_type_id)
        except IntegrityError as exc:
            # A booking landed between the count and the delete
            raise BookingTypeInUseException(booking_type_id, 1) from exc
        except RepositoryException as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise BookingTypeInUseException(booking_type_id, 1) from exc
            raise
        self.logger.info("Deleted booking type %s for tenant %s", booking_type_id, tenant_id)

    def add_availability_rule(
        self, tenant_id: str, booking_type_id: str, rule: RuleWindow
    ) -> AvailabilityRule:
        validate_rule(rule)
        with self.unit_of_work() as uow:
            booking_type = uow.booking_types.get_for_tenant(tenant_id, booking_type_id)
            if not booking_type:
                raise NotFoundException("Booking type not found", code="BOOKING_TYPE_NOT_FOUND")
            created = uow.booking_types.add_rule(
                booking_type, rule.day_of_week, rule.start_minute, rule.end_minute
            )
        return created

    def delete_availability_rule(self, tenant_id: str, rule_id: str) -> None:
        with self.unit_of_work() as uow:
            rule = uow.booking_types.get_rule_for_tenant(tenant_id, rule_id)
            if not rule:
                raise NotFoundException("Availability rule not found", code="RULE_NOT_FOUND")
            uow.booking_types.delete_rule(rule)

    def link_form(self, tenant_id: str, booking_type_id: str, form_id: str) -> FormBookingType:
        with self.unit_of_work() as uow:
            booking_type = uow.booking_types.get_for_tenant(tenant_id, booking_type_id)
            form = uow.forms.get_for_tenant(tenant_id, form_id)
            if not booking_type or not form:
                raise NotFoundException("Booking type or form not found")
            if uow.forms.get_link(form_id, booking_type_id):
                raise ConflictException(
                    "Form already linked to this booking type", code="FORM_ALREADY_LINKED"
                )
            link = uow.forms.create_link(form_id, booking_type_id)
        return link

    def unlink_form(self, tenant_id: str, booking_type_id: str, form_id: str) -> None:
        with self.unit_of_work() as uow:
            if not uow.booking_types.get_for_tenant(tenant_id, booking_type_id):
                raise NotFoundException("Booking type not found", code="BOOKING_TYPE_NOT_FOUND")
            link = uow.forms.get_link(form_id, booking_type_id)
            if not link:
                raise NotFoundException("Form is not linked to this booking type")
            uow.forms.delete_link(link)
