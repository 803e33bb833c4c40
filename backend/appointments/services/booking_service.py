# backend/appointments/services/booking_service.py
"""
Booking Service for the appointments backend.

Owns every mutation of a booking's interval or status:
- create_booking: lock type, re-check conflicts, resolve contact,
  allocate reference code, insert booking and form placeholders
- reschedule_booking: move an active booking, excluding itself from the scan
- update_status / cancel_booking: status machine transitions

Each mutation runs in one unit of work. Events are queued on the unit of
work and published only after the commit succeeds.
"""

from datetime import date, datetime, timedelta
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session

from ..core.clock import Clock, tenant_today
from ..core.config import settings
from ..core.exceptions import (
    BookingTypeInactiveException,
    BusinessRuleException,
    InvalidTransitionException,
    NotFoundException,
    ReferenceCodeConflictException,
    RepositoryException,
    SlotUnavailableException,
    ValidationException,
)
from ..core.timezone_utils import ensure_utc, get_tenant_timezone, local_datetime
from ..database.session_utils import is_concurrency_failure
from ..database.unit_of_work import UnitOfWork
from ..events.booking_events import (
    BookingCancelled,
    BookingCreated,
    BookingReminder,
    BookingUpdated,
    ContactCreated,
)
from ..events.publisher import EventPublisher, publish_event
from ..models.booking import (
    ACTIVE_BOOKING_CONSTRAINT_NAME,
    OVERLAP_CONSTRAINT_NAME,
    Booking,
    BookingStatus,
)
from ..models.booking_type import BookingType
from ..models.contact import Contact
from ..repositories.factory import RepositoryFactory
from .availability_service import fits_rule_window
from .base import BaseService
from .booking_state import ensure_transition
from .conflict_checker import ConflictChecker
from .contact_resolver import ContactResolver, CustomerDetails
from .reference_code import ReferenceCodeAllocator

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = "This time slot is no longer available"
RESCHEDULE_TAKEN_MESSAGE = "The new time slot is not available"

# Constraint scopes that mean another booking holds the interval
_SLOT_CONFLICT_SCOPES = ("start_time", "overlap")

# Statuses a booking cannot be moved out of by reschedule
_NOT_RESCHEDULABLE = (BookingStatus.COMPLETED.value, BookingStatus.CANCELLED.value)


def _require_aware(start_time: datetime) -> datetime:
    """Normalize a requested start to UTC, rejecting naive values."""
    if start_time.tzinfo is None:
        raise ValidationException(
            "start_time must include a UTC offset",
            code="NAIVE_START_TIME",
            details={"start_time": start_time.isoformat()},
        )
    return ensure_utc(start_time)


class BookingService(BaseService):
    """Reservation transaction and booking lifecycle."""

    def __init__(
        self,
        db: Session,
        event_publisher: EventPublisher,
        clock: Optional[Clock] = None,
        reference_allocator: Optional[ReferenceCodeAllocator] = None,
    ):
        super().__init__(db, clock)
        self.event_publisher = event_publisher
        self.reference_allocator = reference_allocator or ReferenceCodeAllocator()
        self.repository = RepositoryFactory.create_booking_repository(db)

    # Conflict translation

    @staticmethod
    def _resolve_integrity_conflict_scope(integrity_error: IntegrityError) -> Optional[str]:
        """Name the constraint behind a database-level conflict, when recognisable."""
        orig = getattr(integrity_error, "orig", None)
        diag = getattr(orig, "diag", None)
        constraint_name = (getattr(diag, "constraint_name", "") or "") if diag is not None else ""
        text = constraint_name or str(orig or integrity_error)

        if OVERLAP_CONSTRAINT_NAME in text:
            return "overlap"
        if ACTIVE_BOOKING_CONSTRAINT_NAME in text or "bookings.booking_type_id" in text:
            return "start_time"
        if "reference_code" in text:
            return "reference_code"
        return None

    def _raise_slot_conflict(
        self, exc: DBAPIError, details: Dict[str, Any], message: str = SLOT_TAKEN_MESSAGE
    ) -> None:
        """
        Translate a database-level race loss into SlotUnavailableException.

        The active-start index, the overlap exclusion constraint and deadlocks
        mean a concurrent writer claimed the interval first. A reference code
        collision is reported as its own retryable conflict. Anything else
        propagates unchanged.
        """
        if isinstance(exc, IntegrityError):
            scope = self._resolve_integrity_conflict_scope(exc)
            if scope == "reference_code":
                self.logger.info("Reference code collision: %s", details)
                raise ReferenceCodeConflictException() from exc
            if scope not in _SLOT_CONFLICT_SCOPES:
                raise exc
            details = {**details, "conflict_scope": scope}
        elif not is_concurrency_failure(exc):
            raise exc
        self.logger.info("Reservation rejected by database: %s", details)
        raise SlotUnavailableException(message, details=details) from exc

    def _raise_from_repository_error(
        self, exc: RepositoryException, details: Dict[str, Any], message: str = SLOT_TAKEN_MESSAGE
    ) -> None:
        """Repositories wrap driver errors; unwrap deadlocks and serialization failures."""
        cause = exc.__cause__
        if isinstance(cause, DBAPIError) and is_concurrency_failure(cause):
            self._raise_slot_conflict(cause, details, message)
        raise exc

    def _log_phase(self, phase: str, **context: Any) -> None:
        self.logger.debug("Reservation phase %s", phase, extra={"phase": phase, **context})

    # Creation

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        tenant_id: str,
        booking_type_id: str,
        start_time: datetime,
        customer: Optional[CustomerDetails] = None,
        notes: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        *,
        contact_id: Optional[str] = None,
    ) -> Booking:
        """
        Reserve ``start_time`` for a customer.

        Public callers pass ``customer`` and the contact is resolved by
        email/phone. Staff callers pass ``contact_id`` to book for an
        existing contact of the tenant.

        Args:
            tenant_id: Owning tenant
            booking_type_id: Booking type to reserve
            start_time: Slot start, timezone-aware
            customer: Name plus optional email/phone used for contact dedup
            contact_id: Existing contact to book for, instead of ``customer``
            notes: Free-text notes stored on the booking
            metadata: Arbitrary JSON stored on the booking

        Returns:
            The committed booking, status PENDING

        Raises:
            ValidationException: Missing customer name, naive start time, or not
                exactly one of customer and contact_id
            NotFoundException: Booking type or contact not found for the tenant
            BookingTypeInactiveException: Booking type is disabled
            SlotUnavailableException: Interval taken (retryable)
            ReferenceCodeExhaustedException: No free reference code (retryable)
            ReferenceCodeConflictException: Code claimed by a concurrent booking (retryable)
        """
        if (customer is None) == (contact_id is None):
            raise ValidationException("Provide either customer details or contact_id")
        if customer is not None and not (customer.name or "").strip():
            raise ValidationException("Customer name is required")

        start_utc = _require_aware(start_time)
        self.log_operation(
            "create_booking",
            tenant_id=tenant_id,
            booking_type_id=booking_type_id,
            start_time=start_utc.isoformat(),
            contact_id=contact_id,
        )
        conflict_details = {
            "booking_type_id": booking_type_id,
            "start_time": start_utc.isoformat(),
        }

        try:
            with self.unit_of_work() as uow:
                booking = self._reserve(
                    uow,
                    tenant_id,
                    booking_type_id,
                    start_utc,
                    notes,
                    metadata,
                    customer=customer,
                    contact_id=contact_id,
                )
        except DBAPIError as exc:
            self._log_phase("Rejected", reason="database_conflict", **conflict_details)
            self._raise_slot_conflict(exc, conflict_details)
        except RepositoryException as exc:
            self._raise_from_repository_error(exc, conflict_details)

        self._log_phase("Committed", booking_id=booking.id)
        return booking

    def _reserve(
        self,
        uow: UnitOfWork,
        tenant_id: str,
        booking_type_id: str,
        start_utc: datetime,
        notes: Optional[str],
        metadata: Optional[Dict[str, Any]],
        customer: Optional[CustomerDetails] = None,
        contact_id: Optional[str] = None,
    ) -> Booking:
        self._log_phase("Validating", booking_type_id=booking_type_id)
        existing_contact: Optional[Contact] = None
        if contact_id is not None:
            existing_contact = uow.contacts.find_one_by(id=contact_id, tenant_id=tenant_id)
            if existing_contact is None:
                raise NotFoundException("Contact not found", code="CONTACT_NOT_FOUND")

        booking_type = uow.booking_types.lock_for_update(tenant_id, booking_type_id)
        if not booking_type:
            raise NotFoundException("Booking type not found", code="BOOKING_TYPE_NOT_FOUND")
        if not booking_type.is_active:
            raise BookingTypeInactiveException(booking_type_id)

        end_utc = start_utc + timedelta(minutes=booking_type.duration_minutes)
        if not ConflictChecker(uow.bookings).is_available(booking_type.id, start_utc, end_utc):
            self._log_phase("Rejected", reason="conflict", booking_type_id=booking_type_id)
            raise SlotUnavailableException(
                SLOT_TAKEN_MESSAGE,
                details={
                    "booking_type_id": booking_type.id,
                    "start_time": start_utc.isoformat(),
                    "end_time": end_utc.isoformat(),
                },
            )

        self._log_phase("ContactResolving")
        if existing_contact is not None:
            contact, contact_created = existing_contact, False
        else:
            contact, contact_created = ContactResolver(uow.contacts).resolve(tenant_id, customer)

        self._log_phase("CodeAllocating")
        reference_code = self.reference_allocator.allocate(uow.bookings.reference_code_exists)

        self._log_phase("Inserting", reference_code=reference_code)
        booking = uow.bookings.create(
            tenant_id=tenant_id,
            contact_id=contact.id,
            booking_type_id=booking_type.id,
            reference_code=reference_code,
            start_time=start_utc,
            end_time=end_utc,
            status=BookingStatus.PENDING.value,
            notes=notes,
            booking_metadata=dict(metadata or {}),
        )
        form_ids = uow.forms.get_linked_form_ids(booking_type.id)
        uow.forms.create_pending_submissions(booking.id, form_ids)

        if contact_created:
            contact_event = ContactCreated(
                tenant_id=tenant_id,
                contact_id=contact.id,
                email=contact.email,
                phone=contact.phone,
                source=contact.source,
            )
            uow.after_commit(lambda: publish_event(self.event_publisher, contact_event))

        booking_event = BookingCreated(
            tenant_id=tenant_id,
            booking_id=booking.id,
            reference_code=reference_code,
            booking_type_id=booking_type.id,
            booking_type_name=booking_type.name,
            contact_id=contact.id,
            contact_name=contact.full_name,
            contact_email=contact.email,
            contact_phone=contact.phone,
            start_time=start_utc,
            end_time=end_utc,
            status=booking.status,
            form_ids=list(form_ids),
        )
        uow.after_commit(lambda: publish_event(self.event_publisher, booking_event))
        return booking

    # Reschedule

    @BaseService.measure_operation("reschedule_booking")
    def reschedule_booking(
        self,
        tenant_id: str,
        booking_id: str,
        new_start: datetime,
        timezone: Optional[str] = None,
    ) -> Booking:
        """
        Move a booking to ``new_start``, keeping the booking type's current duration.

        Only other bookings are checked for conflicts. The weekly availability
        window is enforced only when ``reschedule_enforces_rule_window`` is on.

        Raises:
            NotFoundException: Booking not found for the tenant
            ValidationException: Naive start time
            InvalidTransitionException: Booking is COMPLETED or CANCELLED
            BusinessRuleException: Outside the availability window (opt-in)
            SlotUnavailableException: New interval is taken
        """
        new_start_utc = _require_aware(new_start)
        self.log_operation(
            "reschedule_booking",
            tenant_id=tenant_id,
            booking_id=booking_id,
            new_start=new_start_utc.isoformat(),
        )
        conflict_details = {"booking_id": booking_id, "start_time": new_start_utc.isoformat()}

        try:
            with self.unit_of_work() as uow:
                booking = self._get_tenant_booking(uow, tenant_id, booking_id)
                booking_type = uow.booking_types.lock_for_update(
                    tenant_id, booking.booking_type_id
                )
                # Status may have moved while we waited for the lock
                uow.session.refresh(booking)
                if booking.status in _NOT_RESCHEDULABLE:
                    raise InvalidTransitionException(
                        booking.status,
                        "RESCHEDULE",
                        message=f"Cannot reschedule a {booking.status.lower()} booking",
                    )
                if booking_type is None:
                    raise NotFoundException("Booking type not found", code="BOOKING_TYPE_NOT_FOUND")

                new_end_utc = new_start_utc + timedelta(minutes=booking_type.duration_minutes)
                self._check_rule_window(booking_type, new_start_utc, new_end_utc, timezone)

                checker = ConflictChecker(uow.bookings)
                if not checker.is_available(
                    booking_type.id, new_start_utc, new_end_utc, exclude_booking_id=booking.id
                ):
                    raise SlotUnavailableException(
                        RESCHEDULE_TAKEN_MESSAGE,
                        details={**conflict_details, "end_time": new_end_utc.isoformat()},
                    )

                previous_start = ensure_utc(booking.start_time)
                uow.bookings.reschedule(booking, new_start_utc, new_end_utc)

                event = BookingUpdated(
                    tenant_id=tenant_id,
                    booking_id=booking.id,
                    reference_code=booking.reference_code,
                    status=booking.status,
                    start_time=new_start_utc,
                    end_time=new_end_utc,
                    previous_start_time=previous_start,
                )
                uow.after_commit(lambda: publish_event(self.event_publisher, event))
        except DBAPIError as exc:
            self._raise_slot_conflict(exc, conflict_details, RESCHEDULE_TAKEN_MESSAGE)
        except RepositoryException as exc:
            self._raise_from_repository_error(exc, conflict_details, RESCHEDULE_TAKEN_MESSAGE)

        return booking

    def _check_rule_window(
        self,
        booking_type: BookingType,
        start_utc: datetime,
        end_utc: datetime,
        timezone: Optional[str],
    ) -> None:
        if not settings.reschedule_enforces_rule_window:
            return
        tz = get_tenant_timezone(timezone)
        if not fits_rule_window(booking_type.availability_rules, start_utc, end_utc, tz):
            raise BusinessRuleException(
                "The new time is outside the booking type's availability",
                code="OUTSIDE_AVAILABILITY",
                details={"booking_type_id": booking_type.id, "start_time": start_utc.isoformat()},
            )

    # Status transitions

    @BaseService.measure_operation("update_booking_status")
    def update_status(
        self,
        tenant_id: str,
        booking_id: str,
        new_status: str,
        notes: Optional[str] = None,
    ) -> Booking:
        """
        Move a booking through the status machine.

        Raises:
            NotFoundException: Booking not found for the tenant
            InvalidTransitionException: Transition not allowed, or lost to a concurrent change
        """
        self.log_operation(
            "update_booking_status",
            tenant_id=tenant_id,
            booking_id=booking_id,
            new_status=new_status,
        )
        return self._transition(tenant_id, booking_id, new_status, notes=notes)

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, tenant_id: str, booking_id: str) -> Booking:
        """
        Cancel a booking.

        Raises:
            NotFoundException: Booking not found for the tenant
            InvalidTransitionException: Booking is already terminal
        """
        self.log_operation("cancel_booking", tenant_id=tenant_id, booking_id=booking_id)
        return self._transition(tenant_id, booking_id, BookingStatus.CANCELLED.value)

    def _transition(
        self,
        tenant_id: str,
        booking_id: str,
        new_status: str,
        notes: Optional[str] = None,
    ) -> Booking:
        now = self.clock.now()
        with self.unit_of_work() as uow:
            booking = self._get_tenant_booking(uow, tenant_id, booking_id)
            current_status = booking.status
            target_status = ensure_transition(current_status, new_status)

            values: Dict[str, Any] = {"updated_at": now}
            if target_status == BookingStatus.CANCELLED.value:
                values["cancelled_at"] = now
            if notes is not None:
                values["notes"] = notes

            updated = uow.bookings.transition_status(
                booking.id, current_status, target_status, **values
            )
            if updated == 0:
                raise InvalidTransitionException(
                    current_status,
                    target_status,
                    message="Booking status was changed by another request",
                )
            uow.session.refresh(booking)

            event: Any
            if target_status == BookingStatus.CANCELLED.value:
                event = BookingCancelled(
                    tenant_id=tenant_id,
                    booking_id=booking.id,
                    reference_code=booking.reference_code,
                    previous_status=current_status,
                    cancelled_at=now,
                )
            else:
                event = BookingUpdated(
                    tenant_id=tenant_id,
                    booking_id=booking.id,
                    reference_code=booking.reference_code,
                    status=target_status,
                    start_time=ensure_utc(booking.start_time),
                    end_time=ensure_utc(booking.end_time),
                    previous_status=current_status,
                )
            uow.after_commit(lambda: publish_event(self.event_publisher, event))

        self.logger.info("Booking %s moved %s -> %s", booking_id, current_status, target_status)
        return booking

    # Reminder sweep

    @BaseService.measure_operation("send_booking_reminders")
    def send_booking_reminders(self) -> int:
        """
        Publish ``booking.reminder`` for active bookings starting soon.

        Covers every tenant. A booking is reminded once: ``reminder_sent_at``
        is stamped in the same transaction that queues its event.

        Returns:
            Number of reminders queued
        """
        now = self.clock.now()
        lead_hours = settings.reminder_lead_hours
        with self.unit_of_work() as uow:
            candidates = uow.bookings.get_reminder_candidates(now, now + timedelta(hours=lead_hours))
            for booking in candidates:
                booking.reminder_sent_at = now
                event = BookingReminder(
                    tenant_id=booking.tenant_id,
                    booking_id=booking.id,
                    reference_code=booking.reference_code,
                    contact_id=booking.contact_id,
                    start_time=ensure_utc(booking.start_time),
                    hours_before=lead_hours,
                )
                uow.after_commit(
                    lambda event=event: publish_event(self.event_publisher, event)
                )
            uow.session.flush()

        if candidates:
            self.logger.info("Queued %d booking reminder(s)", len(candidates))
        return len(candidates)

    # Queries

    def _get_tenant_booking(self, uow: UnitOfWork, tenant_id: str, booking_id: str) -> Booking:
        booking = uow.bookings.get_for_tenant(tenant_id, booking_id)
        if not booking:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        return booking

    def get_booking(self, tenant_id: str, booking_id: str) -> Booking:
        booking = self.repository.get_for_tenant(tenant_id, booking_id)
        if not booking:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        return booking

    def get_booking_by_reference(
        self, reference_code: str, tenant_id: Optional[str] = None
    ) -> Booking:
        booking = self.repository.get_by_reference(reference_code.strip().upper(), tenant_id)
        if not booking:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        return booking

    def _local_day_bounds(
        self, start_date: date, end_date: date, timezone: Optional[str]
    ) -> Tuple[datetime, datetime]:
        tz = get_tenant_timezone(timezone)
        return local_datetime(start_date, 0, tz), local_datetime(end_date, 24 * 60, tz)

    def list_bookings(
        self,
        tenant_id: str,
        *,
        status: Optional[str] = None,
        booking_type_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        timezone: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Booking]:
        """
        Tenant bookings ordered by start time.

        ``start_date``/``end_date`` are inclusive tenant-local calendar dates.
        """
        if start_date and end_date and end_date < start_date:
            raise ValidationException("end_date must not be before start_date")
        start_from: Optional[datetime] = None
        start_to: Optional[datetime] = None
        if start_date is not None:
            start_from, _ = self._local_day_bounds(start_date, start_date, timezone)
        if end_date is not None:
            _, start_to = self._local_day_bounds(end_date, end_date, timezone)
        return self.repository.list_for_tenant(
            tenant_id,
            status=status,
            booking_type_id=booking_type_id,
            start_from=start_from,
            start_to=start_to,
            limit=limit,
            offset=offset,
        )

    def get_upcoming_bookings(self, tenant_id: str, days: Optional[int] = None) -> List[Booking]:
        """Active bookings starting between now and now + ``days``."""
        now = self.clock.now()
        window = timedelta(days=days or settings.upcoming_window_days)
        return self.repository.list_starting_between(tenant_id, now, now + window)

    def get_today_bookings(self, tenant_id: str, timezone: Optional[str] = None) -> List[Booking]:
        """All bookings (any status) starting on the tenant's current local day."""
        today = tenant_today(self.clock, timezone)
        day_start, day_end = self._local_day_bounds(today, today, timezone)
        return self.repository.list_starting_between(
            tenant_id, day_start, day_end, statuses=[status.value for status in BookingStatus]
        )
