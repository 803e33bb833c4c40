# backend/appointments/repositories/booking_repository.py
"""
Booking Repository for the appointments backend.

Implements all data access operations for booking management:
- Conflict scans over active bookings of one booking type
- Reference code lookups
- Conditional status transitions
- Tenant listings and the reminder sweep
"""

from datetime import datetime
import logging
from typing import Any, List, Optional, Sequence

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RepositoryException
from ..core.timezone_utils import ensure_utc
from ..models.booking import ACTIVE_STATUSES, Booking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def create(self, **kwargs: Any) -> Booking:
        """Create a booking, exposing integrity errors for conflict handling."""
        try:
            return super().create(**kwargs)
        except RepositoryException as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise exc.__cause__
            raise

    def get_for_tenant(self, tenant_id: str, booking_id: str) -> Optional[Booking]:
        try:
            return (
                self.db.query(Booking)
                .options(joinedload(Booking.contact), joinedload(Booking.booking_type))
                .filter(Booking.id == booking_id, Booking.tenant_id == tenant_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error("Error getting booking %s: %s", booking_id, e)
            raise RepositoryException(f"Failed to get booking: {e}") from e

    def get_by_reference(
        self, reference_code: str, tenant_id: Optional[str] = None
    ) -> Optional[Booking]:
        query = (
            self.db.query(Booking)
            .options(joinedload(Booking.contact), joinedload(Booking.booking_type))
            .filter(Booking.reference_code == reference_code)
        )
        if tenant_id is not None:
            query = query.filter(Booking.tenant_id == tenant_id)
        try:
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error("Error getting booking by reference: %s", e)
            raise RepositoryException(f"Failed to get booking: {e}") from e

    def reference_code_exists(self, reference_code: str) -> bool:
        return self.exists(reference_code=reference_code)

    # Conflict queries

    def find_conflicts(
        self,
        booking_type_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """
        Active bookings of a booking type whose interval overlaps [start, end).

        Half-open: a booking ending exactly at ``start_time`` does not conflict.
        """
        query = self.db.query(Booking).filter(
            Booking.booking_type_id == booking_type_id,
            Booking.status.in_(ACTIVE_STATUSES),
            Booking.start_time < ensure_utc(end_time),
            Booking.end_time > ensure_utc(start_time),
        )
        if exclude_booking_id:
            query = query.filter(Booking.id != exclude_booking_id)
        return self._execute_query(query)

    def get_active_in_range(
        self, booking_type_id: str, range_start: datetime, range_end: datetime
    ) -> List[Booking]:
        """Active bookings touching [range_start, range_end), ordered by start."""
        query = (
            self.db.query(Booking)
            .filter(
                Booking.booking_type_id == booking_type_id,
                Booking.status.in_(ACTIVE_STATUSES),
                Booking.start_time < ensure_utc(range_end),
                Booking.end_time > ensure_utc(range_start),
            )
            .order_by(Booking.start_time)
        )
        return self._execute_query(query)

    # Mutations

    def transition_status(
        self, booking_id: str, expected_status: str, new_status: str, **values: Any
    ) -> int:
        """
        Conditionally move a booking from ``expected_status`` to ``new_status``.

        Returns the number of rows updated; 0 means the booking was no longer
        in ``expected_status`` when the update ran.
        """
        try:
            result = self.db.execute(
                update(Booking)
                .where(Booking.id == booking_id, Booking.status == expected_status)
                .values(status=new_status, **values)
            )
            return int(result.rowcount or 0)
        except SQLAlchemyError as e:
            self.logger.error("Error transitioning booking %s: %s", booking_id, e)
            raise RepositoryException(f"Failed to update booking status: {e}") from e

    def reschedule(self, booking: Booking, start_time: datetime, end_time: datetime) -> Booking:
        """Move a booking's interval; integrity errors surface to the caller."""
        booking.start_time = ensure_utc(start_time)
        booking.end_time = ensure_utc(end_time)
        self.db.flush()
        return booking

    # Listings

    def list_for_tenant(
        self,
        tenant_id: str,
        *,
        status: Optional[str] = None,
        booking_type_id: Optional[str] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Booking]:
        query = (
            self.db.query(Booking)
            .options(joinedload(Booking.contact), joinedload(Booking.booking_type))
            .filter(Booking.tenant_id == tenant_id)
        )
        if status:
            query = query.filter(Booking.status == status)
        if booking_type_id:
            query = query.filter(Booking.booking_type_id == booking_type_id)
        if start_from is not None:
            query = query.filter(Booking.start_time >= ensure_utc(start_from))
        if start_to is not None:
            query = query.filter(Booking.start_time < ensure_utc(start_to))
        query = query.order_by(Booking.start_time).offset(offset).limit(limit)
        return self._execute_query(query)

    def list_starting_between(
        self,
        tenant_id: str,
        start_from: datetime,
        start_to: datetime,
        statuses: Sequence[str] = ACTIVE_STATUSES,
    ) -> List[Booking]:
        query = (
            self.db.query(Booking)
            .options(joinedload(Booking.contact), joinedload(Booking.booking_type))
            .filter(
                Booking.tenant_id == tenant_id,
                Booking.status.in_(tuple(statuses)),
                Booking.start_time >= ensure_utc(start_from),
                Booking.start_time < ensure_utc(start_to),
            )
            .order_by(Booking.start_time)
        )
        return self._execute_query(query)

    def get_reminder_candidates(self, now: datetime, until: datetime) -> List[Booking]:
        """Active, not yet reminded bookings starting in (now, until]."""
        query = (
            self.db.query(Booking)
            .options(joinedload(Booking.contact), joinedload(Booking.booking_type))
            .filter(
                Booking.status.in_(ACTIVE_STATUSES),
                Booking.reminder_sent_at.is_(None),
                Booking.start_time > ensure_utc(now),
                Booking.start_time <= ensure_utc(until),
            )
            .order_by(Booking.start_time)
        )
        return self._execute_query(query)

    def count_for_booking_type(self, booking_type_id: str) -> int:
        return self.count(booking_type_id=booking_type_id)
