# backend/appointments/models/booking.py
"""
Booking model.

A booking is a reservation of one booking type's interval by a contact.
Start/end are stored in UTC and frozen at creation: changing the booking
type's duration later never resizes existing bookings. Bookings are never
deleted; cancellation is a status.

No two PENDING/CONFIRMED bookings of the same booking type may overlap on
[start_time, end_time). The service layer enforces this under a row lock;
the partial unique index below and the Postgres exclusion constraint added
by the migrations back it up at the database level.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship

from ..core.ulid_helper import generate_ulid
from ..database import Base


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "PENDING"  # Initial state on creation
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"
    CANCELLED = "CANCELLED"


ACTIVE_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)
TERMINAL_STATUSES = (
    BookingStatus.COMPLETED.value,
    BookingStatus.NO_SHOW.value,
    BookingStatus.CANCELLED.value,
)

ACTIVE_BOOKING_CONSTRAINT_NAME = "uq_bookings_active_start_per_type"
OVERLAP_CONSTRAINT_NAME = "bookings_no_overlap_per_type"

_ACTIVE_WHERE = text("status IN ('PENDING', 'CONFIRMED')")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Booking(Base):
    """Reservation of a booking type interval by a contact."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    tenant_id = Column(String(64), nullable=False, index=True)
    contact_id = Column(String(26), ForeignKey("contacts.id"), nullable=False, index=True)
    booking_type_id = Column(
        String(26), ForeignKey("booking_types.id", ondelete="RESTRICT"), nullable=False
    )
    reference_code = Column(String(16), nullable=False, unique=True)

    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    notes = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    booking_metadata = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    reminder_sent_at = Column(DateTime(timezone=True), nullable=True)

    contact = relationship("Contact", back_populates="bookings")
    booking_type = relationship("BookingType")
    form_submissions = relationship("FormSubmission", back_populates="booking")

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'COMPLETED', 'NO_SHOW', 'CANCELLED')",
            name="ck_bookings_status",
        ),
        CheckConstraint("end_time > start_time", name="check_booking_time_order"),
        Index("ix_bookings_type_start", "booking_type_id", "start_time"),
        Index(
            ACTIVE_BOOKING_CONSTRAINT_NAME,
            "booking_type_id",
            "start_time",
            unique=True,
            sqlite_where=_ACTIVE_WHERE,
            postgresql_where=_ACTIVE_WHERE,
        ),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = BookingStatus.PENDING.value
        if self.booking_metadata is None:
            self.booking_metadata = {}

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)

    def __repr__(self) -> str:
        return f"<Booking {self.reference_code} {self.status} {self.start_time}>"
