# backend/appointments/models/form.py
"""Intake forms linked to booking types, and the per-booking submissions."""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from ..core.ulid_helper import generate_ulid
from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FormSubmissionStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class Form(Base):
    __tablename__ = "forms"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    booking_type_links = relationship(
        "FormBookingType", back_populates="form", cascade="all, delete-orphan"
    )


class FormBookingType(Base):
    """Link table: forms a customer must fill in for a booking type."""

    __tablename__ = "form_booking_types"

    form_id = Column(String(26), ForeignKey("forms.id", ondelete="CASCADE"), primary_key=True)
    booking_type_id = Column(
        String(26), ForeignKey("booking_types.id", ondelete="CASCADE"), primary_key=True
    )

    form = relationship("Form", back_populates="booking_type_links")
    booking_type = relationship("BookingType", back_populates="form_links")


class FormSubmission(Base):
    """Placeholder created with the booking, completed later by the customer."""

    __tablename__ = "form_submissions"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    form_id = Column(String(26), ForeignKey("forms.id"), nullable=False)
    booking_id = Column(String(26), ForeignKey("bookings.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=FormSubmissionStatus.PENDING.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    booking = relationship("Booking", back_populates="form_submissions")
