# backend/appointments/schemas/booking.py
"""Booking request/response schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AwareDatetime, EmailStr, Field

from ..core.timezone_utils import ensure_utc
from ..models.booking import BookingStatus
from ._strict_base import StrictModel, StrictRequestModel


class BookingCreate(StrictRequestModel):
    """
    Public reservation request.

    End time is never accepted from the client; it is derived from the
    booking type's duration inside the reservation transaction.
    """

    booking_type_id: str = Field(..., description="Booking type to reserve")
    start_time: AwareDatetime = Field(..., description="Slot start, ISO 8601 with offset")
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=32)
    notes: Optional[str] = Field(None, max_length=2000)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class StaffBookingCreate(StrictRequestModel):
    """Booking made by tenant staff for a contact already on file."""

    contact_id: str
    booking_type_id: str
    start_time: AwareDatetime
    notes: Optional[str] = Field(None, max_length=2000)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class BookingReschedule(StrictRequestModel):
    start_time: AwareDatetime


class BookingStatusUpdate(StrictRequestModel):
    status: BookingStatus
    notes: Optional[str] = Field(None, max_length=2000)


class ContactSummary(StrictModel):
    id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class BookingResponse(StrictModel):
    id: str
    tenant_id: str
    reference_code: str
    booking_type_id: str
    booking_type_name: Optional[str] = None
    contact: Optional[ContactSummary] = None
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    notes: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @classmethod
    def from_booking(cls, booking: Any) -> "BookingResponse":
        contact = booking.contact
        return cls(
            id=booking.id,
            tenant_id=booking.tenant_id,
            reference_code=booking.reference_code,
            booking_type_id=booking.booking_type_id,
            booking_type_name=booking.booking_type.name if booking.booking_type else None,
            contact=ContactSummary.model_validate(contact) if contact else None,
            start_time=ensure_utc(booking.start_time),
            end_time=ensure_utc(booking.end_time),
            status=booking.status,
            notes=booking.notes,
            metadata=dict(booking.booking_metadata or {}),
            created_at=ensure_utc(booking.created_at),
            updated_at=ensure_utc(booking.updated_at) if booking.updated_at else None,
            cancelled_at=ensure_utc(booking.cancelled_at) if booking.cancelled_at else None,
        )


class PublicBookingResponse(StrictModel):
    """Confirmation view for the customer who holds the reference code."""

    reference_code: str
    status: BookingStatus
    booking_type_name: Optional[str] = None
    location: Optional[str] = None
    start_time: datetime
    end_time: datetime

    @classmethod
    def from_booking(cls, booking: Any) -> "PublicBookingResponse":
        booking_type = booking.booking_type
        return cls(
            reference_code=booking.reference_code,
            status=booking.status,
            booking_type_name=booking_type.name if booking_type else None,
            location=booking_type.location if booking_type else None,
            start_time=ensure_utc(booking.start_time),
            end_time=ensure_utc(booking.end_time),
        )


class BookingListResponse(StrictModel):
    bookings: List[BookingResponse]
    total: int


class ReminderSweepResponse(StrictModel):
    reminders_sent: int
