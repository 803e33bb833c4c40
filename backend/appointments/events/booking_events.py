"""Booking domain events."""
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional

BOOKING_CREATED = "booking.created"
BOOKING_UPDATED = "booking.updated"
BOOKING_CANCELLED = "booking.cancelled"
BOOKING_REMINDER = "booking.reminder"
CONTACT_CREATED = "contact.created"


@dataclass
class BookingCreated:
    """Fired after a booking is committed."""

    event_name: ClassVar[str] = BOOKING_CREATED

    tenant_id: str
    booking_id: str
    reference_code: str
    booking_type_id: str
    booking_type_name: str
    contact_id: str
    contact_name: str
    contact_email: Optional[str]
    contact_phone: Optional[str]
    start_time: datetime
    end_time: datetime
    status: str
    form_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BookingUpdated:
    """Fired after a booking is rescheduled or changes status."""

    event_name: ClassVar[str] = BOOKING_UPDATED

    tenant_id: str
    booking_id: str
    reference_code: str
    status: str
    start_time: datetime
    end_time: datetime
    previous_status: Optional[str] = None
    previous_start_time: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BookingCancelled:
    """Fired after a booking is cancelled."""

    event_name: ClassVar[str] = BOOKING_CANCELLED

    tenant_id: str
    booking_id: str
    reference_code: str
    previous_status: str
    cancelled_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BookingReminder:
    """Fired when a booking reminder should be sent."""

    event_name: ClassVar[str] = BOOKING_REMINDER

    tenant_id: str
    booking_id: str
    reference_code: str
    contact_id: str
    start_time: datetime
    hours_before: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ContactCreated:
    """Fired after the reservation flow creates a new contact."""

    event_name: ClassVar[str] = CONTACT_CREATED

    tenant_id: str
    contact_id: str
    email: Optional[str]
    phone: Optional[str]
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
