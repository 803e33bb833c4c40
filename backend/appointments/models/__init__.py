"""
Database models for the appointments backend.

- BookingType / AvailabilityRule: bookable services and their weekly windows
- Booking: reservations with lifecycle status
- Contact: customers, deduplicated per tenant by email or phone
- Form / FormBookingType / FormSubmission: intake forms linked to booking types
"""

from .booking import ACTIVE_STATUSES, TERMINAL_STATUSES, Booking, BookingStatus
from .booking_type import AvailabilityRule, BookingType
from .contact import Contact
from .form import Form, FormBookingType, FormSubmission, FormSubmissionStatus

__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "AvailabilityRule",
    "Booking",
    "BookingStatus",
    "BookingType",
    "Contact",
    "Form",
    "FormBookingType",
    "FormSubmission",
    "FormSubmissionStatus",
]
