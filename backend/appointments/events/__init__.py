"""Booking lifecycle events and their in-process publisher."""

from .booking_events import (
    BOOKING_CANCELLED,
    BOOKING_CREATED,
    BOOKING_REMINDER,
    BOOKING_UPDATED,
    CONTACT_CREATED,
    BookingCancelled,
    BookingCreated,
    BookingReminder,
    BookingUpdated,
    ContactCreated,
)
from .handlers import register_default_handlers
from .publisher import EventPublisher, InProcessEventPublisher, publish_event

__all__ = [
    "BOOKING_CANCELLED",
    "BOOKING_CREATED",
    "BOOKING_REMINDER",
    "BOOKING_UPDATED",
    "CONTACT_CREATED",
    "BookingCancelled",
    "BookingCreated",
    "BookingReminder",
    "BookingUpdated",
    "ContactCreated",
    "EventPublisher",
    "InProcessEventPublisher",
    "publish_event",
    "register_default_handlers",
]
