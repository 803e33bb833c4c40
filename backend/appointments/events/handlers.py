"""Default event handlers - log lifecycle events for downstream consumers."""
import logging
from typing import Any, Dict

from .booking_events import (
    BOOKING_CANCELLED,
    BOOKING_CREATED,
    BOOKING_REMINDER,
    BOOKING_UPDATED,
    CONTACT_CREATED,
)
from .publisher import InProcessEventPublisher

logger = logging.getLogger(__name__)


def handle_booking_created(event_name: str, payload: Dict[str, Any]) -> None:
    logger.info(
        "Booking %s created for contact %s (%s)",
        payload.get("reference_code"),
        payload.get("contact_id"),
        payload.get("start_time"),
        extra={"tenant_id": payload.get("tenant_id"), "event_name": event_name},
    )


def handle_booking_updated(event_name: str, payload: Dict[str, Any]) -> None:
    logger.info(
        "Booking %s updated: status=%s start=%s",
        payload.get("reference_code"),
        payload.get("status"),
        payload.get("start_time"),
        extra={"tenant_id": payload.get("tenant_id"), "event_name": event_name},
    )


def handle_booking_cancelled(event_name: str, payload: Dict[str, Any]) -> None:
    logger.info(
        "Booking %s cancelled (was %s)",
        payload.get("reference_code"),
        payload.get("previous_status"),
        extra={"tenant_id": payload.get("tenant_id"), "event_name": event_name},
    )


def handle_booking_reminder(event_name: str, payload: Dict[str, Any]) -> None:
    logger.info(
        "Reminder due for booking %s starting %s",
        payload.get("reference_code"),
        payload.get("start_time"),
        extra={"tenant_id": payload.get("tenant_id"), "event_name": event_name},
    )


def handle_contact_created(event_name: str, payload: Dict[str, Any]) -> None:
    logger.info(
        "Contact %s created from booking flow",
        payload.get("contact_id"),
        extra={"tenant_id": payload.get("tenant_id"), "event_name": event_name},
    )


# Registry of event name -> handler function
EVENT_HANDLERS = {
    BOOKING_CREATED: handle_booking_created,
    BOOKING_UPDATED: handle_booking_updated,
    BOOKING_CANCELLED: handle_booking_cancelled,
    BOOKING_REMINDER: handle_booking_reminder,
    CONTACT_CREATED: handle_contact_created,
}


def register_default_handlers(publisher: InProcessEventPublisher) -> None:
    """Subscribe the default handlers. Call once per publisher."""
    for event_name, handler in EVENT_HANDLERS.items():
        publisher.subscribe(event_name, handler)
