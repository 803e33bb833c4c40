# backend/appointments/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

from functools import lru_cache
import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ...core.clock import Clock, SystemClock
from ...events.publisher import EventPublisher, InProcessEventPublisher
from ...services.availability_service import AvailabilityService
from ...services.booking_service import BookingService
from ...services.booking_type_service import BookingTypeService
from .database import get_db

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_clock() -> Clock:
    """Get the process-wide clock."""
    return SystemClock()


@lru_cache(maxsize=1)
def _fallback_publisher() -> InProcessEventPublisher:
    logger.warning("No event publisher on app state; events will only be logged at debug level")
    return InProcessEventPublisher()


def get_event_publisher(request: Request) -> EventPublisher:
    """Get the publisher wired up during application startup."""
    publisher = getattr(request.app.state, "event_publisher", None)
    return publisher if publisher is not None else _fallback_publisher()


def get_booking_service(
    db: Session = Depends(get_db),
    event_publisher: EventPublisher = Depends(get_event_publisher),
    clock: Clock = Depends(get_clock),
) -> BookingService:
    """Get booking service instance."""
    return BookingService(db, event_publisher=event_publisher, clock=clock)


def get_availability_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> AvailabilityService:
    """Get availability service instance."""
    return AvailabilityService(db, clock=clock)


def get_booking_type_service(db: Session = Depends(get_db)) -> BookingTypeService:
    return BookingTypeService(db)
