# backend/appointments/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .database import get_db
from .services import (
    get_availability_service,
    get_booking_service,
    get_booking_type_service,
    get_clock,
    get_event_publisher,
)
from .tenant import get_tenant_id

__all__ = [
    # Database
    "get_db",
    # Tenant
    "get_tenant_id",
    # Services
    "get_availability_service",
    "get_booking_service",
    "get_booking_type_service",
    "get_clock",
    "get_event_publisher",
]
