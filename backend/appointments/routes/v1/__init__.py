# backend/appointments/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import booking_types, bookings, public

__all__ = ["booking_types", "bookings", "public"]
