# backend/appointments/repositories/__init__.py
"""
Repository layer for the appointments backend.

Repositories own every query against the store; services never build
SQL themselves.
"""

from .base_repository import BaseRepository, IRepository
from .booking_repository import BookingRepository
from .booking_type_repository import BookingTypeRepository
from .contact_repository import ContactRepository
from .factory import RepositoryFactory
from .form_repository import FormRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "BookingTypeRepository",
    "ContactRepository",
    "FormRepository",
    "IRepository",
    "RepositoryFactory",
]
