# backend/appointments/repositories/factory.py
"""
Repository Factory for the appointments backend.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .booking_type_repository import BookingTypeRepository
    from .contact_repository import ContactRepository
    from .form_repository import FormRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_booking_type_repository(db: Session) -> "BookingTypeRepository":
        """Create repository for booking types and availability rules."""
        from .booking_type_repository import BookingTypeRepository

        return BookingTypeRepository(db)

    @staticmethod
    def create_contact_repository(db: Session) -> "ContactRepository":
        from .contact_repository import ContactRepository

        return ContactRepository(db)

    @staticmethod
    def create_form_repository(db: Session) -> "FormRepository":
        from .form_repository import FormRepository

        return FormRepository(db)
