# backend/appointments/services/contact_resolver.py
"""Find-or-create of the customer behind a reservation."""

from dataclasses import dataclass
import logging
from typing import Optional, Tuple

from ..models.contact import Contact
from ..repositories.contact_repository import ContactRepository

logger = logging.getLogger(__name__)

CONTACT_SOURCE_BOOKING = "booking"


@dataclass(frozen=True)
class CustomerDetails:
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


def normalize_email(email: Optional[str]) -> Optional[str]:
    cleaned = (email or "").strip().lower()
    return cleaned or None


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    cleaned = (phone or "").strip()
    return cleaned or None


def split_name(name: str) -> Tuple[str, str]:
    """Split a display name into (first, last); the first word is the first name."""
    parts = (name or "").split()
    if not parts:
        return "Unknown", ""
    return parts[0], " ".join(parts[1:])


class ContactResolver:
    """
    Resolves a customer to a tenant contact by (tenant, email) or (tenant, phone).

    A customer with neither email nor phone cannot be matched and always
    gets a new contact.
    """

    def __init__(self, repository: ContactRepository):
        self.repository = repository

    def resolve(self, tenant_id: str, customer: CustomerDetails) -> Tuple[Contact, bool]:
        """
        Returns:
            (contact, created) where created is True for a newly inserted contact
        """
        email = normalize_email(customer.email)
        phone = normalize_phone(customer.phone)
        first_name, last_name = split_name(customer.name)

        contact, created = self.repository.get_or_create(
            tenant_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=phone,
            source=CONTACT_SOURCE_BOOKING,
        )
        if created:
            logger.info("Created contact %s for tenant %s", contact.id, tenant_id)
        return contact, created
