# backend/appointments/repositories/contact_repository.py
"""Contact lookups by dedup key and race-safe creation."""

import logging
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.contact import Contact
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ContactRepository(BaseRepository[Contact]):
    def __init__(self, db: Session):
        super().__init__(db, Contact)

    def find_by_dedup_key(
        self, tenant_id: str, email: Optional[str] = None, phone: Optional[str] = None
    ) -> Optional[Contact]:
        """Find a tenant's contact by email first, then by phone."""
        try:
            if email:
                contact = (
                    self.db.query(Contact)
                    .filter(Contact.tenant_id == tenant_id, Contact.email == email)
                    .first()
                )
                if contact is not None:
                    return contact
            if phone:
                return (
                    self.db.query(Contact)
                    .filter(Contact.tenant_id == tenant_id, Contact.phone == phone)
                    .first()
                )
        except SQLAlchemyError as e:
            self.logger.error("Error looking up contact for tenant %s: %s", tenant_id, e)
            raise RepositoryException(f"Failed to look up contact: {e}") from e
        return None

    def get_or_create(
        self,
        tenant_id: str,
        *,
        first_name: str,
        last_name: str,
        email: Optional[str],
        phone: Optional[str],
        source: Optional[str] = None,
    ) -> Tuple[Contact, bool]:
        """
        Return the existing contact for the dedup key or insert a new one.

        The insert runs in a savepoint. When a concurrent transaction created
        the same contact first, the unique constraint fires, the savepoint is
        rolled back and the winner's row is returned.
        """
        existing = self.find_by_dedup_key(tenant_id, email, phone)
        if existing is not None:
            return existing, False

        try:
            with self.db.begin_nested():
                contact = Contact(
                    tenant_id=tenant_id,
                    first_name=first_name,
                    last_name=last_name,
                    email=email,
                    phone=phone,
                    source=source,
                )
                self.db.add(contact)
                self.db.flush()
            return contact, True
        except IntegrityError as exc:
            self.logger.info("Contact created concurrently for tenant %s, re-reading", tenant_id)
            existing = self.find_by_dedup_key(tenant_id, email, phone)
            if existing is None:
                raise RepositoryException(f"Failed to create contact: {exc}") from exc
            return existing, False
