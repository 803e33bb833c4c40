# backend/appointments/models/contact.py
"""
Contact (customer) record.

Contacts belong to the CRM collaborator; the reservation flow only finds
them by dedup key, (tenant_id, email) or (tenant_id, phone), and creates
them when no match exists.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.ulid_helper import generate_ulid
from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Contact(Base):
    """Customer known to a tenant."""

    __tablename__ = "contacts"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    tenant_id = Column(String(64), nullable=False, index=True)
    first_name = Column(String(120), nullable=False)
    last_name = Column(String(120), nullable=False, default="")
    email = Column(String(320), nullable=True)
    phone = Column(String(32), nullable=True)
    source = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    bookings = relationship("Booking", back_populates="contact")

    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_contacts_tenant_email"),
        UniqueConstraint("tenant_id", "phone", name="uq_contacts_tenant_phone"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<Contact {self.id} {self.full_name!r}>"
