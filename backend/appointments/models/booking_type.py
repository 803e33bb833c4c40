# backend/appointments/models/booking_type.py
"""
Booking type and weekly availability rule models.

A booking type is a bookable service with a fixed duration. Its
availability rules are recurring weekly open-hour windows expressed in
minutes since local midnight (tenant timezone). Rules on the same weekday
are independent windows; they are never merged.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ..core.timezone_utils import format_hhmm
from ..core.ulid_helper import generate_ulid
from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingType(Base):
    """Bookable service definition owned by a tenant."""

    __tablename__ = "booking_types"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    duration_minutes = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

    availability_rules = relationship(
        "AvailabilityRule",
        back_populates="booking_type",
        cascade="all, delete-orphan",
        order_by=lambda: [AvailabilityRule.day_of_week, AvailabilityRule.start_minute],
    )
    form_links = relationship(
        "FormBookingType",
        back_populates="booking_type",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="check_booking_type_duration_positive"),
    )

    def __repr__(self) -> str:
        return f"<BookingType {self.id} {self.name!r} {self.duration_minutes}m>"


class AvailabilityRule(Base):
    """
    Recurring weekly window for one booking type on one weekday.

    day_of_week: 0 = Sunday ... 6 = Saturday.
    start_minute/end_minute: minutes since local midnight, start < end.
    """

    __tablename__ = "availability_rules"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    booking_type_id = Column(
        String(26), ForeignKey("booking_types.id", ondelete="CASCADE"), nullable=False
    )
    day_of_week = Column(Integer, nullable=False)
    start_minute = Column(Integer, nullable=False)
    end_minute = Column(Integer, nullable=False)

    booking_type = relationship("BookingType", back_populates="availability_rules")

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="check_rule_day_of_week"),
        CheckConstraint(
            "start_minute >= 0 AND end_minute <= 1440 AND start_minute < end_minute",
            name="check_rule_window",
        ),
        Index("ix_availability_rules_type_day", "booking_type_id", "day_of_week"),
    )

    @property
    def start_hhmm(self) -> str:
        return format_hhmm(self.start_minute)

    @property
    def end_hhmm(self) -> str:
        return format_hhmm(self.end_minute)

    def __repr__(self) -> str:
        return f"<AvailabilityRule day={self.day_of_week} {self.start_hhmm}-{self.end_hhmm}>"
