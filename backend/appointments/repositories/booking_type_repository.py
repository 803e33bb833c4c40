# backend/appointments/repositories/booking_type_repository.py
"""Data access for booking types and their weekly availability rules."""

import logging
from typing import List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..core.exceptions import RepositoryException
from ..models.booking_type import AvailabilityRule, BookingType
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingTypeRepository(BaseRepository[BookingType]):
    def __init__(self, db: Session):
        super().__init__(db, BookingType)

    def get_for_tenant(self, tenant_id: str, booking_type_id: str) -> Optional[BookingType]:
        try:
            return (
                self.db.query(BookingType)
                .options(selectinload(BookingType.availability_rules))
                .filter(BookingType.id == booking_type_id, BookingType.tenant_id == tenant_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error("Error getting booking type %s: %s", booking_type_id, e)
            raise RepositoryException(f"Failed to get booking type: {e}") from e

    def lock_for_update(self, tenant_id: str, booking_type_id: str) -> Optional[BookingType]:
        """
        Load a booking type with a row lock held until the transaction ends.

        Concurrent reservations against the same booking type queue on this
        lock. SQLite has no row locks and serializes writers instead.
        """
        try:
            return (
                self.db.query(BookingType)
                .filter(BookingType.id == booking_type_id, BookingType.tenant_id == tenant_id)
                .with_for_update()
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error("Error locking booking type %s: %s", booking_type_id, e)
            raise RepositoryException(f"Failed to lock booking type: {e}") from e

    def list_for_tenant(self, tenant_id: str, active_only: bool = False) -> List[BookingType]:
        query = (
            self.db.query(BookingType)
            .options(selectinload(BookingType.availability_rules))
            .filter(BookingType.tenant_id == tenant_id)
        )
        if active_only:
            query = query.filter(BookingType.is_active.is_(True))
        return self._execute_query(query.order_by(BookingType.name))

    # Availability rules

    def get_rules_for_weekday(self, booking_type_id: str, day_of_week: int) -> List[AvailabilityRule]:
        query = (
            self.db.query(AvailabilityRule)
            .filter(
                AvailabilityRule.booking_type_id == booking_type_id,
                AvailabilityRule.day_of_week == day_of_week,
            )
            .order_by(AvailabilityRule.start_minute, AvailabilityRule.id)
        )
        return self._execute_query(query)

    def get_weekdays_with_rules(self, booking_type_id: str) -> Set[int]:
        try:
            rows = (
                self.db.query(AvailabilityRule.day_of_week)
                .filter(AvailabilityRule.booking_type_id == booking_type_id)
                .distinct()
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error("Error reading rule weekdays: %s", e)
            raise RepositoryException(f"Failed to read availability rules: {e}") from e
        return {row[0] for row in rows}

    def add_rule(
        self, booking_type: BookingType, day_of_week: int, start_minute: int, end_minute: int
    ) -> AvailabilityRule:
        rule = AvailabilityRule(
            day_of_week=day_of_week,
            start_minute=start_minute,
            end_minute=end_minute,
        )
        try:
            booking_type.availability_rules.append(rule)
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error("Error adding availability rule: %s", e)
            raise RepositoryException(f"Failed to add availability rule: {e}") from e
        return rule

    def get_rule_for_tenant(self, tenant_id: str, rule_id: str) -> Optional[AvailabilityRule]:
        try:
            return (
                self.db.query(AvailabilityRule)
                .join(BookingType, AvailabilityRule.booking_type_id == BookingType.id)
                .filter(AvailabilityRule.id == rule_id, BookingType.tenant_id == tenant_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error("Error getting availability rule %s: %s", rule_id, e)
            raise RepositoryException(f"Failed to get availability rule: {e}") from e

    def delete_rule(self, rule: AvailabilityRule) -> None:
        # delete-orphan removes the row and keeps the loaded collection in sync
        rule.booking_type.availability_rules.remove(rule)
        self.db.flush()
