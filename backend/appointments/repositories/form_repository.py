# backend/appointments/repositories/form_repository.py
"""Forms linked to booking types and the submissions created per booking."""

import logging
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from ..models.form import Form, FormBookingType, FormSubmission, FormSubmissionStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class FormRepository(BaseRepository[Form]):
    def __init__(self, db: Session):
        super().__init__(db, Form)

    def get_for_tenant(self, tenant_id: str, form_id: str) -> Optional[Form]:
        return self.find_one_by(id=form_id, tenant_id=tenant_id)

    def get_linked_form_ids(self, booking_type_id: str) -> List[str]:
        query = (
            self.db.query(FormBookingType.form_id)
            .filter(FormBookingType.booking_type_id == booking_type_id)
            .order_by(FormBookingType.form_id)
        )
        return [row[0] for row in self._execute_query(query)]

    def get_link(self, form_id: str, booking_type_id: str) -> Optional[FormBookingType]:
        return (
            self.db.query(FormBookingType)
            .filter(
                FormBookingType.form_id == form_id,
                FormBookingType.booking_type_id == booking_type_id,
            )
            .first()
        )

    def create_link(self, form_id: str, booking_type_id: str) -> FormBookingType:
        link = FormBookingType(form_id=form_id, booking_type_id=booking_type_id)
        self.db.add(link)
        self.db.flush()
        return link

    def delete_link(self, link: FormBookingType) -> None:
        self.db.delete(link)
        self.db.flush()

    def create_pending_submissions(
        self, booking_id: str, form_ids: Sequence[str]
    ) -> List[FormSubmission]:
        """One PENDING submission per form, attached to the booking."""
        submissions = [
            FormSubmission(
                form_id=form_id,
                booking_id=booking_id,
                status=FormSubmissionStatus.PENDING.value,
            )
            for form_id in form_ids
        ]
        if submissions:
            self.db.add_all(submissions)
            self.db.flush()
        return submissions
