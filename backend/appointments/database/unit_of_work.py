"""
Unit of Work: one database transaction plus the repositories bound to it.

Usage:
    with UnitOfWork(session) as uow:
        booking_type = uow.booking_types.lock_for_update(tenant_id, type_id)
        ...
        uow.after_commit(lambda: publisher.publish(...))
    # committed here; after-commit callbacks have run

Leaving the block normally commits; an exception rolls back and drops the
queued callbacks. Callbacks run only after a successful commit and a
failing callback is logged, never raised.
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Callable, List, Optional, Type

from sqlalchemy.orm import Session

from ..repositories.factory import RepositoryFactory

logger = logging.getLogger(__name__)


class UnitOfWork:
    def __init__(self, session: Session):
        self.session = session
        self.bookings = RepositoryFactory.create_booking_repository(session)
        self.booking_types = RepositoryFactory.create_booking_type_repository(session)
        self.contacts = RepositoryFactory.create_contact_repository(session)
        self.forms = RepositoryFactory.create_form_repository(session)
        self._after_commit: List[Callable[[], None]] = []

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> bool:
        if exc_type is not None:
            self.rollback()
            return False
        self.commit()
        return False

    def after_commit(self, callback: Callable[[], None]) -> None:
        """Queue work that must only happen once the transaction is durable."""
        self._after_commit.append(callback)

    def commit(self) -> None:
        try:
            self.session.commit()
        except Exception:
            self.rollback()
            raise
        logger.debug("Transaction committed successfully")

        callbacks, self._after_commit = self._after_commit, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("After-commit callback failed")

    def rollback(self) -> None:
        self._after_commit = []
        self.session.rollback()
