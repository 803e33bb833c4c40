from unittest.mock import Mock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from appointments.core.exceptions import (
    ReferenceCodeConflictException,
    SlotUnavailableException,
)
from appointments.models.booking import ACTIVE_BOOKING_CONSTRAINT_NAME, OVERLAP_CONSTRAINT_NAME
from appointments.services.booking_service import BookingService

DETAILS = {"booking_type_id": "bt-1", "start_time": "2024-06-03T09:00:00+00:00"}


def _integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO bookings", {}, Exception(message))


@pytest.fixture
def service() -> BookingService:
    return BookingService(Mock(), event_publisher=Mock())


@pytest.mark.parametrize(
    "message,scope",
    [
        ("UNIQUE constraint failed: bookings.booking_type_id, bookings.start_time", "start_time"),
        (
            f'duplicate key value violates unique constraint "{ACTIVE_BOOKING_CONSTRAINT_NAME}"',
            "start_time",
        ),
        (
            f'conflicting key value violates exclusion constraint "{OVERLAP_CONSTRAINT_NAME}"',
            "overlap",
        ),
    ],
)
def test_interval_constraints_become_slot_unavailable(service, message: str, scope: str) -> None:
    with pytest.raises(SlotUnavailableException) as exc_info:
        service._raise_slot_conflict(_integrity_error(message), DETAILS)

    assert exc_info.value.details["conflict_scope"] == scope
    assert exc_info.value.details["retryable"] is True


def test_reference_code_collision_is_its_own_retryable_conflict(service) -> None:
    error = _integrity_error("UNIQUE constraint failed: bookings.reference_code")

    with pytest.raises(ReferenceCodeConflictException) as exc_info:
        service._raise_slot_conflict(error, DETAILS)

    assert exc_info.value.code == "REFERENCE_CODE_CONFLICT"
    assert exc_info.value.details["retryable"] is True
    assert exc_info.value.__cause__ is error


def test_unrecognised_integrity_error_propagates(service) -> None:
    error = _integrity_error("NOT NULL constraint failed: bookings.tenant_id")

    with pytest.raises(IntegrityError) as exc_info:
        service._raise_slot_conflict(error, DETAILS)

    assert exc_info.value is error


def test_writer_contention_becomes_slot_unavailable(service) -> None:
    error = OperationalError("INSERT INTO bookings", {}, Exception("database is locked"))

    with pytest.raises(SlotUnavailableException):
        service._raise_slot_conflict(error, DETAILS)


def test_other_driver_errors_propagate(service) -> None:
    error = OperationalError("INSERT INTO bookings", {}, Exception("disk I/O error"))

    with pytest.raises(OperationalError):
        service._raise_slot_conflict(error, DETAILS)


def test_publisher_is_required() -> None:
    with pytest.raises(TypeError):
        BookingService(Mock())
