from fastapi import HTTPException
import pytest

from appointments.core.exceptions import (
    BookingTypeInactiveException,
    BookingTypeInUseException,
    ConflictException,
    InvalidTransitionException,
    NotFoundException,
    ReferenceCodeConflictException,
    ReferenceCodeExhaustedException,
    SlotUnavailableException,
    ValidationException,
)


@pytest.mark.parametrize(
    "exc,status_code,code",
    [
        (ValidationException("bad rule"), 400, "ValidationException"),
        (NotFoundException("missing", code="BOOKING_NOT_FOUND"), 404, "BOOKING_NOT_FOUND"),
        (BookingTypeInactiveException("bt-1"), 422, "BOOKING_TYPE_INACTIVE"),
        (SlotUnavailableException(), 409, "SLOT_UNAVAILABLE"),
        (InvalidTransitionException("COMPLETED", "CANCELLED"), 422, "INVALID_TRANSITION"),
        (ReferenceCodeExhaustedException(5), 503, "REFERENCE_CODE_EXHAUSTED"),
        (ReferenceCodeConflictException(), 409, "REFERENCE_CODE_CONFLICT"),
        (BookingTypeInUseException("bt-1", 2), 409, "BOOKING_TYPE_IN_USE"),
    ],
)
def test_to_http_exception(exc, status_code: int, code: str) -> None:
    http_exc = exc.to_http_exception()

    assert isinstance(http_exc, HTTPException)
    assert http_exc.status_code == status_code
    assert http_exc.detail["code"] == code
    assert http_exc.detail["message"] == exc.message


def test_slot_unavailable_is_retryable_conflict() -> None:
    exc = SlotUnavailableException(details={"booking_type_id": "bt-1"})

    assert isinstance(exc, ConflictException)
    assert exc.details == {"retryable": True, "booking_type_id": "bt-1"}
    assert exc.message == "This time slot is no longer available"


def test_invalid_transition_default_message() -> None:
    exc = InvalidTransitionException("COMPLETED", "CANCELLED")

    assert str(exc) == "Cannot move booking from COMPLETED to CANCELLED"
