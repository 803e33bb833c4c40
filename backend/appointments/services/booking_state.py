# backend/appointments/services/booking_state.py
"""
Booking status machine.

    PENDING   -> CONFIRMED | CANCELLED
    CONFIRMED -> COMPLETED | NO_SHOW | CANCELLED

COMPLETED, NO_SHOW and CANCELLED are terminal.
"""

from typing import Dict, FrozenSet, Union

from ..core.exceptions import InvalidTransitionException
from ..models.booking import BookingStatus

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    BookingStatus.PENDING.value: frozenset(
        {BookingStatus.CONFIRMED.value, BookingStatus.CANCELLED.value}
    ),
    BookingStatus.CONFIRMED.value: frozenset(
        {
            BookingStatus.COMPLETED.value,
            BookingStatus.NO_SHOW.value,
            BookingStatus.CANCELLED.value,
        }
    ),
    BookingStatus.COMPLETED.value: frozenset(),
    BookingStatus.NO_SHOW.value: frozenset(),
    BookingStatus.CANCELLED.value: frozenset(),
}


def _value(status: Union[str, BookingStatus]) -> str:
    return status.value if isinstance(status, BookingStatus) else str(status)


def can_transition(current: Union[str, BookingStatus], requested: Union[str, BookingStatus]) -> bool:
    return _value(requested) in ALLOWED_TRANSITIONS.get(_value(current), frozenset())


def is_terminal(status: Union[str, BookingStatus]) -> bool:
    return not ALLOWED_TRANSITIONS.get(_value(status))


def ensure_transition(current: Union[str, BookingStatus], requested: Union[str, BookingStatus]) -> str:
    """
    Validate a requested status change.

    Returns:
        The requested status value

    Raises:
        InvalidTransitionException: If the move is not in the transition table
    """
    if not can_transition(current, requested):
        raise InvalidTransitionException(_value(current), _value(requested))
    return _value(requested)
