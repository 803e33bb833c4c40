"""Booking reference code helpers."""

import logging
import secrets
from typing import Callable, Optional

from ..core.config import settings
from ..core.exceptions import ReferenceCodeExhaustedException

logger = logging.getLogger(__name__)

ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"


def gen_code(n: int = 8) -> str:
    """Generate a human-friendly booking reference of length *n*.

    The alphabet omits ambiguous characters such as 0/O and 1/I so codes
    can be read out over the phone.
    """

    if n <= 0:
        raise ValueError("Reference code length must be positive")

    return "".join(secrets.choice(ALPHABET) for _ in range(n))


class ReferenceCodeAllocator:
    """
    Draws candidate codes until one is unused.

    ``code_exists`` must query the same transaction the booking will be
    inserted in; the unique index on ``bookings.reference_code`` catches
    anything that slips between the check and the insert.
    """

    def __init__(
        self,
        length: Optional[int] = None,
        max_attempts: Optional[int] = None,
        generator: Callable[[int], str] = gen_code,
    ):
        self.length = length or settings.reference_code_length
        self.max_attempts = max_attempts or settings.reference_code_max_attempts
        self._generator = generator

    def allocate(self, code_exists: Callable[[str], bool]) -> str:
        for attempt in range(1, self.max_attempts + 1):
            candidate = self._generator(self.length)
            if not code_exists(candidate):
                return candidate
            logger.debug("Reference code collision on attempt %d", attempt)

        logger.error(
            "Reference code allocation exhausted after %d attempts", self.max_attempts
        )
        raise ReferenceCodeExhaustedException(self.max_attempts)
