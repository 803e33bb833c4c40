"""ULID primary keys."""

import ulid


def generate_ulid() -> str:
    """Generate a new ULID string (26 chars, time-ordered)."""
    return str(ulid.ULID())
