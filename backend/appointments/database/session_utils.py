"""
Helpers for classifying driver errors across database dialects.
"""

from sqlalchemy.exc import DBAPIError

# SQLSTATEs that mean "another transaction won the race for these rows"
_SERIALIZATION_FAILURE = "40001"
_DEADLOCK_DETECTED = "40P01"


def is_concurrency_failure(exc: DBAPIError) -> bool:
    """
    True when a DB error means a concurrent transaction touched the same rows.

    Covers Postgres deadlocks and serialization failures plus SQLite's
    "database is locked" writer contention.
    """
    orig = getattr(exc, "orig", None)
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode in {_SERIALIZATION_FAILURE, _DEADLOCK_DETECTED}:
        return True
    message = str(exc).lower()
    return (
        "deadlock detected" in message
        or "could not serialize access" in message
        or "database is locked" in message
    )
