# backend/appointments/routes/v1/_helpers.py
"""Shared helpers for v1 route modules."""

from typing import NoReturn, Optional

from fastapi import HTTPException, status
import pytz

from ...core.config import settings
from ...core.exceptions import DomainException, ValidationException


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def resolve_timezone(timezone_name: Optional[str]) -> str:
    """Validate a caller-supplied tenant timezone, falling back to the default."""
    name = (timezone_name or "").strip() or settings.default_timezone
    try:
        pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise ValidationException(f"Unknown timezone: {name}", code="INVALID_TIMEZONE")
    return name
