# backend/appointments/core/exceptions.py
"""
Domain-specific exceptions for the appointments backend.

These exceptions carry business-focused error messages and stable codes
so the API layer can translate them into HTTP responses.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails (malformed rule, bad duration)."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found or not in the tenant."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class BookingTypeInactiveException(BusinessRuleException):
    """Raised when reserving against a disabled booking type."""

    def __init__(self, booking_type_id: str):
        super().__init__(
            message="Booking type is not active",
            code="BOOKING_TYPE_INACTIVE",
            details={"booking_type_id": booking_type_id},
        )


class SlotUnavailableException(ConflictException):
    """Raised when the requested interval overlaps an active booking at write time."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot is no longer available",
            code="SLOT_UNAVAILABLE",
            details={"retryable": True, **(details or {})},
        )


class InvalidTransitionException(BusinessRuleException):
    """Raised when a booking status change is not allowed."""

    def __init__(self, current_status: str, requested_status: str, message: Optional[str] = None):
        super().__init__(
            message=message
            or f"Cannot move booking from {current_status} to {requested_status}",
            code="INVALID_TRANSITION",
            details={"current_status": current_status, "requested_status": requested_status},
        )


class ReferenceCodeExhaustedException(ServiceException):
    """Raised when no unique reference code could be allocated within the retry budget."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, attempts: int):
        super().__init__(
            message="Unable to allocate a booking reference code, please retry",
            code="REFERENCE_CODE_EXHAUSTED",
            details={"attempts": attempts, "retryable": True},
        )


class ReferenceCodeConflictException(ConflictException):
    """Raised when a concurrent reservation claimed the same reference code first."""

    def __init__(self) -> None:
        super().__init__(
            message="Booking reference code collided with a concurrent booking, please retry",
            code="REFERENCE_CODE_CONFLICT",
            details={"retryable": True},
        )


class BookingTypeInUseException(ConflictException):
    """Raised when deleting a booking type that still has bookings."""

    def __init__(self, booking_type_id: str, booking_count: int):
        super().__init__(
            message="Cannot delete a booking type that has bookings",
            code="BOOKING_TYPE_IN_USE",
            details={"booking_type_id": booking_type_id, "booking_count": booking_count},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
