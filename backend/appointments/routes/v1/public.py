# backend/appointments/routes/v1/public.py
"""
Public booking routes - API v1

Unauthenticated endpoints behind a tenant's booking page, mounted under
/api/v1/public/{tenant_id}.

Endpoints:
    GET /booking-types - Active booking types
    GET /availability/slots - Open slots for a booking type on a date
    GET /availability/dates - Dates with availability rules in the horizon
    POST /bookings - Reserve a slot
    GET /bookings/{reference_code} - Look up a booking by reference code
"""

from datetime import date
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies import (
    get_availability_service,
    get_booking_service,
    get_booking_type_service,
)
from ...core.exceptions import DomainException
from ...schemas.availability import (
    AvailableDate,
    AvailableDatesResponse,
    AvailableSlotsResponse,
    SlotResponse,
)
from ...schemas.booking import BookingCreate, PublicBookingResponse
from ...schemas.booking_type import PublicBookingTypeResponse
from ...services.availability_service import AvailabilityService
from ...services.booking_service import BookingService
from ...services.booking_type_service import BookingTypeService
from ...services.contact_resolver import CustomerDetails
from ._helpers import handle_domain_exception, resolve_timezone

logger = logging.getLogger(__name__)

# V1 router - prefix added when mounting in main.py
router = APIRouter(tags=["public-v1"])


@router.get("/booking-types", response_model=List[PublicBookingTypeResponse])
def list_public_booking_types(
    tenant_id: str,
    booking_type_service: BookingTypeService = Depends(get_booking_type_service),
) -> List[PublicBookingTypeResponse]:
    booking_types = booking_type_service.list_booking_types(tenant_id)
    return [PublicBookingTypeResponse.model_validate(item) for item in booking_types]


@router.get("/availability/slots", response_model=AvailableSlotsResponse)
def get_available_slots(
    tenant_id: str,
    booking_type_id: str = Query(..., description="Booking type to list slots for"),
    target_date: date = Query(
        ..., alias="date", description="Date in the tenant timezone (YYYY-MM-DD)"
    ),
    timezone: Optional[str] = Query(None, description="Tenant IANA timezone"),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailableSlotsResponse:
    """Open slots for one booking type on one date, in tenant-local time."""
    try:
        tz_name = resolve_timezone(timezone)
        slots = availability_service.list_available_slots(
            tenant_id, booking_type_id, target_date, timezone=tz_name
        )
        return AvailableSlotsResponse(
            booking_type_id=booking_type_id,
            date=target_date,
            timezone=tz_name,
            slots=[SlotResponse(start=slot.start, end=slot.end) for slot in slots],
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/availability/dates", response_model=AvailableDatesResponse)
def get_available_dates(
    tenant_id: str,
    booking_type_id: str = Query(...),
    days: Optional[int] = Query(None, ge=1, le=366, description="Horizon in days"),
    timezone: Optional[str] = Query(None),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailableDatesResponse:
    try:
        tz_name = resolve_timezone(timezone)
        dates = availability_service.list_available_dates(
            tenant_id, booking_type_id, horizon_days=days, timezone=tz_name
        )
        return AvailableDatesResponse(
            booking_type_id=booking_type_id,
            timezone=tz_name,
            dates=[AvailableDate(**item) for item in dates],
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/bookings",
    response_model=PublicBookingResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_public_booking(
    tenant_id: str,
    booking_data: BookingCreate,
    booking_service: BookingService = Depends(get_booking_service),
) -> PublicBookingResponse:
    """
    Reserve a slot.

    409 SLOT_UNAVAILABLE means another customer got there first; pick
    another slot and retry.
    """
    try:
        booking = booking_service.create_booking(
            tenant_id,
            booking_data.booking_type_id,
            booking_data.start_time,
            CustomerDetails(
                name=booking_data.name,
                email=str(booking_data.email) if booking_data.email else None,
                phone=booking_data.phone,
            ),
            notes=booking_data.notes,
            metadata=booking_data.metadata,
        )
        return PublicBookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/bookings/{reference_code}", response_model=PublicBookingResponse)
def get_booking_by_reference(
    tenant_id: str,
    reference_code: str,
    booking_service: BookingService = Depends(get_booking_service),
) -> PublicBookingResponse:
    try:
        booking = booking_service.get_booking_by_reference(reference_code, tenant_id=tenant_id)
        return PublicBookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)
