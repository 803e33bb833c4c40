# backend/appointments/routes/v1/bookings.py
"""
Tenant booking routes - API v1

Versioned booking endpoints under /api/v1/bookings. The calling tenant
comes from the X-Tenant-ID header. All business logic delegated to
BookingService.

Endpoints:
    GET / - List bookings with filters and pagination
    POST / - Book for an existing contact
    GET /upcoming - Active bookings in the next days
    GET /today - Bookings starting today (tenant-local)
    POST /check-availability - Check if an interval is free
    POST /send-reminders - Run the reminder sweep
    GET /{booking_id} - Full booking details
    POST /{booking_id}/reschedule - Move a booking
    PATCH /{booking_id}/status - Status transition
    POST /{booking_id}/cancel - Cancel a booking
"""

from datetime import date, timedelta
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies import (
    get_availability_service,
    get_booking_service,
    get_booking_type_service,
    get_tenant_id,
)
from ...core.exceptions import DomainException
from ...models.booking import BookingStatus
from ...schemas.availability import CheckAvailabilityRequest, CheckAvailabilityResponse
from ...schemas.booking import (
    BookingListResponse,
    BookingReschedule,
    BookingResponse,
    BookingStatusUpdate,
    ReminderSweepResponse,
    StaffBookingCreate,
)
from ...services.availability_service import AvailabilityService
from ...services.booking_service import BookingService
from ...services.booking_type_service import BookingTypeService
from ._helpers import handle_domain_exception, resolve_timezone

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])


# ============================================================================
# SECTION 1: Static routes (no path parameters)
# ============================================================================


@router.get("", response_model=BookingListResponse)
def list_bookings(
    status: Optional[BookingStatus] = Query(None),
    booking_type_id: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None, description="Inclusive, tenant-local"),
    end_date: Optional[date] = Query(None, description="Inclusive, tenant-local"),
    timezone: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    tenant_id: str = Depends(get_tenant_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    try:
        bookings = booking_service.list_bookings(
            tenant_id,
            status=status.value if status else None,
            booking_type_id=booking_type_id,
            start_date=start_date,
            end_date=end_date,
            timezone=resolve_timezone(timezone),
            limit=limit,
            offset=offset,
        )
        items = [BookingResponse.from_booking(booking) for booking in bookings]
        return BookingListResponse(bookings=items, total=len(items))
    except DomainException as e:
        handle_domain_exception(e)


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    booking_data: StaffBookingCreate,
    tenant_id: str = Depends(get_tenant_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Book a slot for a contact of the calling tenant."""
    try:
        booking = booking_service.create_booking(
            tenant_id,
            booking_data.booking_type_id,
            booking_data.start_time,
            notes=booking_data.notes,
            metadata=booking_data.metadata,
            contact_id=booking_data.contact_id,
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/upcoming", response_model=List[BookingResponse])
def get_upcoming_bookings(
    days: Optional[int] = Query(None, ge=1, le=90),
    tenant_id: str = Depends(get_tenant_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[BookingResponse]:
    """PENDING/CONFIRMED bookings starting within the next ``days`` (default 7)."""
    bookings = booking_service.get_upcoming_bookings(tenant_id, days=days)
    return [BookingResponse.from_booking(booking) for booking in bookings]


@router.get("/today", response_model=List[BookingResponse])
def get_today_bookings(
    timezone: Optional[str] = Query(None),
    tenant_id: str = Depends(get_tenant_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[BookingResponse]:
    try:
        bookings = booking_service.get_today_bookings(
            tenant_id, timezone=resolve_timezone(timezone)
        )
        return [BookingResponse.from_booking(booking) for booking in bookings]
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/check-availability", response_model=CheckAvailabilityResponse)
def check_availability(
    check_data: CheckAvailabilityRequest,
    tenant_id: str = Depends(get_tenant_id),
    availability_service: AvailabilityService = Depends(get_availability_service),
    booking_type_service: BookingTypeService = Depends(get_booking_type_service),
) -> CheckAvailabilityResponse:
    """
    Advisory check; the reservation re-checks under a lock.

    Without ``end_time`` the booking type's current duration is used.
    """
    try:
        end_time = check_data.end_time
        if end_time is None:
            booking_type = booking_type_service.get_booking_type(
                tenant_id, check_data.booking_type_id
            )
            end_time = check_data.start_time + timedelta(minutes=booking_type.duration_minutes)
        available = availability_service.is_slot_available(
            tenant_id,
            check_data.booking_type_id,
            check_data.start_time,
            end_time,
            exclude_booking_id=check_data.exclude_booking_id,
        )
        return CheckAvailabilityResponse(
            available=available,
            booking_type_id=check_data.booking_type_id,
            start_time=check_data.start_time,
            end_time=end_time,
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/send-reminders", response_model=ReminderSweepResponse)
def send_reminders(
    tenant_id: str = Depends(get_tenant_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> ReminderSweepResponse:
    """Run the reminder sweep now (normally triggered by a scheduler)."""
    logger.info("Reminder sweep requested by tenant %s", tenant_id)
    count = booking_service.send_booking_reminders()
    return ReminderSweepResponse(reminders_sent=count)


# ============================================================================
# SECTION 2: Routes with a booking_id
# ============================================================================


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    tenant_id: str = Depends(get_tenant_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        return BookingResponse.from_booking(booking_service.get_booking(tenant_id, booking_id))
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/reschedule", response_model=BookingResponse)
def reschedule_booking(
    booking_id: str,
    reschedule_data: BookingReschedule,
    timezone: Optional[str] = Query(None),
    tenant_id: str = Depends(get_tenant_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = booking_service.reschedule_booking(
            tenant_id,
            booking_id,
            reschedule_data.start_time,
            timezone=resolve_timezone(timezone),
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{booking_id}/status", response_model=BookingResponse)
def update_booking_status(
    booking_id: str,
    status_data: BookingStatusUpdate,
    tenant_id: str = Depends(get_tenant_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = booking_service.update_status(
            tenant_id, booking_id, status_data.status.value, notes=status_data.notes
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: str,
    tenant_id: str = Depends(get_tenant_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = booking_service.cancel_booking(tenant_id, booking_id)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)
