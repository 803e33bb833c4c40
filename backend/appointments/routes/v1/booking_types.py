# backend/appointments/routes/v1/booking_types.py
"""
Booking type administration routes - API v1

Mounted under /api/v1/booking-types; tenant from the X-Tenant-ID header.

Endpoints:
    GET / - List booking types
    POST / - Create a booking type (with weekly rules)
    DELETE /rules/{rule_id} - Remove an availability rule
    GET /{booking_type_id} - Booking type details
    PATCH /{booking_type_id} - Partial update
    DELETE /{booking_type_id} - Delete an unbooked booking type
    POST /{booking_type_id}/rules - Add an availability rule
    POST /{booking_type_id}/forms - Link an intake form
    DELETE /{booking_type_id}/forms/{form_id} - Unlink an intake form
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query, Response, status

from ...api.dependencies import get_booking_type_service, get_tenant_id
from ...core.exceptions import DomainException
from ...schemas.booking_type import (
    AvailabilityRuleCreate,
    AvailabilityRuleResponse,
    BookingTypeCreate,
    BookingTypeResponse,
    BookingTypeUpdate,
    FormLinkRequest,
)
from ...services.booking_type_service import BookingTypeService, RuleWindow
from ._helpers import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["booking-types-v1"])


def _to_window(rule: AvailabilityRuleCreate) -> RuleWindow:
    return RuleWindow(rule.day_of_week, rule.start_minute, rule.end_minute)


def _to_response(service: BookingTypeService, booking_type) -> BookingTypeResponse:
    return BookingTypeResponse.from_booking_type(
        booking_type, service.get_linked_form_ids(booking_type.id)
    )


@router.get("", response_model=List[BookingTypeResponse])
def list_booking_types(
    include_inactive: bool = Query(False),
    tenant_id: str = Depends(get_tenant_id),
    service: BookingTypeService = Depends(get_booking_type_service),
) -> List[BookingTypeResponse]:
    booking_types = service.list_booking_types(tenant_id, include_inactive=include_inactive)
    return [_to_response(service, booking_type) for booking_type in booking_types]


@router.post("", response_model=BookingTypeResponse, status_code=status.HTTP_201_CREATED)
def create_booking_type(
    payload: BookingTypeCreate,
    tenant_id: str = Depends(get_tenant_id),
    service: BookingTypeService = Depends(get_booking_type_service),
) -> BookingTypeResponse:
    try:
        rules = None
        if payload.availability_rules is not None:
            rules = [_to_window(rule) for rule in payload.availability_rules]
        booking_type = service.create_booking_type(
            tenant_id,
            payload.name,
            payload.duration_minutes,
            description=payload.description,
            location=payload.location,
            rules=rules,
        )
        return BookingTypeResponse.from_booking_type(booking_type, [])
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_availability_rule(
    rule_id: str,
    tenant_id: str = Depends(get_tenant_id),
    service: BookingTypeService = Depends(get_booking_type_service),
) -> Response:
    try:
        service.delete_availability_rule(tenant_id, rule_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{booking_type_id}", response_model=BookingTypeResponse)
def get_booking_type(
    booking_type_id: str,
    tenant_id: str = Depends(get_tenant_id),
    service: BookingTypeService = Depends(get_booking_type_service),
) -> BookingTypeResponse:
    try:
        return _to_response(service, service.get_booking_type(tenant_id, booking_type_id))
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{booking_type_id}", response_model=BookingTypeResponse)
def update_booking_type(
    booking_type_id: str,
    payload: BookingTypeUpdate,
    tenant_id: str = Depends(get_tenant_id),
    service: BookingTypeService = Depends(get_booking_type_service),
) -> BookingTypeResponse:
    """Only fields present in the body are changed."""
    try:
        booking_type = service.update_booking_type(
            tenant_id, booking_type_id, payload.model_dump(exclude_unset=True)
        )
        return _to_response(service, booking_type)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/{booking_type_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_booking_type(
    booking_type_id: str,
    tenant_id: str = Depends(get_tenant_id),
    service: BookingTypeService = Depends(get_booking_type_service),
) -> Response:
    """409 BOOKING_TYPE_IN_USE while any booking references the type."""
    try:
        service.delete_booking_type(tenant_id, booking_type_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/{booking_type_id}/rules",
    response_model=AvailabilityRuleResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_availability_rule(
    booking_type_id: str,
    payload: AvailabilityRuleCreate,
    tenant_id: str = Depends(get_tenant_id),
    service: BookingTypeService = Depends(get_booking_type_service),
) -> AvailabilityRuleResponse:
    try:
        rule = service.add_availability_rule(tenant_id, booking_type_id, _to_window(payload))
        return AvailabilityRuleResponse.from_rule(rule)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_type_id}/forms", status_code=status.HTTP_201_CREATED)
def link_form(
    booking_type_id: str,
    payload: FormLinkRequest,
    tenant_id: str = Depends(get_tenant_id),
    service: BookingTypeService = Depends(get_booking_type_service),
) -> dict:
    try:
        link = service.link_form(tenant_id, booking_type_id, payload.form_id)
        return {"form_id": link.form_id, "booking_type_id": link.booking_type_id}
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/{booking_type_id}/forms/{form_id}", status_code=status.HTTP_204_NO_CONTENT)
def unlink_form(
    booking_type_id: str,
    form_id: str,
    tenant_id: str = Depends(get_tenant_id),
    service: BookingTypeService = Depends(get_booking_type_service),
) -> Response:
    try:
        service.unlink_form(tenant_id, booking_type_id, form_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainException as e:
        handle_domain_exception(e)
