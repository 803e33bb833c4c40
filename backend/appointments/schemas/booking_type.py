# backend/appointments/schemas/booking_type.py
"""
Booking type and availability rule schemas.

Rule times travel as "HH:MM" strings and are parsed once here into
minutes since local midnight.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from ..core.timezone_utils import format_hhmm, parse_hhmm
from ._strict_base import StrictModel, StrictRequestModel


class AvailabilityRuleCreate(StrictRequestModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    start_minute: int = Field(..., alias="start_time")
    end_minute: int = Field(..., alias="end_time")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("start_minute", "end_minute", mode="before")
    @classmethod
    def _parse_time(cls, value: Any) -> int:
        if isinstance(value, str):
            return parse_hhmm(value)
        return value

    @model_validator(mode="after")
    def _check_window(self) -> "AvailabilityRuleCreate":
        if self.end_minute <= self.start_minute:
            raise ValueError("End time must be after start time")
        return self


class AvailabilityRuleResponse(StrictModel):
    id: str
    day_of_week: int
    start_time: str
    end_time: str

    @classmethod
    def from_rule(cls, rule: Any) -> "AvailabilityRuleResponse":
        return cls(
            id=rule.id,
            day_of_week=rule.day_of_week,
            start_time=format_hhmm(rule.start_minute),
            end_time=format_hhmm(rule.end_minute),
        )


class BookingTypeCreate(StrictRequestModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    duration_minutes: int = Field(..., gt=0, le=24 * 60)
    availability_rules: Optional[List[AvailabilityRuleCreate]] = Field(
        None, description="Weekly windows; omitted means Mon-Fri 09-17 and Sat 09-13"
    )


class BookingTypeUpdate(StrictRequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    duration_minutes: Optional[int] = Field(None, gt=0, le=24 * 60)
    is_active: Optional[bool] = None


class FormLinkRequest(StrictRequestModel):
    form_id: str


class BookingTypeResponse(StrictModel):
    id: str
    tenant_id: str
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    duration_minutes: int
    is_active: bool
    availability_rules: List[AvailabilityRuleResponse] = Field(default_factory=list)
    form_ids: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_booking_type(
        cls, booking_type: Any, form_ids: Optional[List[str]] = None
    ) -> "BookingTypeResponse":
        return cls(
            id=booking_type.id,
            tenant_id=booking_type.tenant_id,
            name=booking_type.name,
            description=booking_type.description,
            location=booking_type.location,
            duration_minutes=booking_type.duration_minutes,
            is_active=booking_type.is_active,
            availability_rules=[
                AvailabilityRuleResponse.from_rule(rule) for rule in booking_type.availability_rules
            ],
            form_ids=list(form_ids or []),
            created_at=booking_type.created_at,
            updated_at=booking_type.updated_at,
        )


class PublicBookingTypeResponse(StrictModel):
    """What the public booking page may see."""

    id: str
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    duration_minutes: int
