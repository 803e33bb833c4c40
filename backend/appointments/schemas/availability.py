# backend/appointments/schemas/availability.py
"""Slot and date availability schemas."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import AwareDatetime, Field, model_validator

from ..core.timezone_utils import ensure_utc
from ._strict_base import StrictModel, StrictRequestModel


class SlotResponse(StrictModel):
    start: datetime
    end: datetime


class AvailableSlotsResponse(StrictModel):
    booking_type_id: str
    date: date
    timezone: str
    slots: List[SlotResponse]


class AvailableDate(StrictModel):
    date: date
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday")


class AvailableDatesResponse(StrictModel):
    booking_type_id: str
    timezone: str
    dates: List[AvailableDate]


class CheckAvailabilityRequest(StrictRequestModel):
    """Point check of an interval; end defaults to start + booking type duration."""

    booking_type_id: str
    start_time: AwareDatetime
    end_time: Optional[AwareDatetime] = None
    exclude_booking_id: Optional[str] = None

    @model_validator(mode="after")
    def _check_order(self) -> "CheckAvailabilityRequest":
        if self.end_time is not None and ensure_utc(self.end_time) <= ensure_utc(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class CheckAvailabilityResponse(StrictModel):
    available: bool
    booking_type_id: str
    start_time: datetime
    end_time: datetime
