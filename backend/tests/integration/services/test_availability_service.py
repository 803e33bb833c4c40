from datetime import date, datetime, timedelta, timezone

import pytest

from appointments.core.exceptions import (
    BookingTypeInactiveException,
    NotFoundException,
    ValidationException,
)
from appointments.models import BookingStatus
from tests.helpers import MONDAY_0900, NOW, OTHER_TENANT_ID, TENANT_ID

MONDAY = date(2024, 6, 3)


def _utc(hour: int, minute: int = 0, day: int = 3) -> datetime:
    return datetime(2024, 6, day, hour, minute, tzinfo=timezone.utc)


def _starts(slots):
    return [slot.start for slot in slots]


class TestListAvailableSlots:
    def test_hourly_slots_tile_the_window(self, availability_service, make_booking_type) -> None:
        booking_type = make_booking_type(duration_minutes=60, rules=((1, 9 * 60, 12 * 60),))

        slots = availability_service.list_available_slots(TENANT_ID, booking_type.id, MONDAY)

        assert _starts(slots) == [_utc(9), _utc(10), _utc(11)]
        assert all(slot.end - slot.start == timedelta(hours=1) for slot in slots)

    def test_active_booking_removes_overlapping_slots(
        self, availability_service, make_booking_type, make_booking
    ) -> None:
        booking_type = make_booking_type(duration_minutes=60, rules=((1, 9 * 60, 12 * 60),))
        make_booking(booking_type, _utc(10), status=BookingStatus.PENDING.value)

        slots = availability_service.list_available_slots(TENANT_ID, booking_type.id, MONDAY)

        assert _starts(slots) == [_utc(9), _utc(11)]

    def test_cancelled_booking_does_not_block(
        self, availability_service, make_booking_type, make_booking
    ) -> None:
        booking_type = make_booking_type(duration_minutes=60, rules=((1, 9 * 60, 12 * 60),))
        make_booking(booking_type, _utc(10), status=BookingStatus.CANCELLED.value)

        slots = availability_service.list_available_slots(TENANT_ID, booking_type.id, MONDAY)

        assert len(slots) == 3

    def test_remainder_shorter_than_duration_is_dropped(
        self, availability_service, make_booking_type
    ) -> None:
        booking_type = make_booking_type(duration_minutes=45, rules=((1, 9 * 60, 11 * 60),))

        slots = availability_service.list_available_slots(TENANT_ID, booking_type.id, MONDAY)

        assert _starts(slots) == [_utc(9), _utc(9, 45)]
        assert slots[-1].end == _utc(10, 30)

    def test_each_rule_is_tiled_separately(
        self, availability_service, make_booking_type
    ) -> None:
        booking_type = make_booking_type(
            duration_minutes=60, rules=((1, 13 * 60, 15 * 60), (1, 9 * 60, 10 * 60 + 30))
        )

        slots = availability_service.list_available_slots(TENANT_ID, booking_type.id, MONDAY)

        assert _starts(slots) == [_utc(9), _utc(13), _utc(14)]

    def test_past_slots_are_excluded(self, availability_service, make_booking_type) -> None:
        # NOW is Saturday 12:00 UTC
        booking_type = make_booking_type(duration_minutes=60, rules=((6, 10 * 60, 14 * 60),))

        slots = availability_service.list_available_slots(TENANT_ID, booking_type.id, NOW.date())

        assert _starts(slots) == [_utc(13, day=1)]

    def test_day_without_rules_has_no_slots(self, availability_service, make_booking_type) -> None:
        booking_type = make_booking_type()

        assert availability_service.list_available_slots(
            TENANT_ID, booking_type.id, date(2024, 6, 4)
        ) == []

    def test_slots_follow_tenant_timezone(self, availability_service, make_booking_type) -> None:
        booking_type = make_booking_type(duration_minutes=60, rules=((1, 9 * 60, 11 * 60),))

        slots = availability_service.list_available_slots(
            TENANT_ID, booking_type.id, MONDAY, timezone="America/New_York"
        )

        # 09:00 EDT is 13:00 UTC
        assert _starts(slots) == [_utc(13), _utc(14)]
        assert slots[0].start.utcoffset() == timedelta(hours=-4)

    def test_unknown_or_foreign_type_is_not_found(
        self, availability_service, make_booking_type
    ) -> None:
        foreign = make_booking_type(tenant_id=OTHER_TENANT_ID)

        for booking_type_id in ("missing", foreign.id):
            with pytest.raises(NotFoundException):
                availability_service.list_available_slots(TENANT_ID, booking_type_id, MONDAY)

    def test_inactive_type_is_rejected(self, availability_service, make_booking_type) -> None:
        booking_type = make_booking_type(is_active=False)

        with pytest.raises(BookingTypeInactiveException):
            availability_service.list_available_slots(TENANT_ID, booking_type.id, MONDAY)


class TestListAvailableDates:
    def test_lists_matching_weekdays_within_horizon(
        self, availability_service, make_booking_type
    ) -> None:
        booking_type = make_booking_type()

        dates = availability_service.list_available_dates(
            TENANT_ID, booking_type.id, horizon_days=14
        )

        assert dates == [
            {"date": date(2024, 6, 3), "day_of_week": 1},
            {"date": date(2024, 6, 10), "day_of_week": 1},
        ]

    def test_horizon_starts_today(self, availability_service, make_booking_type) -> None:
        booking_type = make_booking_type(rules=((6, 9 * 60, 17 * 60),))

        dates = availability_service.list_available_dates(TENANT_ID, booking_type.id, horizon_days=7)

        assert [entry["date"] for entry in dates] == [NOW.date()]

    def test_fully_booked_day_is_still_listed(
        self, availability_service, make_booking_type, make_booking
    ) -> None:
        booking_type = make_booking_type(duration_minutes=60, rules=((1, 9 * 60, 10 * 60),))
        make_booking(booking_type, MONDAY_0900)

        dates = availability_service.list_available_dates(TENANT_ID, booking_type.id, horizon_days=3)

        assert [entry["date"] for entry in dates] == [MONDAY]

    def test_default_horizon(self, availability_service, make_booking_type) -> None:
        booking_type = make_booking_type()

        dates = availability_service.list_available_dates(TENANT_ID, booking_type.id)

        assert len(dates) == 4
        assert all(entry["day_of_week"] == 1 for entry in dates)

    def test_no_rules_gives_no_dates(self, availability_service, make_booking_type) -> None:
        booking_type = make_booking_type(rules=())

        assert availability_service.list_available_dates(TENANT_ID, booking_type.id) == []

    @pytest.mark.parametrize("horizon_days", [0, -1])
    def test_non_positive_horizon_is_rejected(
        self, availability_service, make_booking_type, horizon_days
    ) -> None:
        booking_type = make_booking_type()

        with pytest.raises(ValidationException):
            availability_service.list_available_dates(
                TENANT_ID, booking_type.id, horizon_days=horizon_days
            )


class TestIsSlotAvailable:
    def test_touching_intervals_are_free(
        self, availability_service, make_booking_type, make_booking
    ) -> None:
        booking_type = make_booking_type()
        make_booking(booking_type, MONDAY_0900)

        assert availability_service.is_slot_available(
            TENANT_ID, booking_type.id, _utc(9, 30), _utc(10)
        )
        assert not availability_service.is_slot_available(
            TENANT_ID, booking_type.id, _utc(9, 15), _utc(9, 45)
        )

    def test_excluded_booking_is_ignored(
        self, availability_service, make_booking_type, make_booking
    ) -> None:
        booking_type = make_booking_type()
        booking = make_booking(booking_type, MONDAY_0900)

        assert availability_service.is_slot_available(
            TENANT_ID, booking_type.id, MONDAY_0900, _utc(9, 30), exclude_booking_id=booking.id
        )

    def test_empty_interval_is_rejected(self, availability_service, make_booking_type) -> None:
        booking_type = make_booking_type()

        with pytest.raises(ValidationException):
            availability_service.is_slot_available(
                TENANT_ID, booking_type.id, MONDAY_0900, MONDAY_0900
            )
