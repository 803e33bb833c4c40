from datetime import date, datetime, timedelta, timezone

import pytest
import pytz

from appointments.models.booking import Booking, BookingStatus
from appointments.models.booking_type import AvailabilityRule
from appointments.services.conflict_checker import filter_available, overlaps
from appointments.services.slot_generator import generate_slots

MONDAY = date(2024, 6, 3)
BEFORE_MONDAY = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 6, 3, hour, minute, tzinfo=timezone.utc)


def _booking(start: datetime, minutes: int = 30, status: str = "CONFIRMED") -> Booking:
    return Booking(
        booking_type_id="bt-1",
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        status=status,
    )


def _monday_slots():
    rule = AvailabilityRule(day_of_week=1, start_minute=9 * 60, end_minute=17 * 60)
    return generate_slots(MONDAY, 30, [rule], pytz.UTC)


def _labels(slots) -> list:
    return [slot.start.strftime("%H:%M") for slot in slots]


class TestOverlaps:
    def test_partial_overlap(self) -> None:
        assert overlaps(_at(9), _at(10), _at(9, 30), _at(10, 30))

    def test_containment(self) -> None:
        assert overlaps(_at(9), _at(12), _at(10), _at(10, 30))

    @pytest.mark.parametrize(
        "a_start,a_end,b_start,b_end",
        [
            (_at(9), _at(10), _at(10), _at(11)),
            (_at(10), _at(11), _at(9), _at(10)),
        ],
    )
    def test_touching_endpoints_do_not_overlap(self, a_start, a_end, b_start, b_end) -> None:
        assert not overlaps(a_start, a_end, b_start, b_end)

    def test_naive_values_compare_as_utc(self) -> None:
        naive_start = datetime(2024, 6, 3, 9, 15)

        assert overlaps(naive_start, naive_start + timedelta(minutes=30), _at(9), _at(10))


class TestFilterAvailable:
    def test_confirmed_booking_removes_only_its_slot(self) -> None:
        existing = [_booking(_at(10), status=BookingStatus.CONFIRMED.value)]

        available = _labels(filter_available(_monday_slots(), existing, BEFORE_MONDAY))

        assert "10:00" not in available
        assert "09:30" in available
        assert "10:30" in available
        assert len(available) == 15

    def test_pending_booking_blocks_overlapping_slots(self) -> None:
        existing = [_booking(_at(10, 15), minutes=30, status=BookingStatus.PENDING.value)]

        available = _labels(filter_available(_monday_slots(), existing, BEFORE_MONDAY))

        assert "10:00" not in available
        assert "10:30" not in available
        assert "11:00" in available

    @pytest.mark.parametrize(
        "status",
        [BookingStatus.CANCELLED.value, BookingStatus.COMPLETED.value, BookingStatus.NO_SHOW.value],
    )
    def test_inactive_bookings_do_not_block(self, status: str) -> None:
        existing = [_booking(_at(10), status=status)]

        available = filter_available(_monday_slots(), existing, BEFORE_MONDAY)

        assert len(available) == 16

    def test_slots_not_strictly_after_now_are_dropped(self) -> None:
        now = _at(10)

        available = _labels(filter_available(_monday_slots(), [], now))

        assert available[0] == "10:30"

    def test_now_in_other_timezone_is_compared_as_instant(self) -> None:
        # 06:05 in New York is 10:05 UTC
        now = pytz.timezone("America/New_York").localize(datetime(2024, 6, 3, 6, 5))

        available = _labels(filter_available(_monday_slots(), [], now))

        assert available[0] == "10:30"
