import pytest

from appointments.core.exceptions import (
    BookingTypeInUseException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from appointments.models import AvailabilityRule, BookingStatus, BookingType, FormBookingType
from appointments.services.booking_type_service import DEFAULT_RULES, RuleWindow
from tests.helpers import MONDAY_0900, OTHER_TENANT_ID, TENANT_ID


def _windows(booking_type: BookingType):
    return sorted(
        (rule.day_of_week, rule.start_minute, rule.end_minute)
        for rule in booking_type.availability_rules
    )


class TestCreateBookingType:
    def test_defaults_to_weekday_schedule(self, booking_type_service) -> None:
        booking_type = booking_type_service.create_booking_type(TENANT_ID, " Massage ", 60)

        assert booking_type.name == "Massage"
        assert booking_type.is_active is True
        assert len(booking_type.availability_rules) == 6
        assert _windows(booking_type) == sorted(
            (rule.day_of_week, rule.start_minute, rule.end_minute) for rule in DEFAULT_RULES
        )

    def test_explicit_empty_rules_means_no_availability(self, booking_type_service) -> None:
        booking_type = booking_type_service.create_booking_type(TENANT_ID, "By request", 30, rules=[])

        assert booking_type.availability_rules == []

    def test_explicit_rules_are_stored(self, booking_type_service) -> None:
        booking_type = booking_type_service.create_booking_type(
            TENANT_ID,
            "Evening",
            30,
            location="Studio 2",
            rules=[RuleWindow(2, 18 * 60, 21 * 60), RuleWindow(4, 18 * 60, 24 * 60)],
        )

        assert booking_type.location == "Studio 2"
        assert _windows(booking_type) == [(2, 1080, 1260), (4, 1080, 1440)]

    @pytest.mark.parametrize("duration", [0, -15, "30", True])
    def test_invalid_duration_is_rejected(self, booking_type_service, duration) -> None:
        with pytest.raises(ValidationException):
            booking_type_service.create_booking_type(TENANT_ID, "Bad", duration)

    @pytest.mark.parametrize(
        "rule",
        [RuleWindow(7, 540, 600), RuleWindow(1, 600, 600), RuleWindow(1, 600, 540), RuleWindow(1, 0, 1441)],
    )
    def test_invalid_rule_is_rejected(self, booking_type_service, db, rule: RuleWindow) -> None:
        with pytest.raises(ValidationException):
            booking_type_service.create_booking_type(TENANT_ID, "Bad", 30, rules=[rule])

        assert db.query(BookingType).count() == 0

    def test_blank_name_is_rejected(self, booking_type_service) -> None:
        with pytest.raises(ValidationException):
            booking_type_service.create_booking_type(TENANT_ID, "  ", 30)


class TestQueryBookingTypes:
    def test_listing_is_tenant_scoped_and_hides_inactive(
        self, booking_type_service, make_booking_type
    ) -> None:
        active = make_booking_type(name="Active")
        inactive = make_booking_type(name="Inactive", is_active=False)
        make_booking_type(name="Theirs", tenant_id=OTHER_TENANT_ID)

        assert [bt.id for bt in booking_type_service.list_booking_types(TENANT_ID)] == [active.id]
        listed = booking_type_service.list_booking_types(TENANT_ID, include_inactive=True)
        assert {bt.id for bt in listed} == {active.id, inactive.id}

    def test_foreign_type_is_not_found(self, booking_type_service, make_booking_type) -> None:
        foreign = make_booking_type(tenant_id=OTHER_TENANT_ID)

        with pytest.raises(NotFoundException) as exc_info:
            booking_type_service.get_booking_type(TENANT_ID, foreign.id)

        assert exc_info.value.code == "BOOKING_TYPE_NOT_FOUND"


class TestUpdateBookingType:
    def test_partial_update(self, booking_type_service, make_booking_type) -> None:
        booking_type = make_booking_type(location="Room 1")

        updated = booking_type_service.update_booking_type(
            TENANT_ID, booking_type.id, {"duration_minutes": 50, "is_active": False}
        )

        assert updated.duration_minutes == 50
        assert updated.is_active is False
        assert updated.location == "Room 1"

    def test_unknown_field_is_rejected(self, booking_type_service, make_booking_type) -> None:
        booking_type = make_booking_type()

        with pytest.raises(ValidationException):
            booking_type_service.update_booking_type(
                TENANT_ID, booking_type.id, {"tenant_id": OTHER_TENANT_ID}
            )

    def test_invalid_duration_is_rejected(self, booking_type_service, make_booking_type) -> None:
        booking_type = make_booking_type()

        with pytest.raises(ValidationException):
            booking_type_service.update_booking_type(
                TENANT_ID, booking_type.id, {"duration_minutes": 0}
            )


class TestDeleteBookingType:
    def test_unused_type_is_deleted_with_its_rules(
        self, booking_type_service, make_booking_type, db
    ) -> None:
        booking_type = make_booking_type()

        booking_type_service.delete_booking_type(TENANT_ID, booking_type.id)

        assert db.query(BookingType).count() == 0
        assert db.query(AvailabilityRule).count() == 0

    @pytest.mark.parametrize(
        "status", [BookingStatus.CONFIRMED.value, BookingStatus.CANCELLED.value]
    )
    def test_type_with_any_booking_is_in_use(
        self, booking_type_service, make_booking_type, make_booking, db, status: str
    ) -> None:
        booking_type = make_booking_type()
        make_booking(booking_type, MONDAY_0900, status=status)

        with pytest.raises(BookingTypeInUseException) as exc_info:
            booking_type_service.delete_booking_type(TENANT_ID, booking_type.id)

        assert exc_info.value.details["booking_count"] == 1
        assert db.query(BookingType).count() == 1

    def test_foreign_type_is_not_found(self, booking_type_service, make_booking_type) -> None:
        foreign = make_booking_type(tenant_id=OTHER_TENANT_ID)

        with pytest.raises(NotFoundException):
            booking_type_service.delete_booking_type(TENANT_ID, foreign.id)


class TestAvailabilityRules:
    def test_add_and_delete_rule(self, booking_type_service, make_booking_type, db) -> None:
        booking_type = make_booking_type()

        rule = booking_type_service.add_availability_rule(
            TENANT_ID, booking_type.id, RuleWindow(3, 600, 720)
        )
        assert rule.booking_type_id == booking_type.id
        assert db.query(AvailabilityRule).count() == 2

        booking_type_service.delete_availability_rule(TENANT_ID, rule.id)
        assert db.query(AvailabilityRule).count() == 1

    def test_invalid_rule_is_rejected(self, booking_type_service, make_booking_type) -> None:
        booking_type = make_booking_type()

        with pytest.raises(ValidationException):
            booking_type_service.add_availability_rule(
                TENANT_ID, booking_type.id, RuleWindow(3, 720, 600)
            )

    def test_foreign_rule_is_not_found(self, booking_type_service, make_booking_type) -> None:
        foreign = make_booking_type(tenant_id=OTHER_TENANT_ID)

        with pytest.raises(NotFoundException) as exc_info:
            booking_type_service.delete_availability_rule(
                TENANT_ID, foreign.availability_rules[0].id
            )

        assert exc_info.value.code == "RULE_NOT_FOUND"


class TestFormLinks:
    def test_link_and_unlink(self, booking_type_service, make_booking_type, make_form, db) -> None:
        booking_type = make_booking_type()
        form = make_form()

        booking_type_service.link_form(TENANT_ID, booking_type.id, form.id)
        assert booking_type_service.get_linked_form_ids(booking_type.id) == [form.id]

        booking_type_service.unlink_form(TENANT_ID, booking_type.id, form.id)
        assert db.query(FormBookingType).count() == 0

    def test_duplicate_link_conflicts(
        self, booking_type_service, make_booking_type, make_form
    ) -> None:
        booking_type = make_booking_type()
        form = make_form(booking_type=booking_type)

        with pytest.raises(ConflictException):
            booking_type_service.link_form(TENANT_ID, booking_type.id, form.id)

    def test_foreign_form_is_not_found(
        self, booking_type_service, make_booking_type, make_form
    ) -> None:
        booking_type = make_booking_type()
        form = make_form(tenant_id=OTHER_TENANT_ID)

        with pytest.raises(NotFoundException):
            booking_type_service.link_form(TENANT_ID, booking_type.id, form.id)

    def test_unlinking_missing_link_is_not_found(
        self, booking_type_service, make_booking_type, make_form
    ) -> None:
        booking_type = make_booking_type()
        form = make_form()

        with pytest.raises(NotFoundException):
            booking_type_service.unlink_form(TENANT_ID, booking_type.id, form.id)
