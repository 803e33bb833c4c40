from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
import logging
from unittest.mock import Mock

from appointments.events import (
    BOOKING_CANCELLED,
    BOOKING_CREATED,
    BOOKING_REMINDER,
    BOOKING_UPDATED,
    CONTACT_CREATED,
    BookingCancelled,
    InProcessEventPublisher,
    publish_event,
    register_default_handlers,
)
from appointments.events.publisher import serialize_payload

CANCELLED_AT = datetime(2024, 6, 3, 9, 0, tzinfo=timezone.utc)


def _cancelled_event() -> BookingCancelled:
    return BookingCancelled(
        tenant_id="tenant-a",
        booking_id="b-1",
        reference_code="ABCDEFGH",
        previous_status="CONFIRMED",
        cancelled_at=CANCELLED_AT,
    )


class TestInProcessEventPublisher:
    def test_delivers_inline_to_subscribers_of_that_event(self) -> None:
        publisher = InProcessEventPublisher()
        created, cancelled = Mock(), Mock()
        publisher.subscribe(BOOKING_CREATED, created)
        publisher.subscribe(BOOKING_CANCELLED, cancelled)

        publisher.publish(BOOKING_CREATED, {"booking_id": "b-1"})

        created.assert_called_once_with(BOOKING_CREATED, {"booking_id": "b-1"})
        cancelled.assert_not_called()

    def test_failing_listener_is_logged_and_others_still_run(self, caplog) -> None:
        publisher = InProcessEventPublisher()
        healthy = Mock()
        publisher.subscribe(BOOKING_CREATED, Mock(side_effect=RuntimeError("boom")))
        publisher.subscribe(BOOKING_CREATED, healthy)

        with caplog.at_level(logging.ERROR):
            publisher.publish(BOOKING_CREATED, {})

        healthy.assert_called_once()
        assert "failed for booking.created" in caplog.text

    def test_unsubscribe(self) -> None:
        publisher = InProcessEventPublisher()
        listener = Mock()
        publisher.subscribe(BOOKING_UPDATED, listener)
        publisher.unsubscribe(BOOKING_UPDATED, listener)

        publisher.publish(BOOKING_UPDATED, {})

        listener.assert_not_called()
        assert publisher.listeners(BOOKING_UPDATED) == []

    def test_executor_delivery_completes_on_shutdown(self) -> None:
        publisher = InProcessEventPublisher(executor=ThreadPoolExecutor(max_workers=2))
        listener = Mock()
        publisher.subscribe(BOOKING_REMINDER, listener)

        publisher.publish(BOOKING_REMINDER, {"booking_id": "b-1"})
        publisher.shutdown(wait=True)

        listener.assert_called_once_with(BOOKING_REMINDER, {"booking_id": "b-1"})


class TestPublishEvent:
    def test_serializes_typed_event(self) -> None:
        publisher = Mock()

        publish_event(publisher, _cancelled_event())

        name, payload = publisher.publish.call_args.args
        assert name == BOOKING_CANCELLED
        assert payload["cancelled_at"] == "2024-06-03T09:00:00+00:00"
        assert payload["reference_code"] == "ABCDEFGH"

    def test_publisher_failure_is_logged_not_raised(self, caplog) -> None:
        publisher = Mock()
        publisher.publish.side_effect = ConnectionError("transport down")

        with caplog.at_level(logging.ERROR):
            publish_event(publisher, _cancelled_event())

        assert "Failed to publish booking.cancelled" in caplog.text


def test_serialize_payload_leaves_plain_values() -> None:
    assert serialize_payload({"count": 2, "when": CANCELLED_AT}) == {
        "count": 2,
        "when": "2024-06-03T09:00:00+00:00",
    }


def test_default_handlers_cover_every_lifecycle_event() -> None:
    publisher = InProcessEventPublisher()

    register_default_handlers(publisher)

    for event_name in (
        BOOKING_CREATED,
        BOOKING_UPDATED,
        BOOKING_CANCELLED,
        BOOKING_REMINDER,
        CONTACT_CREATED,
    ):
        assert publisher.listeners(event_name), event_name
