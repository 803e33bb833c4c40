"""Two reservations racing for the same interval on a file-backed SQLite database."""

from datetime import timedelta
import threading
from typing import List

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from appointments.core.clock import FixedClock
from appointments.core.exceptions import SlotUnavailableException
from appointments.database import Base, configure_sqlite_engine
from appointments.models import AvailabilityRule, Booking, BookingType
from appointments.services.booking_service import BookingService
from appointments.services.contact_resolver import CustomerDetails
from tests.helpers import MONDAY_0900, MONDAY_RULES, NOW, TENANT_ID, RecordingPublisher

CUSTOMERS = (
    CustomerDetails(name="Ada Lovelace", email="ada@example.com"),
    CustomerDetails(name="Grace Hopper", email="grace@example.com"),
)


@pytest.fixture
def file_engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'reservations.db'}",
        connect_args={"check_same_thread": False},
    )
    configure_sqlite_engine(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(file_engine):
    return sessionmaker(bind=file_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def booking_type_id(session_factory) -> str:
    session = session_factory()
    booking_type = BookingType(
        tenant_id=TENANT_ID,
        name="Consultation",
        duration_minutes=30,
        availability_rules=[
            AvailabilityRule(day_of_week=day, start_minute=start, end_minute=end)
            for day, start, end in MONDAY_RULES
        ],
    )
    session.add(booking_type)
    session.commit()
    booking_type_id = booking_type.id
    session.close()
    return booking_type_id


@pytest.mark.parametrize("offset_minutes", [0, 15], ids=["same-start", "overlapping-start"])
def test_exactly_one_of_two_concurrent_reservations_wins(
    session_factory, booking_type_id, offset_minutes
) -> None:
    starts = (MONDAY_0900, MONDAY_0900 + timedelta(minutes=offset_minutes))
    barrier = threading.Barrier(len(starts))
    outcomes: List[object] = []
    outcomes_lock = threading.Lock()

    def reserve(start, customer) -> None:
        session = session_factory()
        service = BookingService(
            session, event_publisher=RecordingPublisher(), clock=FixedClock(NOW)
        )
        try:
            barrier.wait(timeout=5)
            outcome: object = service.create_booking(TENANT_ID, booking_type_id, start, customer)
        except SlotUnavailableException as exc:
            outcome = exc
        finally:
            session.close()
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [
        threading.Thread(target=reserve, args=(start, customer))
        for start, customer in zip(starts, CUSTOMERS)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert len(outcomes) == 2
    assert sum(isinstance(outcome, Booking) for outcome in outcomes) == 1
    assert sum(isinstance(outcome, SlotUnavailableException) for outcome in outcomes) == 1

    check = session_factory()
    try:
        assert check.query(Booking).filter_by(booking_type_id=booking_type_id).count() == 1
    finally:
        check.close()
