"""
Shared test fixtures.

Every test gets its own in-memory SQLite database, a clock pinned to
Saturday 2024-06-01 12:00 UTC and a publisher that records events instead
of dispatching them.
"""

from datetime import datetime, timedelta
from itertools import count

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from appointments.api.dependencies import get_clock, get_db, get_event_publisher
from appointments.core.clock import FixedClock
from appointments.core.timezone_utils import ensure_utc
from appointments.database import Base, configure_sqlite_engine
from appointments.main import app
from appointments.models import (
    AvailabilityRule,
    Booking,
    BookingStatus,
    BookingType,
    Contact,
    Form,
    FormBookingType,
)
from appointments.services.availability_service import AvailabilityService
from appointments.services.booking_service import BookingService
from appointments.services.booking_type_service import BookingTypeService
from tests.helpers import MONDAY_RULES, NOW, TENANT_ID, RecordingPublisher


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite_engine(test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def booking_service(db, publisher, clock) -> BookingService:
    return BookingService(db, event_publisher=publisher, clock=clock)


@pytest.fixture
def availability_service(db, clock) -> AvailabilityService:
    return AvailabilityService(db, clock=clock)


@pytest.fixture
def booking_type_service(db, clock) -> BookingTypeService:
    return BookingTypeService(db, clock=clock)


@pytest.fixture
def make_booking_type(db):
    def _make(
        name: str = "Consultation",
        duration_minutes: int = 30,
        rules=MONDAY_RULES,
        tenant_id: str = TENANT_ID,
        is_active: bool = True,
        location=None,
    ) -> BookingType:
        booking_type = BookingType(
            tenant_id=tenant_id,
            name=name,
            duration_minutes=duration_minutes,
            is_active=is_active,
            location=location,
            availability_rules=[
                AvailabilityRule(day_of_week=day, start_minute=start, end_minute=end)
                for day, start, end in rules
            ],
        )
        db.add(booking_type)
        db.commit()
        return booking_type

    return _make


@pytest.fixture
def make_contact(db):
    sequence = count(1)

    def _make(tenant_id: str = TENANT_ID, email=None, phone=None) -> Contact:
        n = next(sequence)
        contact = Contact(
            tenant_id=tenant_id,
            first_name="Guest",
            last_name=str(n),
            email=email if email is not None else f"guest{n}@example.com",
            phone=phone,
        )
        db.add(contact)
        db.commit()
        return contact

    return _make


@pytest.fixture
def make_booking(db, make_contact):
    """Insert a booking directly, bypassing the reservation flow."""
    sequence = count(1)

    def _make(
        booking_type: BookingType,
        start: datetime,
        status: str = BookingStatus.CONFIRMED.value,
        contact=None,
    ) -> Booking:
        n = next(sequence)
        contact = contact or make_contact(tenant_id=booking_type.tenant_id)
        start_utc = ensure_utc(start)
        booking = Booking(
            tenant_id=booking_type.tenant_id,
            contact_id=contact.id,
            booking_type_id=booking_type.id,
            reference_code=f"TST{n:05d}",
            start_time=start_utc,
            end_time=start_utc + timedelta(minutes=booking_type.duration_minutes),
            status=status,
        )
        db.add(booking)
        db.commit()
        return booking

    return _make


@pytest.fixture
def make_form(db):
    def _make(tenant_id: str = TENANT_ID, name: str = "Intake", booking_type=None) -> Form:
        form = Form(tenant_id=tenant_id, name=name)
        db.add(form)
        db.flush()
        if booking_type is not None:
            db.add(FormBookingType(form_id=form.id, booking_type_id=booking_type.id))
        db.commit()
        return form

    return _make


@pytest.fixture
def client(db, clock, publisher):
    """Test client bound to the per-test database, clock and publisher."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_event_publisher] = lambda: publisher

    test_client = TestClient(app)
    yield test_client

    app.dependency_overrides.clear()
    test_client.close()
