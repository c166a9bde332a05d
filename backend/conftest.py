"""
Pytest configuration file for backend testing.
"""
import sys
from datetime import datetime
from pathlib import Path

import pytest
from sqlalchemy.orm import sessionmaker

# Add the backend directory to Python path so imports work correctly
backend_dir = Path(__file__).parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from core.database import Base, build_engine  # noqa: E402

# Import all models to register them with SQLAlchemy
from modules.tables.models import table_models  # noqa: E402,F401
from modules.reservations.models import reservation_models  # noqa: E402,F401

# Wednesday evening service used across the suite
FROZEN_NOW = datetime(2024, 3, 13, 19, 0)


@pytest.fixture
def now():
    return FROZEN_NOW


@pytest.fixture
def engine():
    """Fresh in-memory database per test"""
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def frozen_clock(monkeypatch):
    """Pin the restaurant clock of every service to FROZEN_NOW"""
    def clock():
        return FROZEN_NOW

    for module in (
        "modules.tables.services.floor_plan_service",
        "modules.reservations.services.waitlist_service",
        "modules.reservations.services.reservation_service",
    ):
        monkeypatch.setattr(f"{module}.restaurant_now", clock)
    return clock


@pytest.fixture
def client(db_session, session_factory, frozen_clock, monkeypatch):
    """API client on the test database with the clock pinned"""
    from fastapi.testclient import TestClient

    from app.main import app
    from core.database import get_db
    from modules.tables.services.layout_sync_service import layout_sync_service

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setattr(layout_sync_service, "session_factory", session_factory)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_table():
    """Build TableRead values for pure engine tests"""
    from modules.tables.schemas.table_schemas import TableRead

    def _make(table_id, max_capacity=4, **overrides):
        data = {
            "id": table_id,
            "restaurant_id": "rest-1",
            "table_number": table_id.upper(),
            "min_capacity": 1,
            "max_capacity": max_capacity,
        }
        data.update(overrides)
        return TableRead(**data)

    return _make


@pytest.fixture
def make_booking():
    """Build BookingRead values for pure engine tests"""
    from modules.reservations.models.reservation_models import DiningStatus
    from modules.reservations.schemas.reservation_schemas import BookingRead

    def _make(booking_id, booking_time, status=DiningStatus.CONFIRMED, table_ids=(), **overrides):
        data = {
            "id": booking_id,
            "restaurant_id": "rest-1",
            "guest_name": f"Guest {booking_id}",
            "booking_time": booking_time,
            "turn_time_minutes": 120,
            "party_size": 2,
            "status": status,
            "table_ids": list(table_ids),
        }
        data.update(overrides)
        return BookingRead(**data)

    return _make


@pytest.fixture
def make_entry():
    """Build WaitlistEntryRead values for pure engine tests"""
    from modules.reservations.models.reservation_models import WaitlistStatus
    from modules.reservations.schemas.reservation_schemas import WaitlistEntryRead

    def _make(entry_id="wl-1", time_range="19:00-21:00", status=WaitlistStatus.ACTIVE, **overrides):
        data = {
            "id": entry_id,
            "restaurant_id": "rest-1",
            "guest_name": "Walker",
            "desired_date": FROZEN_NOW.date(),
            "desired_time_range": time_range,
            "party_size": 2,
            "status": status,
        }
        data.update(overrides)
        return WaitlistEntryRead(**data)

    return _make


@pytest.fixture
def add_table(db_session):
    """Insert a table row"""
    from modules.tables.models.table_models import Table

    def _add(table_number, max_capacity=4, restaurant_id="rest-1", **overrides):
        table = Table(
            restaurant_id=restaurant_id,
            table_number=table_number,
            min_capacity=1,
            max_capacity=max_capacity,
            **overrides,
        )
        db_session.add(table)
        db_session.commit()
        db_session.refresh(table)
        return table

    return _add


@pytest.fixture
def add_booking(db_session):
    """Insert a booking row with its table assignments"""
    from modules.reservations.models.reservation_models import (
        Booking,
        BookingTable,
        DiningStatus,
    )

    def _add(booking_time, tables=(), status=DiningStatus.CONFIRMED, restaurant_id="rest-1", **overrides):
        data = {
            "restaurant_id": restaurant_id,
            "guest_name": "Guest",
            "booking_time": booking_time,
            "turn_time_minutes": 120,
            "party_size": 2,
            "status": status,
        }
        data.update(overrides)
        booking = Booking(**data)
        booking.table_assignments = [BookingTable(table_id=t.id) for t in tables]
        db_session.add(booking)
        db_session.commit()
        db_session.refresh(booking)
        return booking

    return _add


@pytest.fixture
def add_waitlist_entry(db_session):
    """Insert a waitlist row"""
    from modules.reservations.models.reservation_models import WaitlistEntry, WaitlistStatus

    def _add(time_range="19:00-21:00", status=WaitlistStatus.ACTIVE, restaurant_id="rest-1", **overrides):
        data = {
            "restaurant_id": restaurant_id,
            "guest_name": "Walker",
            "guest_phone": "555-0100",
            "desired_date": FROZEN_NOW.date(),
            "desired_time_range": time_range,
            "party_size": 2,
            "status": status,
        }
        data.update(overrides)
        entry = WaitlistEntry(**data)
        db_session.add(entry)
        db_session.commit()
        db_session.refresh(entry)
        return entry

    return _add
