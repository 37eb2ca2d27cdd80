"""
Shared fixtures.

Environment is pinned before tourbook is imported: in-memory SQLite, no rate
limiting, no cron secret.
"""

import os
import sys
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CRON_SECRET"] = ""
os.environ["RESEND_API_KEY"] = ""
os.environ["TOUR_CATALOG_URL"] = ""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tourbook.database import Base
from tourbook import models  # noqa: F401
from tourbook.models.booking import NewBooking
from tourbook.services.memory_repository import InMemoryBookingRepository
from tourbook.services.notifications import LoggingNotifier
from tourbook.services.tour_catalog import StaticTourCatalog, Tour


TODAY = date(2025, 6, 1)


class TickingClock:
    """Advances one second per call so created_at/updated_at are strictly ordered"""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        self.now += self.step
        return self.now


class RecordingNotifier(LoggingNotifier):
    """LoggingNotifier that also keeps every message it was asked to deliver"""

    def __init__(self):
        self.sent = []

    def _deliver(self, to, message):
        self.sent.append({"to": to, **message})
        super()._deliver(to, message)


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def db_session():
    """Fresh in-memory SQLite database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def make_booking():
    """Factory for NewBooking with sensible defaults"""
    def _make(**overrides):
        data = {
            "client_name": "Ana Silva",
            "client_email": "ana@example.com",
            "client_phone": "912345678",
            "client_phone_country_code": "+351",
            "client_country": "Portugal",
            "client_language": "pt",
            "client_selected_date": date(2025, 6, 10),
            "tour_id": "tour-1",
            "price": Decimal("120.00"),
        }
        data.update(overrides)
        return NewBooking(**data)
    return _make


@pytest.fixture
def memory_repository(clock):
    return InMemoryBookingRepository(clock=clock)


@pytest.fixture
def tours():
    return StaticTourCatalog([
        Tour(id="tour-1", title="Lisbon Old Town", price=Decimal("120.00"), duration=3),
        Tour(id="tour-2", title="Sintra Palaces", price=Decimal("250.50"), duration=8),
    ])


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def form_payload():
    """Valid public booking form body"""
    return {
        "name": "Ana Silva",
        "email": "ana@example.com",
        "phonePhoneCountryCode": "+351",
        "phoneNumber": "912 345 678",
        "country": "Portugal",
        "language": "pt",
        "date": "2025-06-10",
        "tourId": "tour-1",
        "message": "Two adults",
    }
