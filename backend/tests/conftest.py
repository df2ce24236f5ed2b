# backend/tests/conftest.py
"""
Shared pytest fixtures for the booking core.

Every test gets its own in-memory SQLite database with all tables created,
a settings object that ignores the developer's .env, and a frozen clock so
bookings in January 2024 are still "in the future".
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from itertools import count
from typing import Any, Callable, Iterator
import uuid

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from barberbook.core.config import Settings
from barberbook.core.enums import BookingStatus
from barberbook.database import Base

# Import models so Base.metadata is populated for create_all.
import barberbook.models  # noqa: F401
from barberbook.models.booking import Booking
from barberbook.schemas.booking import BookingCreate
from barberbook.services.booking_service import BookingService
from barberbook.services.cache_service import CacheService

FIXED_NOW = datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite+pysqlite:///:memory:",
        redis_url=None,
        log_level="DEBUG",
    )


@pytest.fixture
def unit_engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(unit_engine: Engine) -> Iterator[Session]:
    """Session bound to a fresh database; services commit for real."""
    SessionLocal = sessionmaker(bind=unit_engine, autoflush=False, future=True)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def cache(test_settings: Settings) -> CacheService:
    return CacheService(app_settings=test_settings)


@pytest.fixture
def booking_service(
    db: Session,
    test_settings: Settings,
    clock: Callable[[], datetime],
    cache: CacheService,
) -> BookingService:
    return BookingService(db, cache_service=cache, app_settings=test_settings, clock=clock)


@pytest.fixture
def make_request() -> Callable[..., BookingCreate]:
    """Build a BookingCreate for provider 5 on 2024-01-15 10:00-11:00 unless overridden."""

    def _make(**overrides: Any) -> BookingCreate:
        payload: dict[str, Any] = {
            "provider_id": 5,
            "customer_id": 42,
            "service_name": "Skin fade",
            "service_category": "haircut",
            "scheduled_start_time": utc(2024, 1, 15, 10),
            "scheduled_end_time": utc(2024, 1, 15, 11),
            "service_price": Decimal("50"),
            "discount_amount": Decimal("0"),
            "tax_rate": Decimal("0.08"),
        }
        payload.update(overrides)
        return BookingCreate(**payload)

    return _make


@pytest.fixture
def booking_factory(db: Session) -> Callable[..., Booking]:
    """Insert a booking row directly, bypassing the service rules."""
    sequence = count(1)

    def _create(
        provider_id: int = 5,
        start: datetime = utc(2024, 1, 15, 10),
        duration_minutes: int = 60,
        status: str = BookingStatus.CONFIRMED.value,
        **overrides: Any,
    ) -> Booking:
        number = next(sequence)
        values: dict[str, Any] = {
            "uuid": str(uuid.uuid4()),
            "booking_number": f"BK-20240101-{number:04d}",
            "provider_id": provider_id,
            "customer_id": 100 + number,
            "service_name": "Beard trim",
            "estimated_duration_minutes": duration_minutes,
            "status": status,
            "service_price": Decimal("30.00"),
            "discount_amount": Decimal("0.00"),
            "tax_rate": Decimal("0"),
            "tax_amount": Decimal("0.00"),
            "total_price": Decimal("30.00"),
            "scheduled_start_time": start,
            "scheduled_end_time": start + timedelta(minutes=duration_minutes),
        }
        values.update(overrides)
        booking = Booking(**values)
        db.add(booking)
        db.commit()
        return booking

    return _create
