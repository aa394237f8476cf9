from datetime import datetime, timezone
from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from booking_core.api.dependencies import get_session_factory
from booking_core.core.utils import uuid4
from booking_core.db.models import Base, Booking, Vehicle


@pytest.fixture
def db_engine():
    # StaticPool keeps one in-memory database shared with TestClient threads
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> sessionmaker:
    return sessionmaker(
        bind=db_engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def api_client(session_factory):
    from booking_core.main import app

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def make_vehicle(db_session: Session):
    def _make(vehicle_id: str = None, **fields) -> Vehicle:
        defaults = {
            "daily_rate": Decimal("20.00"),
            "status": "available",
            "ownership_type": "owned",
        }
        defaults.update(fields)
        vehicle = Vehicle(id=vehicle_id or uuid4(), **defaults)
        db_session.add(vehicle)
        db_session.commit()
        return vehicle

    return _make


@pytest.fixture
def make_booking(db_session: Session):
    def _make(
        vehicle_id: str,
        pickup_at: datetime,
        return_at: datetime,
        status: str = "confirmed",
        total_price: Decimal = Decimal("0"),
        booking_id: str = None,
    ) -> Booking:
        booking_id = booking_id or uuid4()
        booking = Booking(
            id=booking_id,
            vehicle_id=vehicle_id,
            booking_number=f"BK-{booking_id[:12]}",
            pickup_at=pickup_at,
            return_at=return_at,
            status=status,
            total_price=total_price,
            deposit=Decimal("0"),
            created_at=datetime.now(timezone.utc),
        )
        db_session.add(booking)
        db_session.commit()
        return booking

    return _make


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "api: mark test as exercising the HTTP API")
