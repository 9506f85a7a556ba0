import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from aquadesk.common.events import EventBus
from aquadesk.core.database import Base
from aquadesk.core.dependencies import get_db, get_event_bus
from aquadesk.main import app
import aquadesk.models  # noqa: F401
from aquadesk.services.customer_service import create_customer
from aquadesk.services.rider_service import create_rider


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(engine):
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def events():
    return EventBus()


@pytest.fixture()
def client(engine, events):
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_event_bus] = lambda: events
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class FixedClock:
    """Injectable clock; tests move it to land orders on specific business days."""

    def __init__(self, moment: datetime):
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment

    def set(self, *args) -> None:
        self.moment = datetime(*args, tzinfo=timezone.utc)


@pytest.fixture()
def clock():
    # 2026-03-10 12:00 PKT
    return FixedClock(datetime(2026, 3, 10, 7, 0, tzinfo=timezone.utc))


@pytest.fixture()
def customer(db):
    return create_customer(db, name="Ahmed Raza", phone="03001234567", house_no="12", area="Gulshan")


@pytest.fixture()
def other_customer(db):
    return create_customer(db, name="Sana Tariq", phone="03111234567")


@pytest.fixture()
def rider(db):
    return create_rider(db, name="Bilal", phone="03211234567")


@pytest.fixture()
def second_rider(db):
    return create_rider(db, name="Kashif", phone="03331234567")
