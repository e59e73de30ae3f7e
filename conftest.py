import os
from datetime import datetime, timedelta, timezone

import pytest

# Keep the app's own engine away from any configured database while testing
os.environ.setdefault("DATABASE_URL", "sqlite://")

from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

import models  # noqa: E402,F401
from db.session import get_session  # noqa: E402
from models.check_in_record import PositionReading  # noqa: E402
from models.geofence_site import GeofenceSite  # noqa: E402
from models.scheduled_shift import ScheduledShift  # noqa: E402
from utils.geofence import GeoPoint  # noqa: E402

SHIFT_START = datetime(2025, 6, 2, 8, 0, tzinfo=timezone.utc)
SHIFT_END = SHIFT_START + timedelta(hours=8)

# Roughly one meter of latitude, in degrees
METER_LAT = 1 / 111195.0


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_reading(lat, lng, accuracy=5.0, at=SHIFT_START) -> PositionReading:
    return PositionReading(
        point=GeoPoint(latitude=lat, longitude=lng),
        accuracy_meters=accuracy,
        captured_at=at,
    )


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'checkin_test.db'}",
        connect_args={"check_same_thread": False},
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def sites(session):
    rows = [
        GeofenceSite(id="YARD", name="Batch Plant Yard", center_lat=40.7128, center_lng=-74.0060, radius_meters=100.0),
        GeofenceSite(id="NORTH", name="North Quarry", center_lat=40.0, center_lng=-74.0, radius_meters=50.0),
        GeofenceSite(id="CLOSED", name="Closed Site", center_lat=40.5, center_lng=-74.2, radius_meters=75.0, active=False),
        GeofenceSite(id="NORADIUS", name="Unsized Site", center_lat=41.0, center_lng=-73.5, radius_meters=None),
    ]
    for row in rows:
        session.add(row)
    session.commit()
    return {row.id: row for row in rows}


@pytest.fixture
def shift(session):
    row = ScheduledShift(
        employee_id="emp-1",
        employee_name="Pat Rivera",
        site_id="YARD",
        scheduled_start=SHIFT_START,
        scheduled_end=SHIFT_END,
        created_by="scheduler",
    )
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


@pytest.fixture
def clock():
    return FakeClock(SHIFT_START)


@pytest.fixture
def client(engine):
    from main import app

    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
