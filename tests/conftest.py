import os
import tempfile
from datetime import datetime, timedelta

# must be set before soil_monitor.core.config is imported
_tmpdir = tempfile.mkdtemp(prefix="soil-monitor-tests-")
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_tmpdir, "test.db")
os.environ["INGESTION_ENABLED"] = "false"
os.environ["CREATE_DEMO_USER"] = "false"
os.environ["LOG_LEVEL"] = "DEBUG"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from soil_monitor.db.alert_store import AlertStore
from soil_monitor.db.init_db import init_db
from soil_monitor.db.reading_store import ReadingStore
from soil_monitor.schemas.reading import ReadingIn


class StepClock:
    """Strictly increasing fake clock."""

    def __init__(self, start=datetime(2025, 6, 1, 8, 0, 0), step=timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self):
        self.now += self.step
        return self.now


@pytest.fixture()
def clock():
    return StepClock()


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture()
def reading_store(session_factory):
    return ReadingStore(session_factory)


@pytest.fixture()
def alert_store(session_factory, clock):
    return AlertStore(session_factory, clock=clock)


@pytest.fixture()
def make_reading():
    """Builds a reading that trips no threshold unless overridden."""
    def _make(**overrides):
        data = {
            "sensor_id": "sensor_1",
            "location": {"name": "Batac Farm 1", "lat": 18.0554, "lng": 120.5649},
            "soil_moisture": 55,
            "temperature": 28.0,
            "humidity": 70,
            "ph_level": 6.5,
            "nitrogen": 40,
            "phosphorus": 30,
            "potassium": 60,
            "battery_level": 80,
            "timestamp": datetime(2025, 6, 1, 8, 0, 0),
        }
        data.update(overrides)
        return ReadingIn(**data)
    return _make


@pytest.fixture()
def client():
    from soil_monitor.db.base import Base
    from soil_monitor.db.session import engine
    from soil_monitor.main import app

    Base.metadata.drop_all(bind=engine)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def auth_headers(client):
    r = client.post(
        "/api/auth/register",
        json={"name": "Field Tech", "email": "tech@batac.gov.ph", "password": "secret123"},
    )
    assert r.status_code == 201
    return {"Authorization": f"Bearer {r.json()['access_token']}"}
