"""
Shared pytest fixtures.

Uses a file-backed SQLite database so no Postgres is required for tests.
Every table is emptied after each test: the active-policy fallback is
global, so leftovers from one test would change the next one's resolution.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_tpe.db")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import tpe_availability.models  # noqa: F401  register every table on Base.metadata
from tpe_availability.db.base import Base, get_db
from tpe_availability.main import app
from tpe_availability.models.telemetry import TerminalTelemetry
from tpe_availability.services.policy_service import create_policy

SQLITE_URL = "sqlite:///./test_tpe.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# A reading that passes every check of the default policy.
HEALTHY_READING = {
    "status": "Active",
    "offline_duration": None,
    "signal": "4",
    "geofence": "In geofence",
    "battery_rate_avg": 0.8,
    "printer": "Available",
    "is_charging": False,
}


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_policy(db):
    """Create a policy through the service; active unless told otherwise."""
    def _make(**fields):
        data = {"name": "Default policy", "status": "active"}
        data.update(fields)
        return create_policy(db, data)
    return _make


@pytest.fixture()
def add_reading(db):
    """Insert one telemetry row; fields default to HEALTHY_READING."""
    def _add(terminal_sn, event_time, **overrides):
        fields = dict(HEALTHY_READING)
        fields.update(overrides)
        row = TerminalTelemetry(terminal_sn=terminal_sn, event_time=event_time, **fields)
        db.add(row)
        db.commit()
        return row
    return _add
