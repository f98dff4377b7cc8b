"""
Pytest configuration and fixtures for the fleet registry tests.
"""

import pytest
from datetime import timedelta
from unittest.mock import MagicMock, patch
from uuid import uuid4
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from fleet.main import app
from fleet.api.controller import app_user
from fleet.src import getters
from fleet.src.allocator import utcToday
from fleet.src.db import ORMbase, VehicleType, sessionMaker
from fleet.src.redis import StateCache


# SQLite in-memory database shared by every session of a test
engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(autouse=True)
def database():
    """
    Point the application session factory at a fresh in-memory database.
    """
    sessionMaker.configure(bind=engine)
    ORMbase.metadata.create_all(bind=engine)
    yield
    ORMbase.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def audit_log():
    """Capture audit events instead of sending them to OpenObserve."""
    with patch("fleet.src.openobserve.logEvent") as logEvent:
        yield logEvent


@pytest.fixture
def session():
    session = sessionMaker()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def redis_client():
    """In-memory stand-in for the Redis commands used by StateCache."""
    store = {}
    client = MagicMock()
    client.set.side_effect = lambda key, value, ex=None: store.__setitem__(key, value)
    client.getdel.side_effect = lambda key: store.pop(key, None)
    client.store = store
    return client


@pytest.fixture
def client(redis_client):
    app_user.dependency_overrides[getters.stateCache] = lambda: StateCache(
        redis_client, ttl=60
    )
    with TestClient(app) as test_client:
        yield test_client
    app_user.dependency_overrides.clear()


@pytest.fixture
def bus_type(session):
    vehicleType = VehicleType(id=1, name="bus", description="Large passenger vehicle")
    session.add(vehicleType)
    session.commit()
    return vehicleType


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------
def vehicle_values(**overrides) -> dict:
    today = utcToday()
    values = {
        "vehicle_type_id": 1,
        "license_plate": f"KBA{uuid4().hex[:4].upper()}",
        "make": "Isuzu",
        "model": "NQR",
        "year": 2020,
        "color": "Blue",
        "seating_capacity": 33,
        "fuel_type": "DIESEL",
        "engine_number": "ENG-1",
        "chassis_number": "CH-1",
        "registration_date": today - timedelta(days=365),
        "insurance_expiry": today + timedelta(days=180),
    }
    values.update(overrides)
    return values


def driver_values(**overrides) -> dict:
    today = utcToday()
    values = {
        "user_id": uuid4(),
        "license_number": "DL1234567",
        "license_class": "CLASS_B",
        "license_expiry": today + timedelta(days=365),
        "experience_years": 5,
        "phone_number": "+254700000000",
        "emergency_contact_name": "Jane",
        "emergency_contact_phone": "+254700000001",
        "hire_date": today,
    }
    values.update(overrides)
    return values

