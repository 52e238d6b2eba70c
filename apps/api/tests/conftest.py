"""
Pytest configuration and fixtures.

Tests run against an in-memory SQLite database; the schema is created
from the models for each test and dropped afterwards. Planner, job queue
and clock are replaced with the fakes in plan_scenario_helpers.
"""
import os
import sys

# Must be set before core.config is imported anywhere.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("GOOGLE_API_KEY", "")

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pytest
from fastapi.testclient import TestClient

from core.database import Base, SessionLocal, engine, get_db
from core.dependencies import get_clock, get_job_queue, get_plan_generator
import models  # noqa: F401  (registers tables on Base.metadata)

from plan_scenario_helpers import FakePlanGenerator, FixedClock, InMemoryJobQueue


@pytest.fixture
def db_session():
    """Fresh schema per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def job_queue():
    return InMemoryJobQueue()


@pytest.fixture
def generator():
    return FakePlanGenerator()


@pytest.fixture
def client(db_session, generator, job_queue, clock):
    """TestClient sharing the test's session and fakes."""
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_plan_generator] = lambda: generator
    app.dependency_overrides[get_job_queue] = lambda: job_queue
    app.dependency_overrides[get_clock] = lambda: clock
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
