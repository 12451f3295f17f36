import os
from datetime import datetime, timezone

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ADMIN_PASSWORD"] = "s3cret"
os.environ["SESSION_SECRET"] = "test-signing-secret"
os.environ["TIMEZONE"] = "Africa/Maputo"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from accountshop.core.config import get_settings
from accountshop.core.context import build_context
from accountshop.core.kv_store import MemoryKeyValueStore
from accountshop.database import engine as app_engine
from accountshop.main import app
from accountshop.repositories.event_log_repo import EventLogRepository
from accountshop.services.analytics_service import VisitAggregator

from tests.helpers import FakeClock


@pytest.fixture()
def clock():
    # 12:00 in Maputo (UTC+2)
    return FakeClock(datetime(2024, 5, 15, 10, 0, tzinfo=timezone.utc))


@pytest.fixture()
def engine():
    SQLModel.metadata.drop_all(app_engine)
    SQLModel.metadata.create_all(app_engine)
    yield app_engine
    SQLModel.metadata.drop_all(app_engine)


@pytest.fixture()
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture()
def context(engine, clock):
    return build_context(get_settings(), engine, clock=clock, sleep=clock.sleep)


@pytest.fixture()
def aggregator(clock):
    log = EventLogRepository(MemoryKeyValueStore(), capacity=1000)
    return VisitAggregator(log, tz="Africa/Maputo", clock=clock)


@pytest.fixture()
def client(context):
    previous = app.state.context
    app.state.context = context
    with TestClient(app, follow_redirects=False) as client:
        yield client
    app.state.context = previous


@pytest.fixture()
def admin_client(client):
    response = client.post("/api/v1/admin/session", json={"password": "s3cret"})
    assert response.status_code == 201
    return client
