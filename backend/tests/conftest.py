import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ENCRYPTION_KEY"] = "0123456789abcdef0123456789abcdef"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["TIMEZONE"] = "UTC"

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import lifesync.models  # noqa: F401
from lifesync.api.deps import get_client_factory
from lifesync.auth import create_access_token
from lifesync.connectors.base import ExternalTimeEntry, ExternalUser, ExternalWorkspace
from lifesync.connectors.clockify_connector import ClockifyConnector
from lifesync.database import Base, SessionLocal, engine, get_db
from lifesync.main import app
from lifesync.models.connection import ClockifyConnection
from lifesync.models.goal import Goal
from lifesync.models.user import User
from lifesync.utils.encrypt import encrypt_api_key

CLOCKIFY_API_KEY = "clockify-test-key-123"


def make_payload(entry_id, start, end=None, description="Work", project_id=None, billable=False):
    """Clockify time entry JSON as returned by the API."""
    interval = {"start": start}
    if end is not None:
        interval["end"] = end
    return {
        "id": entry_id,
        "description": description,
        "projectId": project_id,
        "billable": billable,
        "tagIds": [],
        "timeInterval": interval,
    }


def make_entry(entry_id, start, end=None, description="Work", project_id=None, billable=False):
    return ExternalTimeEntry.model_validate(make_payload(entry_id, start, end, description, project_id, billable))


@pytest.fixture
def db() -> Session:
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def user(db) -> User:
    user = User(email="ada@example.com", name="Ada")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def goal(db, user) -> Goal:
    goal = Goal(user_id=user.id, name="Deep Work", time_allocated=10, color="#3366ff", category="work_startups")
    db.add(goal)
    db.commit()
    db.refresh(goal)
    return goal


@pytest.fixture
def connection(db, user) -> ClockifyConnection:
    connection = ClockifyConnection(
        user_id=user.id,
        workspace_id="ws-1",
        clockify_user_id="cu-1",
        api_key_encrypted=encrypt_api_key(CLOCKIFY_API_KEY),
    )
    db.add(connection)
    db.commit()
    db.refresh(connection)
    return connection


@pytest.fixture
def clockify():
    """Stand-in for a ClockifyConnector with an empty workspace."""
    mock = AsyncMock(spec=ClockifyConnector)
    mock.__aenter__.return_value = mock
    mock.__aexit__.return_value = False
    mock.get_current_user.return_value = ExternalUser(id="cu-1", email="ada@clockify.test", name="Ada")
    mock.get_workspaces.return_value = [ExternalWorkspace(id="ws-1", name="Personal")]
    mock.get_projects.return_value = []
    mock.get_time_entries.return_value = []
    mock.get_time_entry_payloads.return_value = []
    return mock


@pytest.fixture
def client_factory(clockify):
    return MagicMock(return_value=clockify)


@pytest.fixture
def client(db, client_factory) -> TestClient:
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_client_factory] = lambda: client_factory
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(user):
    token = create_access_token(data={"sub": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def cron_headers():
    return {"Authorization": "Bearer test-cron-secret"}
