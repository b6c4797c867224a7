import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-gadget-vault")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from app.main import app
from app.api.v1.endpoints.gadgets import get_destruction_clock
from app.core.config import settings
from app.core.rate_limit import limiter
from app.core.security import get_password_hash
from app.db.base import *  # noqa: F401,F403
from app.db.session import get_session
from app.models.gadget import Gadget, GadgetStatus
from app.models.user import User
from app.services.destruction_service import PendingDestructionRegistry
from tests.helpers import FakeClock, RecordingNotifier


@pytest.fixture(name="session")
def session_fixture():
    """Create a test database session."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(name="clock")
def clock_fixture():
    return FakeClock()


@pytest.fixture(name="notifier")
def notifier_fixture():
    return RecordingNotifier()


@pytest.fixture(name="registry")
def registry_fixture():
    return PendingDestructionRegistry()


@pytest.fixture(name="client")
def client_fixture(session: Session, clock: FakeClock, notifier: RecordingNotifier,
                   registry: PendingDestructionRegistry):
    """Create a test client with database session, clock and notifier overrides."""
    def get_session_override():
        return session

    original_registry = app.state.destruction_registry
    original_notifier = app.state.destruction_notifier

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_destruction_clock] = lambda: clock
    app.state.destruction_registry = registry
    app.state.destruction_notifier = notifier
    settings.testing = True  # Enable testing mode
    limiter.enabled = False
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
    app.state.destruction_registry = original_registry
    app.state.destruction_notifier = original_notifier
    settings.testing = False  # Disable testing mode
    limiter.enabled = True
    limiter.reset()


@pytest.fixture(name="test_user")
def test_user_fixture(session: Session):
    """Create a test user."""
    user = User(
        username="testuser",
        email="test@example.com",
        hashed_password=get_password_hash("testpassword")
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(name="auth_headers")
def auth_headers_fixture(client: TestClient, test_user: User):
    """Get authentication headers for test user."""
    response = client.post(
        "/api/v1/auth/token",
        data={"username": test_user.username, "password": "testpassword"}
    )
    assert response.status_code == 200, f"Failed to get access token: {response.json()}"
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(name="gadget")
def gadget_fixture(session: Session, test_user: User):
    """Create an available gadget owned by the test user."""
    gadget = Gadget(name="Silent Falcon", status=GadgetStatus.AVAILABLE, owner_id=test_user.id)
    session.add(gadget)
    session.commit()
    session.refresh(gadget)
    return gadget
