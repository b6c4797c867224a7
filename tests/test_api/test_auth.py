from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from app.core.config import settings
from app.core.rate_limit import limiter
from app.core.security import create_access_token
from app.models.user import User

REGISTER_URL = "/api/v1/auth/register"
TOKEN_URL = "/api/v1/auth/token"
ME_URL = "/api/v1/auth/me"


def _signup(client: TestClient, username="agent007", email="bond@example.com", password="shaken-not-stirred"):
    return client.post(REGISTER_URL, json={"username": username, "email": email, "password": password})


def _login(client: TestClient, username: str, password: str):
    return client.post(TOKEN_URL, data={"username": username, "password": password})


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_signup_then_login_then_profile(client: TestClient):
    """A new agent can register, log in and read their own profile."""
    response = _signup(client)
    assert response.status_code == 200
    profile = response.json()
    assert profile["username"] == "agent007"
    assert profile["is_active"] is True
    assert "hashed_password" not in profile

    response = _login(client, "agent007", "shaken-not-stirred")
    assert response.status_code == 200
    token = response.json()
    assert token["token_type"] == "bearer"

    response = client.get(ME_URL, headers=_bearer(token["access_token"]))
    assert response.status_code == 200
    assert response.json()["id"] == profile["id"]


def test_password_is_stored_hashed(client: TestClient, session: Session):
    _signup(client)

    stored = session.exec(select(User).where(User.username == "agent007")).one()
    assert stored.hashed_password != "shaken-not-stirred"
    assert stored.hashed_password.startswith("$argon2")


@pytest.mark.parametrize("field, message", [
    ("username", "Username already registered"),
    ("email", "Email already registered"),
])
def test_signup_rejects_taken_identity(client: TestClient, test_user: User, field, message):
    taken = {"username": "someone-else", "email": "else@example.com"}
    taken[field] = getattr(test_user, field)

    response = _signup(client, **taken)

    assert response.status_code == 400
    assert response.json()["detail"] == message


@pytest.mark.parametrize("payload", [
    {"username": "agent007", "email": "not-an-email", "password": "shaken-not-stirred"},
    {"username": "agent007", "email": "bond@example.com", "password": "short"},
    {"username": "ab", "email": "bond@example.com", "password": "shaken-not-stirred"},
])
def test_signup_validation(client: TestClient, payload):
    assert client.post(REGISTER_URL, json=payload).status_code == 422


@pytest.mark.parametrize("username, password", [
    ("testuser", "wrongpassword"),
    ("nobody", "testpassword"),
])
def test_login_rejects_bad_credentials(client: TestClient, test_user: User, username, password):
    response = _login(client, username, password)

    assert response.status_code == 401
    assert response.json()["detail"] == "Incorrect username or password"


def test_inactive_agent_cannot_log_in(client: TestClient, session: Session, test_user: User):
    test_user.is_active = False
    session.add(test_user)
    session.commit()

    assert _login(client, test_user.username, "testpassword").status_code == 401


def test_profile_rejects_bad_tokens(client: TestClient, test_user: User):
    expired = jwt.encode(
        {"sub": test_user.username, "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        settings.secret_key,
        algorithm=settings.algorithm,
    )
    forged = jwt.encode({"sub": test_user.username}, "a-different-signing-key-nobody-trusts", algorithm=settings.algorithm)

    assert client.get(ME_URL).status_code == 401
    for token in (expired, forged, "not.a.valid.jwt.token"):
        assert client.get(ME_URL, headers=_bearer(token)).status_code == 401


def test_token_for_deleted_agent(client: TestClient):
    token = create_access_token({"sub": "ghost"})

    response = client.get(ME_URL, headers=_bearer(token))

    assert response.status_code == 401
    assert response.json()["detail"] == "User not found"


def test_login_is_rate_limited(client: TestClient, test_user: User):
    limiter.enabled = True
    limiter.reset()

    statuses = [_login(client, test_user.username, "wrongpassword").status_code for _ in range(11)]

    assert statuses[:10] == [401] * 10
    assert statuses[10] == 429
