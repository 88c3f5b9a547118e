import os

# Configuration is read at import time, so it must be in place before tazk is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["SERVICE_ROLE_KEY"] = "test-service-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["VAPID_PUBLIC_KEY"] = "test-vapid-public-key"
os.environ["VAPID_PRIVATE_KEY"] = "test-vapid-private-key"
os.environ["RESEND_API_KEY"] = "re_test_key"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["SCHEDULER_TIMEZONE"] = "UTC"

import uuid
from datetime import datetime, timedelta, timezone

import pytest
import resend
from fastapi.testclient import TestClient
from jose import jwt
from pywebpush import WebPushException

from tazk.database import Base, SessionLocal, engine
from tazk.domain.push import service as push_service_module
from tazk.main import app

SERVICE_HEADERS = {"Authorization": "Bearer test-service-key"}


def make_token(user_id: str, email: str, expires_in: int = 3600, **extra) -> str:
    claims = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        **extra,
    }
    return jwt.encode(claims, "test-jwt-secret", algorithm="HS256")


class TestUser:
    __test__ = False

    def __init__(self, name: str):
        self.id = str(uuid.uuid4())
        self.email = f"{name}@example.com"
        self.name = name.capitalize()
        token = make_token(self.id, self.email, user_metadata={"full_name": self.name})
        self.headers = {"Authorization": f"Bearer {token}"}


class FakeResponse:
    def __init__(self, status_code: int):
        self.status_code = status_code
        self.text = ""


class FakeWebPush:
    """Records webpush() calls; endpoints listed in `failures` answer with that status"""

    def __init__(self):
        self.calls = []
        self.failures = {}

    def __call__(self, subscription_info, data, vapid_private_key, vapid_claims, ttl=0, **kwargs):
        self.calls.append(
            {
                "endpoint": subscription_info["endpoint"],
                "keys": subscription_info["keys"],
                "data": data,
                "vapid_claims": vapid_claims,
                "ttl": ttl,
            }
        )
        status = self.failures.get(subscription_info["endpoint"])
        if status:
            raise WebPushException(f"Push failed: {status}", response=FakeResponse(status))
        return FakeResponse(201)


class FakeResend:
    """Stands in for resend.Emails.send"""

    def __init__(self):
        self.sent = []
        self.error = None

    def __call__(self, params):
        if self.error:
            raise Exception(self.error)
        self.sent.append(params)
        return {"id": f"email-{len(self.sent)}"}


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(autouse=True)
def webpush_fake(monkeypatch):
    fake = FakeWebPush()
    monkeypatch.setattr(push_service_module, "webpush", fake)
    return fake


@pytest.fixture(autouse=True)
def mailer(monkeypatch):
    fake = FakeResend()
    monkeypatch.setattr(resend.Emails, "send", fake)
    return fake


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def _signed_up(client, name: str) -> TestUser:
    user = TestUser(name)
    response = client.get("/profiles/me", headers=user.headers)
    assert response.status_code == 200
    return user


@pytest.fixture
def alice(client):
    return _signed_up(client, "alice")


@pytest.fixture
def bob(client):
    return _signed_up(client, "bob")


@pytest.fixture
def carol(client):
    return _signed_up(client, "carol")


@pytest.fixture
def team(client, alice, bob):
    """A team owned by alice with bob as a member"""
    response = client.post("/teams", json={"name": "Cleaning crew", "color": "#123456"}, headers=alice.headers)
    assert response.status_code == 201
    team = response.json()

    invitation = client.post(
        f"/teams/{team['id']}/invitations", json={"email": bob.email, "role": "member"}, headers=alice.headers
    ).json()
    accepted = client.post(f"/invitations/{invitation['id']}/accept", headers=bob.headers)
    assert accepted.status_code == 200
    return team


def statuses_of(client, user, team_id=None) -> list[dict]:
    params = {"team_id": team_id} if team_id else {}
    return client.get("/statuses", params=params, headers=user.headers).json()


def subscribe(client, user, endpoint: str) -> dict:
    response = client.post(
        "/push/subscriptions",
        json={"endpoint": endpoint, "keys": {"p256dh": "p256dh-key", "auth": "auth-secret"}},
        headers=user.headers,
    )
    assert response.status_code == 201
    return response.json()
