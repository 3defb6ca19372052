from pathlib import Path
import os
import sys

ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_TIMEZONE"] = "UTC"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-0123456789abcdef0123456789")
os.environ.pop("DEFAULT_ADMIN_EMAIL", None)
os.environ.pop("DEFAULT_ADMIN_PASSWORD", None)
for key in ("SMTP_HOST", "SMTP_PORT", "SMTP_FROM"):
    os.environ.pop(key, None)

import pytest
from fastapi.testclient import TestClient

from database import Base, SessionLocal, engine
from server import app


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    with TestClient(app) as test_client:
        yield test_client
    Base.metadata.drop_all(bind=engine)


def register(client, username, email, password="secret123", name=None, headers=None, role=None):
    payload = {"username": username, "email": email, "password": password, "name": name or username.title()}
    if role:
        payload["role"] = role
    return client.post("/api/register", json=payload, headers=headers or {})


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(client):
    res = register(client, "admin", "admin@example.com", name="Admin User")
    assert res.status_code == 201
    return bearer(res.json()["access_token"])


@pytest.fixture
def user_headers(client, admin_headers):
    res = register(client, "staff", "staff@example.com", name="Staff Member")
    assert res.status_code == 201
    return bearer(res.json()["access_token"])


@pytest.fixture
def event(client, admin_headers):
    res = client.post(
        "/api/events",
        json={
            "name": "Data Workshop",
            "description": "Hands-on pandas session",
            "start_date": "2026-03-01T09:00:00",
            "end_date": "2026-03-02T17:00:00",
            "location": "Hall A",
        },
        headers=admin_headers,
    )
    assert res.status_code == 201
    return res.json()


def add_attendee(client, headers, event_id, name, email, **extra):
    res = client.post(f"/api/events/{event_id}/attendees", json={"name": name, "email": email, **extra}, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()


def add_mentor(client, headers, event_id, name, email, expertise="Python"):
    res = client.post(
        f"/api/events/{event_id}/mentors",
        json={"name": name, "email": email, "expertise": expertise},
        headers=headers,
    )
    assert res.status_code == 201, res.text
    return res.json()
