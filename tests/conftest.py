from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from config import settings
from domain.timeutils import utcnow
from main import app


def auth_headers(user_id, role: str) -> dict:
    return {"X-User-Id": str(user_id), "X-User-Role": role}


def iso(dt) -> str:
    return dt.isoformat()


def parse_dt(value: str) -> datetime:
    """Parse a response timestamp; they always carry a UTC designator."""
    assert value.endswith("Z") or value.endswith("+00:00"), value
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(settings, "database_url", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setattr(settings, "auto_create_tables", True)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _create_user(client, name: str, email: str, role: str) -> dict:
    bootstrap = auth_headers(uuid4(), "admin")
    response = client.post(
        "/api/users",
        json={"name": name, "email": email, "role": role},
        headers=bootstrap,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def admin(client):
    user = _create_user(client, "Ada Admin", "ada@example.com", "admin")
    return {**user, "headers": auth_headers(user["id"], "admin")}


@pytest.fixture
def employee(client):
    user = _create_user(client, "Erin Employee", "erin@example.com", "employee")
    return {**user, "headers": auth_headers(user["id"], "employee")}


@pytest.fixture
def other_employee(client):
    user = _create_user(client, "Olaf Other", "olaf@example.com", "employee")
    return {**user, "headers": auth_headers(user["id"], "employee")}


@pytest.fixture
def security(client):
    user = _create_user(client, "Sam Security", "sam@example.com", "security")
    return {**user, "headers": auth_headers(user["id"], "security")}


@pytest.fixture
def visitor(client, employee):
    response = client.post(
        "/api/visitors",
        json={"name": "Maria Gonzalez", "email": "maria@acme.test", "phone": "555-0101", "company": "Acme"},
        headers=employee["headers"],
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def issue(client, employee, visitor):
    """Issue a pass; keyword overrides are merged into the request body."""

    def _issue(headers=None, **overrides):
        now = utcnow()
        body = {
            "visitor": visitor["id"],
            "host": employee["id"],
            "validFrom": iso(now - timedelta(hours=1)),
            "validTo": iso(now + timedelta(hours=2)),
        }
        body.update(overrides)
        return client.post("/api/passes", json=body, headers=headers or employee["headers"])

    return _issue
