import pytest
from fastapi.testclient import TestClient

from quizhub.config import Settings
from quizhub.main import create_app


@pytest.fixture
def test_settings(monkeypatch):
    """Settings for an isolated, unseeded app."""
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("SEED_DEMO_DATA", "false")
    monkeypatch.setenv("SESSION_SECRET", "test-session-secret-with-enough-bytes")
    return Settings()


@pytest.fixture
def app(test_settings):
    return create_app(test_settings)


@pytest.fixture
def make_client(app):
    """Factory for clients sharing one app; each keeps its own session cookie."""
    def _make():
        return TestClient(app)
    return _make


@pytest.fixture
def client(make_client):
    return make_client()


def register(client, username, password="secret1", role=None):
    body = {"username": username, "password": password}
    if role:
        body["role"] = role
    r = client.post("/api/register", json=body)
    assert r.status_code == 201, r.text
    return r.json()


@pytest.fixture
def teacher_client(make_client):
    c = make_client()
    c.user = register(c, "teacher1", role="teacher")
    return c


@pytest.fixture
def student_client(make_client):
    c = make_client()
    c.user = register(c, "student1")
    return c


@pytest.fixture
def admin_client(make_client):
    c = make_client()
    c.user = register(c, "admin1", role="admin")
    return c
