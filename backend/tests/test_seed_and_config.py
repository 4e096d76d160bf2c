import pytest
from fastapi.testclient import TestClient

from quizhub.config import Settings
from quizhub.main import create_app
from quizhub.security import PasswordHasher
from quizhub.seed import seed_demo_data
from quizhub.storage import MemoryStorage
from conftest import register


@pytest.fixture
def seeded_client(monkeypatch):
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("SEED_DEMO_DATA", "true")
    return TestClient(create_app(Settings()))


def test_demo_catalogue(seeded_client):
    subjects = seeded_client.get("/api/subjects").json()
    assert [s["name"] for s in subjects] == ["Physics", "Chemistry", "Biology"]
    topics = seeded_client.get(f"/api/subjects/{subjects[0]['id']}/topics").json()
    assert [t["name"] for t in topics] == ["Mechanics", "Thermodynamics"]
    for topic in topics:
        questions = seeded_client.get(f"/api/topics/{topic['id']}/questions").json()
        assert len(questions) == 2
    assert seeded_client.get(f"/api/subjects/{subjects[1]['id']}/topics").json() == []


def test_demo_accounts_can_log_in(seeded_client):
    r = seeded_client.post("/api/login", json={"username": "demo_teacher", "password": "password123"})
    assert r.status_code == 200
    assert r.json()["role"] == "teacher"
    assert len(seeded_client.get("/api/teacher/subjects").json()) == 3

    r = seeded_client.post("/api/login", json={"username": "admin", "password": "admin123"})
    assert r.json()["role"] == "admin"
    assert seeded_client.get("/api/admin/users").status_code == 200


def test_apps_do_not_share_state(app, make_client):
    register(make_client(), "alice")
    other = TestClient(create_app(app.state.settings))
    r = other.post("/api/register", json={"username": "alice", "password": "secret1"})
    assert r.status_code == 201


def test_default_secret_rejected_outside_dev(monkeypatch):
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.delenv("SESSION_SECRET", raising=False)
    monkeypatch.delenv("ALLOW_INSECURE_SECRET", raising=False)
    with pytest.raises(RuntimeError):
        Settings()


def test_cookie_security_follows_environment(monkeypatch):
    monkeypatch.delenv("SESSION_COOKIE_SECURE", raising=False)
    monkeypatch.setenv("ENV", "dev")
    assert Settings().SESSION_COOKIE_SECURE is False
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.setenv("SESSION_SECRET", "a-real-secret-for-production-use-only")
    assert Settings().SESSION_COOKIE_SECURE is True


def test_seed_logs_under_its_own_logger(caplog):
    with caplog.at_level("INFO", logger="quizhub.seed"):
        seed_demo_data(MemoryStorage(), PasswordHasher("pbkdf2_sha256"))
    assert any(r.name == "quizhub.seed" and "demo_data_seeded" in r.getMessage() for r in caplog.records)
