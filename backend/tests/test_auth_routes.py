import hashlib
import threading

from quizhub import models
from quizhub.storage import MemoryStorage
from conftest import register


def test_register_returns_user_without_password_and_logs_in(client):
    r = client.post("/api/register", json={"username": "alice", "password": "secret1"})
    assert r.status_code == 201
    user = r.json()
    assert user["username"] == "alice"
    assert user["role"] == "student"
    assert "password" not in user
    assert {"id", "createdAt"} <= set(user)

    me = client.get("/api/me")
    assert me.status_code == 200
    assert me.json()["id"] == user["id"]
    assert "password" not in me.json()


def test_register_duplicate_username_fails(client, make_client):
    register(client, "alice")
    r = make_client().post("/api/register", json={"username": "alice", "password": "other12"})
    assert r.status_code == 400
    assert r.json()["message"] == "Username already exists"


def test_usernames_are_case_sensitive(client, make_client):
    register(client, "alice")
    register(make_client(), "Alice")


def test_register_validation(client):
    short = client.post("/api/register", json={"username": "bob", "password": "12345"})
    assert short.status_code == 400
    assert "password" in short.json()["message"]

    empty = client.post("/api/register", json={"username": "", "password": "secret1"})
    assert empty.status_code == 400

    bad_role = client.post("/api/register", json={"username": "bob", "password": "secret1", "role": "owner"})
    assert bad_role.status_code == 400

    missing = client.post("/api/register", json={})
    assert missing.status_code == 400
    assert "message" in missing.json()


def test_login_and_logout(client, make_client):
    register(make_client(), "alice", password="secret1")

    bad = client.post("/api/login", json={"username": "alice", "password": "nope123"})
    assert bad.status_code == 401
    assert bad.json()["message"] == "Invalid credentials"
    unknown = client.post("/api/login", json={"username": "ghost", "password": "secret1"})
    assert unknown.status_code == 401
    assert client.get("/api/me").status_code == 401

    ok = client.post("/api/login", json={"username": "alice", "password": "secret1"})
    assert ok.status_code == 200
    assert ok.json()["username"] == "alice"
    assert "password" not in ok.json()
    assert client.get("/api/me").status_code == 200

    out = client.post("/api/logout")
    assert out.status_code == 200
    assert client.get("/api/me").status_code == 401


def test_logout_destroys_the_server_side_session(client, app):
    register(client, "alice")
    token = client.cookies.get(app.state.settings.SESSION_COOKIE_NAME)
    assert app.state.sessions.resolve(token) is not None
    client.post("/api/logout")
    assert app.state.sessions.resolve(token) is None


def test_logout_without_session_is_ok(client):
    assert client.post("/api/logout").status_code == 200


def test_logout_failure_is_reported_as_server_error(client, app, monkeypatch):
    register(client, "alice")

    def broken(token):
        raise RuntimeError("session backend down")

    monkeypatch.setattr(app.state.sessions, "destroy", broken)
    r = client.post("/api/logout")
    assert r.status_code == 500
    assert r.json() == {"message": "Could not log out"}


def test_me_for_vanished_user_is_not_found(client, app, monkeypatch):
    register(client, "alice")
    monkeypatch.setattr(app.state, "storage", MemoryStorage())
    r = client.get("/api/me")
    assert r.status_code == 404
    assert r.json()["message"] == "User not found"


def test_login_upgrades_legacy_password_hash(client, app):
    store = app.state.storage
    legacy = hashlib.sha256(b"password123").hexdigest()
    user = store.create_user(models.UserDraft(username="old_teacher", password=legacy, role=models.Role.TEACHER))

    r = client.post("/api/login", json={"username": "old_teacher", "password": "password123"})
    assert r.status_code == 200
    upgraded = store.get_user(user.id).password
    assert upgraded != legacy
    assert app.state.hasher.verify("password123", upgraded)


def test_concurrent_registrations_keep_usernames_unique(app, make_client):
    clients = [make_client() for _ in range(8)]
    barrier = threading.Barrier(len(clients))
    codes = []

    def worker(c):
        barrier.wait()
        codes.append(c.post("/api/register", json={"username": "dup", "password": "secret1"}).status_code)

    threads = [threading.Thread(target=worker, args=(c,)) for c in clients]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert sorted(codes) == [201] + [400] * 7
    assert [u.username for u in app.state.storage.list_users()] == ["dup"]
