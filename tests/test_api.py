"""
HTTP-level tests through FastAPI's TestClient.
"""
import asyncio
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from todu.api.app import FixedWindowLimiter, create_app
from todu.api.container import build_container


@pytest.fixture
def client(settings, container):
    with TestClient(create_app(settings, container)) as c:
        yield c


def _signup(client, name, email, password="Secret12"):
    res = client.post("/api/auth/signup", json={"name": name, "email": email, "password": password})
    assert res.status_code == 201, res.text
    return res.json()["token"]


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def _list_id(client, token, name):
    lists = client.get("/api/lists", headers=_auth(token)).json()["data"]
    return next(lst["id"] for lst in lists if lst["name"] == name)


def test_health_and_welcome(client):
    assert client.get("/api/health").json()["status"] == "ok"
    assert "Todu" in client.get("/").json()["message"]


def test_signup_returns_token_and_user(client):
    res = client.post("/api/auth/signup", json={"name": "Ann", "email": "Ann@Example.com", "password": "Secret12"})
    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    assert body["user"]["email"] == "ann@example.com"
    assert "passwordHash" not in body["user"]

    me = client.get("/api/auth/me", headers=_auth(body["token"]))
    assert me.status_code == 200
    assert me.json()["user"]["name"] == "Ann"


def test_short_password_is_rejected_without_creating_user(client, container):
    res = client.post("/api/auth/signup", json={"name": "Ann", "email": "ann@example.com", "password": "abc"})

    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert body["error"] == "Validation failed"
    assert any(d["field"] == "password" for d in body["details"])
    assert asyncio.run(container.db.fetchval("SELECT COUNT(*) FROM users;")) == 0


def test_duplicate_email_conflicts(client):
    _signup(client, "Ann", "ann@example.com")
    res = client.post("/api/auth/signup", json={"name": "Ann", "email": "ann@example.com", "password": "Secret12"})
    assert res.status_code == 409


def test_login_with_wrong_password(client):
    _signup(client, "Ann", "ann@example.com")
    res = client.post("/api/auth/login", json={"email": "ann@example.com", "password": "Wrong123"})
    assert res.status_code == 401
    assert res.json()["error"] == "Invalid email or password"


def test_requests_without_token_are_unauthorized(client):
    res = client.get("/api/tasks")
    assert res.status_code == 401
    assert res.json()["success"] is False


def test_list_id_null_returns_only_unfiled_tasks(client):
    token = _signup(client, "Ann", "ann@example.com")
    inbox = _list_id(client, token, "Inbox")

    filed = client.post("/api/tasks", json={"title": "Filed", "listId": inbox}, headers=_auth(token))
    assert filed.status_code == 201
    loose = client.post("/api/tasks", json={"title": "Loose"}, headers=_auth(token))
    assert loose.status_code == 201

    res = client.get("/api/tasks", params={"listId": "null"}, headers=_auth(token))
    assert res.status_code == 200
    assert [t["title"] for t in res.json()["data"]] == ["Loose"]

    res = client.get("/api/tasks", params={"listId": inbox}, headers=_auth(token))
    assert [t["title"] for t in res.json()["data"]] == ["Filed"]


def test_task_filters_and_sorting(client):
    token = _signup(client, "Ann", "ann@example.com")
    for title, priority, tags in (("Buy milk", "low", ["home"]), ("Fix bug", "urgent", ["work"]), ("Email Bob", "high", ["work"])):
        res = client.post("/api/tasks", json={"title": title, "priority": priority, "tags": tags}, headers=_auth(token))
        assert res.status_code == 201

    res = client.get("/api/tasks", params={"tags": "work", "sortBy": "priority", "sortOrder": "desc"}, headers=_auth(token))
    assert [t["title"] for t in res.json()["data"]] == ["Fix bug", "Email Bob"]

    res = client.get("/api/tasks", params={"search": "MILK"}, headers=_auth(token))
    assert [t["title"] for t in res.json()["data"]] == ["Buy milk"]

    stats = client.get("/api/tasks/stats", headers=_auth(token)).json()["data"]
    assert stats["total"] == 3
    assert stats["todo"] == 3


def test_invalid_task_body_is_400(client):
    token = _signup(client, "Ann", "ann@example.com")
    res = client.post("/api/tasks", json={"title": "x", "priority": "whenever"}, headers=_auth(token))
    assert res.status_code == 400
    assert res.json()["error"] == "Validation failed"


def test_viewer_patch_is_forbidden_and_editor_patch_succeeds(client):
    owner = _signup(client, "Owen", "owen@example.com")
    viewer = _signup(client, "Vera", "vera@example.com")
    editor = _signup(client, "Eddie", "eddie@example.com")

    team = client.post("/api/lists", json={"name": "Team"}, headers=_auth(owner)).json()["data"]["id"]
    for email, role in (("vera@example.com", "viewer"), ("eddie@example.com", "editor")):
        res = client.post(f"/api/lists/{team}/share", json={"email": email, "role": role}, headers=_auth(owner))
        assert res.status_code == 200, res.text
    task = client.post("/api/tasks", json={"title": "Plan", "listId": team}, headers=_auth(owner)).json()["data"]

    res = client.patch(f"/api/tasks/{task['id']}", json={"status": "done"}, headers=_auth(viewer))
    assert res.status_code == 403

    res = client.patch(f"/api/tasks/{task['id']}", json={"status": "done"}, headers=_auth(editor))
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["status"] == "done"
    assert data["completedAt"] is not None

    # the viewer still sees the task through the shared list
    res = client.get(f"/api/tasks/{task['id']}", headers=_auth(viewer))
    assert res.status_code == 200


def test_bulk_update_skips_foreign_tasks(client):
    ann = _signup(client, "Ann", "ann@example.com")
    bob = _signup(client, "Bob", "bob@example.com")
    mine = client.post("/api/tasks", json={"title": "Mine"}, headers=_auth(ann)).json()["data"]["id"]
    theirs = client.post("/api/tasks", json={"title": "Theirs"}, headers=_auth(bob)).json()["data"]["id"]

    res = client.patch(
        "/api/tasks/bulk",
        json={"updates": [{"id": mine, "updates": {"order": 5}}, {"id": theirs, "updates": {"order": 9}}]},
        headers=_auth(ann),
    )
    assert res.status_code == 200
    assert [t["id"] for t in res.json()["data"]] == [mine]

    res = client.patch("/api/tasks/bulk", json={"updates": "nope"}, headers=_auth(ann))
    assert res.status_code == 400


def test_comments_and_messages_flow(client):
    ann = _signup(client, "ann", "ann@example.com")
    bob = _signup(client, "bob", "bob@example.com")
    bob_id = client.get("/api/auth/me", headers=_auth(bob)).json()["user"]["id"]

    task = client.post("/api/tasks", json={"title": "Draft"}, headers=_auth(ann)).json()["data"]["id"]
    res = client.post(f"/api/tasks/{task}/comments", json={"content": "ping @bob"}, headers=_auth(ann))
    assert res.status_code == 201
    assert res.json()["data"]["mentions"] == [bob_id]

    count = client.get("/api/notifications/unread-count", headers=_auth(bob)).json()["data"]["count"]
    assert count == 1

    # bob cannot see ann's private task, so commenting is denied
    res = client.post(f"/api/tasks/{task}/comments", json={"content": "hi"}, headers=_auth(bob))
    assert res.status_code == 403

    res = client.post("/api/messages", json={"receiverId": bob_id, "content": "hello"}, headers=_auth(ann))
    assert res.status_code == 201
    convos = client.get("/api/messages/conversations", headers=_auth(bob)).json()["data"]
    assert convos[0]["lastMessage"]["content"] == "hello"
    assert convos[0]["unreadCount"] == 1


def test_dev_endpoints_are_closed_in_production(settings, clock, mailer):
    prod = replace(settings, env="production")
    container = build_container(prod, clock=clock, mailer=mailer, bcrypt_rounds=4)
    with TestClient(create_app(prod, container)) as client:
        token = _signup(client, "Ann", "ann@example.com")
        res = client.post("/api/notifications/process", json={"kind": "all"}, headers=_auth(token))
        assert res.status_code == 403


def test_fixed_window_limiter_resets():
    limiter = FixedWindowLimiter(limit=2, window=60)
    assert limiter.hit("ip", now=0)
    assert limiter.hit("ip", now=1)
    assert not limiter.hit("ip", now=2)
    assert limiter.hit("ip", now=61)


def test_fixed_window_limiter_forgets_idle_clients():
    limiter = FixedWindowLimiter(limit=5, window=60)
    for i in range(100):
        limiter.hit(f"10.0.0.{i}", now=i * 0.1)
    assert len(limiter) == 100

    assert limiter.hit("10.0.1.1", now=120)
    assert len(limiter) == 1
