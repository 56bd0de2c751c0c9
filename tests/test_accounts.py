"""
Account flows: password reset, profile edits, avatar upload and deletion.
"""
import asyncio

import pytest
from fastapi.testclient import TestClient

from todu.api.app import create_app
from todu.constants import AVATAR_MAX_BYTES
from todu.domain.common.errors import AuthenticationError, ConflictError, ServiceError, ValidationError

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


async def _signup(c, name, email, password="Secret12"):
    return (await c.accounts.signup(name, email, password)).user


def _reset_token(mailer):
    return mailer.sent[-1]["text"].rsplit("/", 1)[-1]


def test_forgot_password_for_unknown_email_sends_nothing(container, mailer):
    async def run():
        message = await container.accounts.forgot_password("ghost@example.com")
        assert "If an account exists" in message
        assert mailer.sent == []

    asyncio.run(run())


def test_reset_password_with_emailed_token(container, mailer):
    async def run():
        await _signup(container, "Ann", "ann@example.com")
        await container.accounts.forgot_password("ANN@example.com")
        assert mailer.sent[-1]["to"] == "ann@example.com"
        token = _reset_token(mailer)
        assert len(token) == 40

        result = await container.accounts.reset_password(token, "NewPass9")
        assert result.token

        assert (await container.accounts.login("ann@example.com", "NewPass9")).user.email == "ann@example.com"
        with pytest.raises(AuthenticationError):
            await container.accounts.login("ann@example.com", "Secret12")

        # the token is cleared after use
        with pytest.raises(ValidationError):
            await container.accounts.reset_password(token, "Another1")

    asyncio.run(run())


def test_reset_password_rejects_unknown_and_expired_tokens(container, mailer, clock):
    async def run():
        await _signup(container, "Ann", "ann@example.com")
        with pytest.raises(ValidationError):
            await container.accounts.reset_password("f" * 40, "NewPass9")

        await container.accounts.forgot_password("ann@example.com")
        token = _reset_token(mailer)
        clock.advance(minutes=11)
        with pytest.raises(ValidationError):
            await container.accounts.reset_password(token, "NewPass9")

    asyncio.run(run())


def test_forgot_password_email_failure_clears_token(container, mailer):
    async def run():
        user = await _signup(container, "Ann", "ann@example.com")
        mailer.fail = True

        with pytest.raises(ServiceError):
            await container.accounts.forgot_password("ann@example.com")

        stored = await container.db.fetchone(
            "SELECT reset_password_token, reset_password_expire FROM users WHERE id = ?;", (user.id,)
        )
        assert stored["reset_password_token"] is None
        assert stored["reset_password_expire"] is None

    asyncio.run(run())


def test_profile_email_already_taken_conflicts(container):
    async def run():
        ann = await _signup(container, "Ann", "ann@example.com")
        await _signup(container, "Bob", "bob@example.com")

        with pytest.raises(ConflictError):
            await container.accounts.update_profile(ann.id, {"email": "Bob@Example.com"})

        updated = await container.accounts.update_profile(ann.id, {"name": "Annie", "email": "annie@example.com"})
        assert (updated.name, updated.email) == ("Annie", "annie@example.com")

    asyncio.run(run())


def test_delete_account_checks_phrase_and_password_then_cascades(container):
    async def run():
        ann = await _signup(container, "Ann", "ann@example.com")
        bob = await _signup(container, "Bob", "bob@example.com")
        team = await container.lists.create(ann.id, "Team")
        await container.tasks.create(ann.id, {"title": "Mine", "list_id": team.id})
        await container.tasks.create(bob.id, {"title": "Bob's"})

        with pytest.raises(ValidationError):
            await container.accounts.delete_account(ann.id, "Secret12", "delete")
        with pytest.raises(ValidationError):
            await container.accounts.delete_account(ann.id, None, "DELETE MY ACCOUNT")
        with pytest.raises(AuthenticationError):
            await container.accounts.delete_account(ann.id, "Wrong123", "DELETE MY ACCOUNT")

        await container.accounts.delete_account(ann.id, "Secret12", "DELETE MY ACCOUNT")

        db = container.db
        assert await db.fetchval("SELECT COUNT(*) FROM users WHERE id = ?;", (ann.id,)) == 0
        assert await db.fetchval("SELECT COUNT(*) FROM tasks WHERE user_id = ?;", (ann.id,)) == 0
        assert await db.fetchval("SELECT COUNT(*) FROM lists WHERE user_id = ?;", (ann.id,)) == 0
        # other people's data is untouched
        assert await db.fetchval("SELECT COUNT(*) FROM tasks WHERE user_id = ?;", (bob.id,)) == 1

    asyncio.run(run())


@pytest.fixture
def client(settings, container):
    with TestClient(create_app(settings, container)) as c:
        yield c


def _token(client, email="ann@example.com"):
    res = client.post("/api/auth/signup", json={"name": "Ann", "email": email, "password": "Secret12"})
    assert res.status_code == 201, res.text
    return {"Authorization": f"Bearer {res.json()['token']}"}


def test_avatar_upload_replaces_previous_file(client, settings):
    headers = _token(client)
    avatars = settings.upload_dir / "avatars"

    first = client.post("/api/auth/avatar", files={"avatar": ("me.png", PNG, "image/png")}, headers=headers)
    assert first.status_code == 200, first.text
    assert first.json()["avatarUrl"].startswith("/uploads/avatars/")

    second = client.post("/api/auth/avatar", files={"avatar": ("me.webp", PNG, "image/webp")}, headers=headers)
    assert second.status_code == 200
    url = second.json()["avatarUrl"]
    assert [p.name for p in avatars.iterdir()] == [url.rsplit("/", 1)[-1]]
    assert second.json()["user"]["avatarUrl"] == url


def test_avatar_upload_rejects_wrong_type_and_oversize(client, settings):
    headers = _token(client)

    res = client.post("/api/auth/avatar", files={"avatar": ("notes.txt", b"hello", "text/plain")}, headers=headers)
    assert res.status_code == 400
    res = client.post("/api/auth/avatar", files={"avatar": ("fake.png", b"hello", "text/plain")}, headers=headers)
    assert res.status_code == 400

    big = b"\x00" * (AVATAR_MAX_BYTES + 1)
    res = client.post("/api/auth/avatar", files={"avatar": ("big.png", big, "image/png")}, headers=headers)
    assert res.status_code == 400
    assert "5MB" in res.json()["error"]

    avatars = settings.upload_dir / "avatars"
    assert not avatars.exists() or list(avatars.iterdir()) == []


def test_delete_account_endpoint(client):
    headers = _token(client)

    res = client.request("DELETE", "/api/auth/account", json={"confirmDelete": "nope"}, headers=headers)
    assert res.status_code == 400

    res = client.request(
        "DELETE", "/api/auth/account", json={"password": "Secret12", "confirmDelete": "DELETE MY ACCOUNT"}, headers=headers
    )
    assert res.status_code == 200
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_google_verify_without_client_id_is_a_server_error(client):
    res = client.post("/api/auth/google/verify", json={"credential": "header.payload.signature"})
    assert res.status_code == 500
    assert res.json()["error"] == "Server is not configured for Google OAuth"
