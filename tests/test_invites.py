"""
List invitations sent to people without an account.
"""
import asyncio

import pytest

from todu.domain.common.errors import GoneError, NotFoundError, PermissionDeniedError


async def _owner_with_invite(c, email="newbie@example.com", role="editor"):
    owner = (await c.accounts.signup("Owen", "owen@example.com", "Secret12")).user
    team = await c.lists.create(owner.id, "Team")
    outcome = await c.lists.share(owner.id, team.id, email, role)
    return owner, team, outcome.invite


def test_invite_details_are_public(container):
    async def run():
        owner, team, invite = await _owner_with_invite(container)
        details = await container.invites.get(invite.token)
        assert details.invite.email == "newbie@example.com"
        assert details.list.id == team.id
        assert details.invited_by.id == owner.id

        with pytest.raises(NotFoundError):
            await container.invites.get("0" * 64)

    asyncio.run(run())


def test_accept_adds_collaborator_and_notifies(container):
    async def run():
        owner, team, invite = await _owner_with_invite(container)
        newbie = (await container.accounts.signup("Nina", "newbie@example.com", "Secret12")).user

        accepted = await container.invites.accept(newbie.id, invite.token)

        assert not accepted.already_shared
        assert [(c.user_id, c.role) for c in accepted.list.shared_with] == [(newbie.id, "editor")]
        shared = [n for n in await container.notifications.list_for_user(newbie.id) if n.type == "shared_list"]
        assert len(shared) == 1

        # the token is single use
        with pytest.raises(NotFoundError):
            await container.invites.accept(newbie.id, invite.token)

        # and the new member can now work in the list
        task = await container.tasks.create(newbie.id, {"title": "Hello team", "list_id": team.id})
        assert task.list_id == team.id

    asyncio.run(run())


def test_accept_with_other_email_is_forbidden(container):
    async def run():
        _, _, invite = await _owner_with_invite(container)
        intruder = (await container.accounts.signup("Ivan", "ivan@example.com", "Secret12")).user

        with pytest.raises(PermissionDeniedError) as info:
            await container.invites.accept(intruder.id, invite.token)
        assert info.value.details == {"invitedEmail": "newbie@example.com", "yourEmail": "ivan@example.com"}

    asyncio.run(run())


def test_expired_invite_is_gone(container, clock):
    async def run():
        _, _, invite = await _owner_with_invite(container)
        clock.advance(days=8)

        with pytest.raises(GoneError):
            await container.invites.get(invite.token)
        # once marked expired it is no longer found at all
        with pytest.raises(NotFoundError):
            await container.invites.get(invite.token)

    asyncio.run(run())


def test_expire_sweep_marks_old_invites(container, clock):
    async def run():
        _, _, invite = await _owner_with_invite(container)
        assert await container.sweeps.expire_invites() == 0

        clock.advance(days=7, seconds=1)
        assert await container.sweeps.expire_invites() == 1
        with pytest.raises(NotFoundError):
            await container.invites.get(invite.token)

    asyncio.run(run())
