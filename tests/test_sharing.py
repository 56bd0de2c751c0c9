"""
Service-level tests for list sharing, task permissions and list bookkeeping.
"""
import asyncio

import pytest

from todu.domain.common.errors import NotFoundError, PermissionDeniedError, ValidationError
from todu.models import TaskQuery


async def _signup(c, name, email):
    return (await c.accounts.signup(name, email, "Secret12")).user


def test_signup_creates_starter_lists_with_one_default(container):
    async def run():
        user = await _signup(container, "Ann", "ann@example.com")
        lists = await container.lists.list_for_user(user.id)
        assert [lst.name for lst in lists] == ["Inbox", "Today", "Upcoming"]
        assert [lst.name for lst in lists if lst.is_default] == ["Inbox"]

    asyncio.run(run())


def test_viewer_cannot_modify_but_editor_can(container):
    async def run():
        owner = await _signup(container, "Owen", "owen@example.com")
        viewer = await _signup(container, "Vera", "vera@example.com")
        editor = await _signup(container, "Eddie", "eddie@example.com")
        stranger = await _signup(container, "Stan", "stan@example.com")

        team = await container.lists.create(owner.id, "Team")
        await container.lists.share(owner.id, team.id, "vera@example.com", "viewer")
        await container.lists.share(owner.id, team.id, "eddie@example.com", "editor")
        task = await container.tasks.create(owner.id, {"title": "Plan sprint", "list_id": team.id})

        # viewers can read but not write
        assert (await container.tasks.get(viewer.id, task.id)).id == task.id
        with pytest.raises(PermissionDeniedError):
            await container.tasks.update(viewer.id, task.id, {"status": "done"})
        with pytest.raises(PermissionDeniedError):
            await container.tasks.delete(viewer.id, task.id)

        updated = await container.tasks.update(editor.id, task.id, {"status": "in-progress"})
        assert updated.status == "in-progress"
        assert updated.sync_version == task.sync_version + 1

        # no access at all reads as missing
        with pytest.raises(NotFoundError):
            await container.tasks.get(stranger.id, task.id)

        # viewers cannot place tasks into the list either
        with pytest.raises(NotFoundError):
            await container.tasks.create(viewer.id, {"title": "Sneaky", "list_id": team.id})

    asyncio.run(run())


def test_shared_tasks_show_up_without_list_filter(container):
    async def run():
        owner = await _signup(container, "Owen", "owen@example.com")
        member = await _signup(container, "Mia", "mia@example.com")
        team = await container.lists.create(owner.id, "Team")
        await container.lists.share(owner.id, team.id, "mia@example.com", "viewer")
        shared = await container.tasks.create(owner.id, {"title": "Shared", "list_id": team.id})
        mine = await container.tasks.create(member.id, {"title": "Mine"})

        ids = {t.id for t in await container.tasks.list(TaskQuery(user_id=member.id))}
        assert ids == {shared.id, mine.id}

        inbox = await container.tasks.list(TaskQuery(user_id=member.id, no_list=True))
        assert [t.id for t in inbox] == [mine.id]

    asyncio.run(run())


def test_share_rejects_owner_and_existing_collaborator(container):
    async def run():
        owner = await _signup(container, "Owen", "owen@example.com")
        await _signup(container, "Mia", "mia@example.com")
        team = await container.lists.create(owner.id, "Team")

        with pytest.raises(ValidationError):
            await container.lists.share(owner.id, team.id, "owen@example.com", "viewer")

        outcome = await container.lists.share(owner.id, team.id, "mia@example.com", "editor")
        assert outcome.invite is None
        assert [(c.user.email, c.role) for c in outcome.list.shared_with] == [("mia@example.com", "editor")]

        with pytest.raises(ValidationError):
            await container.lists.share(owner.id, team.id, "mia@example.com", "viewer")

    asyncio.run(run())


def test_share_with_unknown_email_creates_invite(container, mailer):
    async def run():
        owner = await _signup(container, "Owen", "owen@example.com")
        team = await container.lists.create(owner.id, "Team")

        first = await container.lists.share(owner.id, team.id, "New@Example.com", "viewer")
        assert first.invite is not None
        assert first.invite.email == "new@example.com"
        assert len(first.invite.token) == 64
        assert mailer.sent[-1]["to"] == "new@example.com"

        # a second share reuses the pending invite
        second = await container.lists.share(owner.id, team.id, "new@example.com", "editor")
        assert second.invite.token == first.invite.token
        assert second.invite.role == "editor"

    asyncio.run(run())


def test_delete_list_moves_tasks_and_recounts(container):
    async def run():
        owner = await _signup(container, "Owen", "owen@example.com")
        old = await container.lists.create(owner.id, "Old")
        target = await container.lists.create(owner.id, "Target")
        await container.tasks.create(owner.id, {"title": "open", "list_id": old.id})
        await container.tasks.create(owner.id, {"title": "closed", "list_id": old.id, "status": "done"})
        await container.tasks.create(owner.id, {"title": "already there", "list_id": target.id})

        assert (await container.lists.get(owner.id, old.id)).task_count == 1

        await container.lists.delete(owner.id, old.id, target.id)

        with pytest.raises(NotFoundError):
            await container.lists.get(owner.id, old.id)
        moved = await container.tasks.list(TaskQuery(user_id=owner.id, list_id=target.id))
        assert sorted(t.title for t in moved) == ["already there", "closed", "open"]
        assert (await container.lists.get(owner.id, target.id)).task_count == 2

    asyncio.run(run())


def test_delete_list_without_target_leaves_tasks_unfiled(container):
    async def run():
        owner = await _signup(container, "Owen", "owen@example.com")
        old = await container.lists.create(owner.id, "Old")
        task = await container.tasks.create(owner.id, {"title": "orphan", "list_id": old.id})

        await container.lists.delete(owner.id, old.id)

        assert (await container.tasks.get(owner.id, task.id)).list_id is None

    asyncio.run(run())


def test_default_list_cannot_be_deleted(container):
    async def run():
        owner = await _signup(container, "Owen", "owen@example.com")
        inbox = [lst for lst in await container.lists.list_for_user(owner.id) if lst.is_default][0]
        with pytest.raises(ValidationError):
            await container.lists.delete(owner.id, inbox.id)

    asyncio.run(run())


def test_only_one_default_list(container):
    async def run():
        owner = await _signup(container, "Owen", "owen@example.com")
        work = await container.lists.create(owner.id, "Work", is_default=True)

        defaults = [lst.id for lst in await container.lists.list_for_user(owner.id) if lst.is_default]
        assert defaults == [work.id]

        inbox = [lst for lst in await container.lists.list_for_user(owner.id) if lst.name == "Inbox"][0]
        await container.lists.update(owner.id, inbox.id, {"is_default": True})
        defaults = [lst.id for lst in await container.lists.list_for_user(owner.id) if lst.is_default]
        assert defaults == [inbox.id]

        with pytest.raises(ValidationError):
            await container.lists.update(owner.id, inbox.id, {"is_default": False})

    asyncio.run(run())


def test_collaborator_can_leave_and_owner_can_remove(container):
    async def run():
        owner = await _signup(container, "Owen", "owen@example.com")
        mia = await _signup(container, "Mia", "mia@example.com")
        raj = await _signup(container, "Raj", "raj@example.com")
        team = await container.lists.create(owner.id, "Team")
        await container.lists.share(owner.id, team.id, "mia@example.com", "viewer")
        await container.lists.share(owner.id, team.id, "raj@example.com", "viewer")

        await container.lists.leave(mia.id, team.id)
        with pytest.raises(NotFoundError):
            await container.lists.leave(mia.id, team.id)
        with pytest.raises(NotFoundError):
            await container.lists.leave(owner.id, team.id)

        updated = await container.lists.remove_collaborator(owner.id, team.id, raj.id)
        assert updated.shared_with == ()
        with pytest.raises(NotFoundError):
            await container.lists.remove_collaborator(owner.id, team.id, raj.id)

    asyncio.run(run())


def test_activity_feed_includes_team_entries_of_shared_lists(container):
    async def run():
        owner = await _signup(container, "Owen", "owen@example.com")
        member = await _signup(container, "Mia", "mia@example.com")
        outsider = await _signup(container, "Olga", "olga@example.com")
        team = await container.lists.create(owner.id, "Team")
        await container.lists.share(owner.id, team.id, "mia@example.com", "viewer")
        task = await container.tasks.create(owner.id, {"title": "Kickoff", "list_id": team.id})

        feed = await container.activities.feed(member.id)
        created = [a for a in feed if a.type == "task_created"]
        assert [a.task_id for a in created] == [task.id]
        assert created[0].actor.name == "Owen"
        assert created[0].list_name == "Team"

        assert [a.type for a in await container.activities.for_task(member.id, task.id)] == ["task_created"]
        with pytest.raises(NotFoundError):
            await container.activities.for_list(outsider.id, team.id)

    asyncio.run(run())
