"""
Comment fan-out and the notification sweeps.
"""
import asyncio
from datetime import timedelta

import pytest

from todu.api.container import build_scheduler
from todu.domain.common.errors import NotFoundError, PermissionDeniedError, ValidationError


async def _signup(c, name, email):
    return (await c.accounts.signup(name, email, "Secret12")).user


async def _of_type(c, user_id, type_):
    return [n for n in await c.notifications.list_for_user(user_id) if n.type == type_]


def test_mention_creates_exactly_one_notification(container):
    async def run():
        owner = await _signup(container, "owen", "owen@example.com")
        bob = await _signup(container, "bob", "bob@example.com")
        task = await container.tasks.create(owner.id, {"title": "Review draft"})

        comment = await container.comments.create(owner.id, task.id, "@bob please check, thanks @bob @owen")

        assert comment.mentions == (bob.id, owner.id)
        assert comment.author.name == "owen"
        mentions = await _of_type(container, bob.id, "mention")
        assert len(mentions) == 1
        assert mentions[0].task_id == task.id
        # the author is never notified about their own comment
        assert await container.notifications.list_for_user(owner.id) == []

    asyncio.run(run())


def test_task_owner_gets_comment_notification(container):
    async def run():
        owner = await _signup(container, "owen", "owen@example.com")
        await _signup(container, "eve", "eve@example.com")
        team = await container.lists.create(owner.id, "Team")
        await container.lists.share(owner.id, team.id, "eve@example.com", "editor")
        task = await container.tasks.create(owner.id, {"title": "Ship it", "list_id": team.id})

        eve = (await container.accounts.login("eve@example.com", "Secret12")).user
        await container.comments.create(eve.id, task.id, "Done on my side")

        comments = await _of_type(container, owner.id, "comment")
        assert len(comments) == 1
        assert "eve" in comments[0].message

        listed = await container.comments.for_task(owner.id, task.id)
        assert [c.content for c in listed] == ["Done on my side"]

    asyncio.run(run())


def test_comment_rules(container):
    async def run():
        owner = await _signup(container, "owen", "owen@example.com")
        other = await _signup(container, "olga", "olga@example.com")
        task = await container.tasks.create(owner.id, {"title": "Private"})

        with pytest.raises(ValidationError):
            await container.comments.create(owner.id, task.id, "   ")
        with pytest.raises(PermissionDeniedError):
            await container.comments.create(other.id, task.id, "let me in")

        comment = await container.comments.create(owner.id, task.id, "first")
        with pytest.raises(NotFoundError):
            await container.comments.update(other.id, comment.id, "hijack")
        edited = await container.comments.update(owner.id, comment.id, "second")
        assert edited.content == "second"
        await container.comments.delete(owner.id, comment.id)
        assert await container.comments.for_task(owner.id, task.id) == []

    asyncio.run(run())


def test_overdue_sweep_is_idempotent(container, clock):
    async def run():
        owner = await _signup(container, "owen", "owen@example.com")
        late = await container.tasks.create(owner.id, {"title": "Late", "due_date": clock.now() - timedelta(hours=2)})
        await container.tasks.create(
            owner.id, {"title": "Late but done", "due_date": clock.now() - timedelta(hours=2), "status": "done"}
        )

        first = await container.sweeps.process_overdue_tasks()
        second = await container.sweeps.process_overdue_tasks()

        assert first.processed == 1
        assert second.processed == 0
        overdue = await _of_type(container, owner.id, "task_overdue")
        assert [n.task_id for n in overdue] == [late.id]

        # a day later it is reported again
        clock.advance(hours=25)
        assert (await container.sweeps.process_overdue_tasks()).processed == 1

    asyncio.run(run())


def test_reminder_sweep_notifies_and_emails_once(container, clock, mailer):
    async def run():
        owner = await _signup(container, "owen", "owen@example.com")
        await container.tasks.create(
            owner.id, {"title": "Call mum", "reminder_date": clock.now() + timedelta(seconds=30)}
        )

        result = await container.sweeps.process(kind="reminders")
        assert result == {"reminders": {"processed": 1, "errors": 0}}
        assert [m["to"] for m in mailer.sent] == ["owen@example.com"]

        again = await container.sweeps.process(kind="reminders")
        assert again["reminders"]["processed"] == 0
        assert len(await _of_type(container, owner.id, "reminder")) == 1

    asyncio.run(run())


def test_reminder_email_failure_does_not_fail_sweep(container, clock, mailer):
    async def run():
        owner = await _signup(container, "owen", "owen@example.com")
        await container.tasks.create(
            owner.id, {"title": "Call mum", "reminder_date": clock.now() + timedelta(seconds=10)}
        )
        mailer.fail = True

        result = await container.sweeps.process_due_reminders()

        assert result.processed == 1
        assert result.errors == 0
        assert len(await _of_type(container, owner.id, "reminder")) == 1

    asyncio.run(run())


def test_due_today_sweep(container, clock):
    async def run():
        owner = await _signup(container, "owen", "owen@example.com")
        await container.tasks.create(owner.id, {"title": "Today", "due_date": clock.now()})
        await container.tasks.create(owner.id, {"title": "Next week", "due_date": clock.now() + timedelta(days=7)})

        assert (await container.sweeps.process_tasks_due_today()).processed == 1
        assert (await container.sweeps.process_tasks_due_today()).processed == 0

    asyncio.run(run())


def test_process_rejects_unknown_kind(container):
    with pytest.raises(ValidationError):
        asyncio.run(container.sweeps.process(kind="weekly"))


def test_mark_read_and_purge(container, clock):
    async def run():
        owner = await _signup(container, "owen", "owen@example.com")
        first = await container.notifications.create(owner.id, "system", "Hello", "World")
        await container.notifications.create(owner.id, "system", "Second", "Unread")
        assert await container.notifications.unread_count(owner.id) == 2

        with pytest.raises(ValidationError):
            await container.notifications.mark_read(owner.id, [])
        assert await container.notifications.mark_read(owner.id, [first.id]) == 1
        assert await container.notifications.unread_count(owner.id) == 1
        assert [n.id for n in await container.notifications.list_for_user(owner.id, read=True)] == [first.id]

        clock.advance(days=31)
        assert await container.sweeps.purge_read_notifications() == 1
        remaining = await container.notifications.list_for_user(owner.id)
        assert [n.title for n in remaining] == ["Second"]

    asyncio.run(run())


def test_scheduled_reminders_leave_no_gaps_between_runs(container, clock):
    async def run():
        owner = await _signup(container, "owen", "owen@example.com")
        start = clock.now()
        await container.tasks.create(owner.id, {"title": "Stretch", "reminder_date": start + timedelta(seconds=124)})

        loop = build_scheduler(container.sweeps, clock)
        # polling every 7s never lines up with whole minutes
        for _ in range(60):
            clock.advance(seconds=7)
            await loop.tick()

        assert len(await _of_type(container, owner.id, "reminder")) == 1

    asyncio.run(run())


def test_reminder_sweep_picks_up_where_the_last_one_ended(container, clock):
    async def run():
        owner = await _signup(container, "owen", "owen@example.com")
        await container.sweeps.process_due_reminders()
        await container.tasks.create(
            owner.id, {"title": "Missed", "reminder_date": clock.now() + timedelta(seconds=70)}
        )

        clock.advance(seconds=75)
        assert (await container.sweeps.process_due_reminders()).processed == 1
        assert (await container.sweeps.process_due_reminders()).processed == 0

    asyncio.run(run())
