"""
Unit tests for the pure helpers: mentions, conversation ids, durations and field rules.
"""
from datetime import datetime, timedelta, timezone

import pytest

from todu.config import parse_duration
from todu.domain.accounts.rules import avatar_extension, signup_problems
from todu.domain.comments.mentions import extract_mentions
from todu.domain.common.errors import ValidationError
from todu.domain.messages.service import conversation_id_for
from todu.domain.tasks.rules import normalize_tags, touch_task
from todu.models import Task


def _task(**overrides) -> Task:
    now = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)
    fields = dict(
        id="t1",
        user_id="u1",
        list_id=None,
        title="Write report",
        description=None,
        status="todo",
        priority="medium",
        tags=(),
        subtasks=(),
        due_date=None,
        reminder_date=None,
        recurrence=None,
        order=0,
        completed_at=None,
        sync_version=3,
        last_modified=now,
        created_at=now,
        updated_at=now,
    )
    fields.update(overrides)
    return Task(**fields)


def test_extract_mentions_dedupes_in_order():
    assert extract_mentions("hi @bob and @alice, again @bob") == ["bob", "alice"]


def test_extract_mentions_ignores_plain_at_sign():
    assert extract_mentions("mail me at x @ y") == []
    assert extract_mentions("") == []


def test_conversation_id_is_symmetric():
    assert conversation_id_for("b", "a") == "a_b"
    assert conversation_id_for("a", "b") == conversation_id_for("b", "a")


def test_parse_duration_units():
    assert parse_duration("7d") == timedelta(days=7)
    assert parse_duration("12h") == timedelta(hours=12)
    assert parse_duration("30m") == timedelta(minutes=30)
    assert parse_duration("3600") == timedelta(seconds=3600)


def test_parse_duration_rejects_garbage():
    with pytest.raises(RuntimeError):
        parse_duration("next week")


def test_signup_problems_valid_input():
    assert signup_problems("Ann", "ann@example.com", "Secret12") == []


def test_signup_problems_short_password():
    problems = signup_problems("Ann", "ann@example.com", "abc")
    assert {p["field"] for p in problems} == {"password"}
    assert any("at least 6" in p["message"] for p in problems)


def test_signup_problems_reports_every_field():
    problems = signup_problems("", "not-an-email", "alllowercase1")
    assert [p["field"] for p in problems] == ["name", "email", "password"]


def test_touch_task_sets_and_clears_completed_at():
    task = _task()
    later = task.created_at + timedelta(hours=1)

    done = touch_task(task, later, status="done")
    assert done.completed_at == later
    assert done.sync_version == 4
    assert done.last_modified == later

    # completing twice keeps the first completion time
    again = touch_task(done, later + timedelta(hours=1), status="done")
    assert again.completed_at == later

    reopened = touch_task(again, later + timedelta(hours=2), status="todo")
    assert reopened.completed_at is None
    assert reopened.sync_version == 6


def test_normalize_tags_strips_and_dedupes():
    assert normalize_tags([" work ", "work", "", "home"]) == ("work", "home")


def test_avatar_extension_checks_type_and_size():
    assert avatar_extension("me.PNG", "image/png", 1024) == "png"
    with pytest.raises(ValidationError):
        avatar_extension("me.exe", "application/octet-stream", 1024)
    with pytest.raises(ValidationError):
        avatar_extension("me.png", "image/png", 6 * 1024 * 1024)
