from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping, Optional

from todu.constants import RECURRENCE_FREQUENCIES, TASK_PRIORITIES, TASK_STATUS_DONE, TASK_STATUSES
from todu.domain.common.errors import ValidationError
from todu.domain.common.time import as_utc
from todu.models import Recurrence, Subtask, Task

MAX_TITLE_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 5000
MAX_TAG_LENGTH = 50


def touch_task(task: Task, now: datetime, **changes: Any) -> Task:
    """
    Apply changes the way every task save does: bump sync counters and keep
    completed_at in step with the status.
    """
    updated = replace(task, **changes)
    completed_at = updated.completed_at
    if updated.status == TASK_STATUS_DONE:
        if completed_at is None:
            completed_at = now
    else:
        completed_at = None
    return replace(
        updated,
        completed_at=completed_at,
        sync_version=task.sync_version + 1,
        last_modified=now,
        updated_at=now,
    )


def normalize_title(title: Optional[str]) -> str:
    t = (title or "").strip()
    if not t:
        raise ValidationError("Task title is required.")
    if len(t) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Task title is too long (max {MAX_TITLE_LENGTH} chars).")
    return t


def normalize_description(description: Optional[str]) -> Optional[str]:
    if description is None:
        return None
    d = description.strip()
    if len(d) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(f"Description is too long (max {MAX_DESCRIPTION_LENGTH} chars).")
    return d or None


def validate_status(status: str) -> str:
    if status not in TASK_STATUSES:
        raise ValidationError(f"Invalid status: {status}")
    return status


def validate_priority(priority: str) -> str:
    if priority not in TASK_PRIORITIES:
        raise ValidationError(f"Invalid priority: {priority}")
    return priority


def normalize_tags(tags: Optional[Iterable[str]]) -> tuple[str, ...]:
    out: list[str] = []
    for tag in tags or ():
        t = str(tag).strip()
        if not t:
            continue
        if len(t) > MAX_TAG_LENGTH:
            raise ValidationError(f"Tag is too long (max {MAX_TAG_LENGTH} chars).")
        if t not in out:
            out.append(t)
    return tuple(out)


def normalize_subtasks(
    subtasks: Optional[Iterable[Mapping[str, Any]]], new_id: Callable[[], str]
) -> tuple[Subtask, ...]:
    out: list[Subtask] = []
    for raw in subtasks or ():
        title = (raw.get("title") or "").strip()
        if not title:
            raise ValidationError("Subtask title is required.")
        out.append(Subtask(id=raw.get("id") or new_id(), title=title, done=bool(raw.get("done", False))))
    return tuple(out)


def normalize_recurrence(raw: Optional[Mapping[str, Any]]) -> Optional[Recurrence]:
    if not raw:
        return None
    frequency = raw.get("frequency")
    if frequency not in RECURRENCE_FREQUENCIES:
        raise ValidationError(f"Invalid recurrence frequency: {frequency}")
    interval = int(raw.get("interval") or 1)
    if interval < 1:
        raise ValidationError("Recurrence interval must be at least 1.")
    end_date = raw.get("end_date")
    return Recurrence(frequency=frequency, interval=interval, end_date=as_utc(end_date) if end_date else None)


def normalize_date(value: Optional[datetime]) -> Optional[datetime]:
    return as_utc(value) if value is not None else None
