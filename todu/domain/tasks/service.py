from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Optional, Sequence

from todu.constants import (
    ACTIVITY_TASK_CREATED,
    ACTIVITY_TASK_DELETED,
    ACTIVITY_TASK_STATUS_CHANGED,
    ACTIVITY_TASK_UPDATED,
    PRIORITY_MEDIUM,
    TASK_STATUS_TODO,
)
from todu.domain.activities.service import ActivityService
from todu.domain.common.errors import NotFoundError, PermissionDeniedError
from todu.domain.common.ports import Clock, IdGenerator
from todu.domain.lists.ports import ListRepository
from todu.domain.lists.service import ListService
from todu.domain.tasks.access import TaskAccess
from todu.domain.tasks.ports import TaskRepository
from todu.domain.tasks.rules import (
    normalize_date,
    normalize_description,
    normalize_recurrence,
    normalize_subtasks,
    normalize_tags,
    normalize_title,
    touch_task,
    validate_priority,
    validate_status,
)
from todu.models import Task, TaskQuery, TaskStats, UpdateBatch

logger = logging.getLogger(__name__)


class TaskService:
    """
    Task CRUD with shared-list access checks. After every write the
    denormalized task count of the affected lists is recomputed.
    """

    def __init__(
        self,
        repo: TaskRepository,
        lists: ListRepository,
        list_service: ListService,
        access: TaskAccess,
        activities: ActivityService,
        clock: Clock,
        ids: IdGenerator,
    ) -> None:
        self._repo = repo
        self._lists = lists
        self._list_service = list_service
        self._access = access
        self._activities = activities
        self._clock = clock
        self._ids = ids

    async def list(self, query: TaskQuery) -> list[Task]:
        if query.list_id is not None:
            await self._access.readable_list(query.user_id, query.list_id)
        elif not query.no_list:
            visible = await self._lists.visible_ids(query.user_id)
            query = replace(query, visible_list_ids=tuple(visible))
        return await self._repo.search(query)

    async def get(self, user_id: str, task_id: str) -> Task:
        return await self._access.readable(user_id, task_id)

    async def stats(self, user_id: str) -> TaskStats:
        return await self._repo.stats(user_id, self._clock.now())

    def _normalize(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for key, value in fields.items():
            if key == "title":
                out["title"] = normalize_title(value)
            elif key == "description":
                out["description"] = normalize_description(value)
            elif key == "status":
                out["status"] = validate_status(value)
            elif key == "priority":
                out["priority"] = validate_priority(value)
            elif key == "tags":
                out["tags"] = normalize_tags(value)
            elif key == "subtasks":
                out["subtasks"] = normalize_subtasks(value, self._ids.new_id)
            elif key in ("due_date", "reminder_date"):
                out[key] = normalize_date(value)
            elif key == "recurrence":
                out["recurrence"] = normalize_recurrence(value)
            elif key == "list_id":
                out["list_id"] = value or None
            elif key == "order" and value is not None:
                out["order"] = int(value)
        return out

    async def create(self, user_id: str, fields: Dict[str, Any]) -> Task:
        data = self._normalize(fields)
        if "title" not in data:
            data["title"] = normalize_title(None)

        list_id = data.get("list_id")
        if list_id:
            await self._access.writable_list(user_id, list_id)

        order = data.get("order")
        if order is None:
            last = await self._repo.max_order(user_id)
            order = last + 1 if last is not None else 0

        now = self._clock.now()
        task = Task(
            id=self._ids.new_id(),
            user_id=user_id,
            list_id=list_id,
            title=data["title"],
            description=data.get("description"),
            status=data.get("status", TASK_STATUS_TODO),
            priority=data.get("priority", PRIORITY_MEDIUM),
            tags=data.get("tags", ()),
            subtasks=data.get("subtasks", ()),
            due_date=data.get("due_date"),
            reminder_date=data.get("reminder_date"),
            recurrence=data.get("recurrence"),
            order=order,
            completed_at=None,
            sync_version=0,
            last_modified=now,
            created_at=now,
            updated_at=now,
        )
        task = touch_task(task, now)
        await self._repo.insert(task)
        await self._list_service.update_task_count(task.list_id)

        await self._activities.log(
            user_id=user_id,
            type_=ACTIVITY_TASK_CREATED,
            description=f'Created task "{task.title}"',
            task_id=task.id,
            list_id=task.list_id,
        )
        return task

    async def update(self, user_id: str, task_id: str, changes: Dict[str, Any]) -> Task:
        task = await self._access.writable(user_id, task_id)
        data = self._normalize(changes)

        new_list_id = data.get("list_id", task.list_id)
        if "list_id" in data and new_list_id and new_list_id != task.list_id:
            await self._access.writable_list(user_id, new_list_id)

        updated = touch_task(task, self._clock.now(), **data)
        await self._repo.save(updated)

        if task.list_id and task.list_id != updated.list_id:
            await self._list_service.update_task_count(task.list_id)
        await self._list_service.update_task_count(updated.list_id)

        if updated.status != task.status:
            await self._activities.log(
                user_id=user_id,
                type_=ACTIVITY_TASK_STATUS_CHANGED,
                description=f'Changed status of "{updated.title}" from {task.status} to {updated.status}',
                task_id=updated.id,
                list_id=updated.list_id,
                metadata={"from": task.status, "to": updated.status},
            )
        else:
            await self._activities.log(
                user_id=user_id,
                type_=ACTIVITY_TASK_UPDATED,
                description=f'Updated task "{updated.title}"',
                task_id=updated.id,
                list_id=updated.list_id,
                metadata={"fields": sorted(data.keys())},
            )
        return updated

    async def delete(self, user_id: str, task_id: str) -> None:
        task = await self._access.writable(user_id, task_id)
        await self._repo.delete(task.id)
        await self._list_service.update_task_count(task.list_id)
        await self._activities.log(
            user_id=user_id,
            type_=ACTIVITY_TASK_DELETED,
            description=f'Deleted task "{task.title}"',
            list_id=task.list_id,
            metadata={"taskId": task.id, "taskTitle": task.title},
        )

    async def bulk_update(self, user_id: str, batches: Sequence[UpdateBatch]) -> list[Task]:
        """Apply entries one by one; entries the user cannot write are skipped."""
        out: list[Task] = []
        for batch in batches:
            try:
                out.append(await self.update(user_id, batch.id, batch.updates))
            except (NotFoundError, PermissionDeniedError) as e:
                logger.info("Bulk update skipped task_id=%s: %s", batch.id, e.message)
        return out

    async def find_readable(self, user_id: str, task_id: str) -> Optional[Task]:
        return await self._access.find_readable(user_id, task_id)
