from __future__ import annotations

from typing import Optional, Tuple

from todu.constants import ROLE_EDITOR, ROLE_OWNER
from todu.domain.common.errors import NotFoundError, PermissionDeniedError
from todu.domain.lists.ports import ListRepository
from todu.domain.tasks.ports import TaskRepository
from todu.models import Task, TaskList


def list_role(lst: Optional[TaskList], user_id: str) -> Optional[str]:
    """'owner', the collaborator role, or None when the user has no access."""
    if lst is None:
        return None
    if lst.user_id == user_id:
        return ROLE_OWNER
    for c in lst.shared_with:
        if c.user_id == user_id:
            return c.role
    return None


def can_read_task(task: Task, lst: Optional[TaskList], user_id: str) -> bool:
    if task.user_id == user_id:
        return True
    return list_role(lst, user_id) is not None


def can_write_task(task: Task, lst: Optional[TaskList], user_id: str) -> bool:
    if task.user_id == user_id:
        return True
    return list_role(lst, user_id) in (ROLE_OWNER, ROLE_EDITOR)


class TaskAccess:
    """
    Loads tasks/lists and applies the sharing rules.
    Not readable -> NotFoundError, readable but not writable -> PermissionDeniedError.
    """

    def __init__(self, tasks: TaskRepository, lists: ListRepository) -> None:
        self._tasks = tasks
        self._lists = lists

    async def _load(self, task_id: str) -> Tuple[Optional[Task], Optional[TaskList]]:
        task = await self._tasks.get(task_id)
        if task is None:
            return None, None
        lst = await self._lists.get(task.list_id) if task.list_id else None
        return task, lst

    async def find_readable(self, user_id: str, task_id: str) -> Optional[Task]:
        task, lst = await self._load(task_id)
        if task is None or not can_read_task(task, lst, user_id):
            return None
        return task

    async def readable(self, user_id: str, task_id: str) -> Task:
        task = await self.find_readable(user_id, task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    async def writable(self, user_id: str, task_id: str) -> Task:
        task, lst = await self._load(task_id)
        if task is None or not can_read_task(task, lst, user_id):
            raise NotFoundError("Task not found")
        if not can_write_task(task, lst, user_id):
            raise PermissionDeniedError("You do not have permission to modify this task")
        return task

    async def readable_list(self, user_id: str, list_id: str) -> TaskList:
        lst = await self._lists.get(list_id)
        if list_role(lst, user_id) is None:
            raise NotFoundError("List not found")
        return lst

    async def writable_list(self, user_id: str, list_id: str) -> TaskList:
        """A list the user may place tasks into (owner or editor)."""
        lst = await self._lists.get(list_id)
        if list_role(lst, user_id) not in (ROLE_OWNER, ROLE_EDITOR):
            raise NotFoundError("List not found")
        return lst
