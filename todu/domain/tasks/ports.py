from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from todu.models import Task, TaskQuery, TaskStats


class TaskRepository(ABC):
    @abstractmethod
    async def insert(self, task: Task) -> None: ...

    @abstractmethod
    async def save(self, task: Task) -> None: ...

    @abstractmethod
    async def get(self, task_id: str) -> Optional[Task]: ...

    @abstractmethod
    async def delete(self, task_id: str) -> None: ...

    @abstractmethod
    async def search(self, query: TaskQuery) -> list[Task]: ...

    @abstractmethod
    async def max_order(self, user_id: str) -> Optional[int]: ...

    @abstractmethod
    async def count_open_in_list(self, list_id: str) -> int: ...

    @abstractmethod
    async def move_list(self, from_list_id: str, to_list_id: Optional[str], now: datetime) -> int: ...

    @abstractmethod
    async def with_reminder_between(self, start: datetime, end: datetime) -> list[Task]: ...

    @abstractmethod
    async def due_between(self, start: datetime, end: datetime) -> list[Task]: ...

    @abstractmethod
    async def overdue(self, now: datetime) -> list[Task]: ...

    @abstractmethod
    async def stats(self, user_id: str, now: datetime) -> TaskStats: ...

    @abstractmethod
    async def delete_for_user(self, user_id: str) -> int: ...
