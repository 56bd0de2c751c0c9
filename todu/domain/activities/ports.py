from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from todu.models import Activity


class ActivityRepository(ABC):
    @abstractmethod
    async def insert(self, activity: Activity) -> None: ...

    @abstractmethod
    async def feed(self, user_id: str, list_ids: Sequence[str], limit: int, skip: int) -> list[Activity]: ...

    @abstractmethod
    async def for_list(self, list_id: str, limit: int, skip: int) -> list[Activity]: ...

    @abstractmethod
    async def for_task(self, task_id: str, limit: int, skip: int) -> list[Activity]: ...
