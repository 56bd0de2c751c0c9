from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from todu.models import TaskList


class ListRepository(ABC):
    @abstractmethod
    async def insert(self, lst: TaskList) -> None: ...

    @abstractmethod
    async def save(self, lst: TaskList) -> None: ...

    @abstractmethod
    async def get(self, list_id: str) -> Optional[TaskList]: ...

    @abstractmethod
    async def delete(self, list_id: str) -> None: ...

    @abstractmethod
    async def for_user(self, user_id: str, include_archived: bool) -> list[TaskList]: ...

    @abstractmethod
    async def visible_ids(self, user_id: str) -> list[str]:
        """Ids of lists the user owns or collaborates on."""

    @abstractmethod
    async def shared_ids(self, user_id: str) -> list[str]:
        """Ids of lists shared with the user (not owned)."""

    @abstractmethod
    async def max_order(self, user_id: str) -> Optional[int]: ...

    @abstractmethod
    async def unset_default(self, user_id: str, now: datetime, except_id: Optional[str] = None) -> int: ...

    @abstractmethod
    async def add_collaborator(self, list_id: str, user_id: str, role: str, invited_at: datetime) -> None: ...

    @abstractmethod
    async def remove_collaborator(self, list_id: str, user_id: str) -> bool: ...

    @abstractmethod
    async def delete_for_user(self, user_id: str) -> int: ...
