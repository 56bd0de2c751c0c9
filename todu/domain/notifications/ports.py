from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Sequence

from todu.models import Notification


class NotificationRepository(ABC):
    @abstractmethod
    async def insert(self, notification: Notification) -> None: ...

    @abstractmethod
    async def list_for_user(
        self, user_id: str, read: Optional[bool], limit: int, skip: int
    ) -> list[Notification]: ...

    @abstractmethod
    async def count_unread(self, user_id: str) -> int: ...

    @abstractmethod
    async def mark_read(self, ids: Sequence[str], user_id: str, now: datetime) -> int: ...

    @abstractmethod
    async def mark_all_read(self, user_id: str, now: datetime) -> int: ...

    @abstractmethod
    async def delete(self, ids: Sequence[str], user_id: str) -> int: ...

    @abstractmethod
    async def exists_since(self, user_id: str, task_id: str, type_: str, since: datetime) -> bool: ...

    @abstractmethod
    async def purge_read_before(self, cutoff: datetime) -> int: ...
