from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from todu.models import Comment


class CommentRepository(ABC):
    @abstractmethod
    async def insert(self, comment: Comment) -> None: ...

    @abstractmethod
    async def save(self, comment: Comment) -> None: ...

    @abstractmethod
    async def get(self, comment_id: str) -> Optional[Comment]:
        """Comment with its author summary attached."""

    @abstractmethod
    async def delete(self, comment_id: str) -> None: ...

    @abstractmethod
    async def for_task(self, task_id: str) -> list[Comment]: ...
