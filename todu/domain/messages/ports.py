from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from todu.models import Conversation, Message


class MessageRepository(ABC):
    @abstractmethod
    async def insert(self, message: Message) -> None: ...

    @abstractmethod
    async def get(self, message_id: str) -> Optional[Message]: ...

    @abstractmethod
    async def mark_read(self, message_id: str, now: datetime) -> None: ...

    @abstractmethod
    async def conversation(self, conversation_id: str, limit: int) -> list[Message]: ...

    @abstractmethod
    async def mark_conversation_read(self, conversation_id: str, receiver_id: str, now: datetime) -> int: ...

    @abstractmethod
    async def conversations_for(self, user_id: str) -> list[Conversation]: ...

    @abstractmethod
    async def unread_count(self, user_id: str) -> int: ...
