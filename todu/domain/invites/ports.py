from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from todu.models import ListInvite


class InviteRepository(ABC):
    @abstractmethod
    async def insert(self, invite: ListInvite) -> None: ...

    @abstractmethod
    async def save(self, invite: ListInvite) -> None: ...

    @abstractmethod
    async def get_pending_by_token(self, token: str) -> Optional[ListInvite]: ...

    @abstractmethod
    async def find_pending(self, list_id: str, email: str) -> Optional[ListInvite]: ...

    @abstractmethod
    async def expire_before(self, now: datetime) -> int: ...
