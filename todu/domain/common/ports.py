from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime: ...

    @abstractmethod
    def local_now(self) -> datetime: ...


class IdGenerator(ABC):
    @abstractmethod
    def new_id(self) -> str: ...


class Mailer(ABC):
    @abstractmethod
    async def send(self, to: str, subject: str, text: str, html: Optional[str] = None) -> None: ...
