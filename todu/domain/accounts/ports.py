from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Sequence

from todu.models import User, UserSummary


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    email: str


@dataclass(frozen=True)
class GoogleIdentity:
    google_id: str
    email: str
    name: Optional[str]
    picture: Optional[str]


class UserRepository(ABC):
    @abstractmethod
    async def insert(self, user: User) -> None: ...

    @abstractmethod
    async def save(self, user: User) -> None: ...

    @abstractmethod
    async def get(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]: ...

    @abstractmethod
    async def get_by_google_id_or_email(self, google_id: str, email: str) -> Optional[User]: ...

    @abstractmethod
    async def get_by_reset_token(self, token_hash: str, now: datetime) -> Optional[User]: ...

    @abstractmethod
    async def find_by_names(self, names: Sequence[str]) -> list[User]: ...

    @abstractmethod
    async def summaries(self, user_ids: Sequence[str]) -> Dict[str, UserSummary]: ...

    @abstractmethod
    async def delete(self, user_id: str) -> None: ...


class PasswordHasher(ABC):
    @abstractmethod
    def hash(self, password: str) -> str: ...

    @abstractmethod
    def verify(self, password: str, password_hash: str) -> bool: ...


class TokenIssuer(ABC):
    @abstractmethod
    def issue(self, user_id: str, email: str) -> str: ...

    @abstractmethod
    def decode(self, token: str) -> TokenClaims: ...


class GoogleIdentityVerifier(ABC):
    @abstractmethod
    async def verify(self, credential: str) -> GoogleIdentity: ...


class AvatarStorage(ABC):
    @abstractmethod
    async def save(self, user_id: str, extension: str, data: bytes) -> str: ...

    @abstractmethod
    async def delete(self, avatar_url: str) -> None: ...
