from __future__ import annotations

from typing import Any, Dict, Optional

from todu.constants import VISIBILITY_PRIVATE, VISIBILITY_TEAM
from todu.domain.activities.ports import ActivityRepository
from todu.domain.common.errors import ValidationError
from todu.domain.common.ports import Clock, IdGenerator
from todu.domain.lists.ports import ListRepository
from todu.domain.tasks.access import TaskAccess
from todu.models import Activity

DEFAULT_PAGE_SIZE = 50


class ActivityService:
    def __init__(
        self,
        repo: ActivityRepository,
        lists: ListRepository,
        access: TaskAccess,
        clock: Clock,
        ids: IdGenerator,
    ) -> None:
        self._repo = repo
        self._lists = lists
        self._access = access
        self._clock = clock
        self._ids = ids

    async def log(
        self,
        user_id: str,
        type_: str,
        description: str,
        task_id: Optional[str] = None,
        list_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        visibility: str = VISIBILITY_TEAM,
    ) -> Activity:
        if visibility not in (VISIBILITY_PRIVATE, VISIBILITY_TEAM):
            raise ValidationError(f"Invalid visibility: {visibility}")
        activity = Activity(
            id=self._ids.new_id(),
            user_id=user_id,
            task_id=task_id,
            list_id=list_id,
            type=type_,
            description=description,
            metadata=dict(metadata or {}),
            visibility=visibility,
            created_at=self._clock.now(),
        )
        await self._repo.insert(activity)
        return activity

    async def feed(self, user_id: str, limit: int = DEFAULT_PAGE_SIZE, skip: int = 0) -> list[Activity]:
        list_ids = await self._lists.visible_ids(user_id)
        return await self._repo.feed(user_id, list_ids, _limit(limit), max(skip, 0))

    async def for_list(self, user_id: str, list_id: str, limit: int = DEFAULT_PAGE_SIZE, skip: int = 0) -> list[Activity]:
        await self._access.readable_list(user_id, list_id)
        return await self._repo.for_list(list_id, _limit(limit), max(skip, 0))

    async def for_task(self, user_id: str, task_id: str, limit: int = DEFAULT_PAGE_SIZE, skip: int = 0) -> list[Activity]:
        await self._access.readable(user_id, task_id)
        return await self._repo.for_task(task_id, _limit(limit), max(skip, 0))


def _limit(limit: int) -> int:
    return limit if limit > 0 else DEFAULT_PAGE_SIZE
