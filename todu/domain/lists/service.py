from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from todu.constants import (
    ACTIVITY_COLLABORATOR_ADDED,
    ACTIVITY_COLLABORATOR_REMOVED,
    ACTIVITY_LIST_CREATED,
    ACTIVITY_LIST_SHARED,
    DEFAULT_LIST_COLOR,
    DEFAULT_LIST_ICON,
    NOTIFY_SHARED_LIST,
    ROLE_OWNER,
    ROLE_VIEWER,
    STARTER_LISTS,
)
from todu.domain.accounts.ports import UserRepository
from todu.domain.activities.service import ActivityService
from todu.domain.common.errors import NotFoundError, ValidationError
from todu.domain.common.ports import Clock, IdGenerator
from todu.domain.invites.service import InviteService
from todu.domain.lists.ports import ListRepository
from todu.domain.lists.rules import normalize_description, normalize_name, touch_list, validate_share_role
from todu.domain.notifications.service import NotificationService
from todu.domain.tasks.access import list_role
from todu.domain.tasks.ports import TaskRepository
from todu.models import ListInvite, TaskList, UpdateBatch

logger = logging.getLogger(__name__)

# request field -> TaskList attribute
_EDITABLE_FIELDS = {
    "name": "name",
    "description": "description",
    "color": "color",
    "icon": "icon",
    "order": "order",
    "is_default": "is_default",
    "is_archived": "is_archived",
}


@dataclass(frozen=True)
class ShareOutcome:
    """Either the updated list (existing user) or a pending invite (unknown email)."""
    list: TaskList
    invite: Optional[ListInvite] = None

    @property
    def message(self) -> str:
        if self.invite is not None:
            return f"Invitation sent to {self.invite.email}"
        return "List shared successfully"


class ListService:
    def __init__(
        self,
        repo: ListRepository,
        tasks: TaskRepository,
        users: UserRepository,
        activities: ActivityService,
        notifications: NotificationService,
        invites: InviteService,
        clock: Clock,
        ids: IdGenerator,
    ) -> None:
        self._repo = repo
        self._tasks = tasks
        self._users = users
        self._activities = activities
        self._notifications = notifications
        self._invites = invites
        self._clock = clock
        self._ids = ids

    async def create_starter_lists(self, user_id: str) -> list[TaskList]:
        now = self._clock.now()
        out: list[TaskList] = []
        for i, starter in enumerate(STARTER_LISTS):
            lst = TaskList(
                id=self._ids.new_id(),
                user_id=user_id,
                name=starter["name"],
                description=starter["description"],
                color=starter["color"],
                icon=starter["icon"],
                order=i,
                is_default=starter["is_default"],
                is_archived=False,
                task_count=0,
                sync_version=1,
                last_modified=now,
                created_at=now,
                updated_at=now,
            )
            await self._repo.insert(lst)
            out.append(lst)
        return out

    async def list_for_user(self, user_id: str, include_archived: bool = False) -> list[TaskList]:
        return await self._repo.for_user(user_id, include_archived)

    async def get(self, user_id: str, list_id: str) -> TaskList:
        lst = await self._repo.get(list_id)
        if list_role(lst, user_id) is None:
            raise NotFoundError("List not found")
        return lst

    async def _owned(self, user_id: str, list_id: str, message: str = "List not found") -> TaskList:
        lst = await self._repo.get(list_id)
        if lst is None or lst.user_id != user_id:
            raise NotFoundError(message)
        return lst

    async def create(
        self,
        user_id: str,
        name: str,
        description: Optional[str] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
        is_default: bool = False,
        order: Optional[int] = None,
    ) -> TaskList:
        name = normalize_name(name)
        description = normalize_description(description)
        now = self._clock.now()

        if is_default:
            await self._repo.unset_default(user_id, now)
        if order is None:
            last = await self._repo.max_order(user_id)
            order = last + 1 if last is not None else 0

        lst = TaskList(
            id=self._ids.new_id(),
            user_id=user_id,
            name=name,
            description=description,
            color=color or DEFAULT_LIST_COLOR,
            icon=icon or DEFAULT_LIST_ICON,
            order=order,
            is_default=is_default,
            is_archived=False,
            task_count=0,
            sync_version=1,
            last_modified=now,
            created_at=now,
            updated_at=now,
        )
        await self._repo.insert(lst)
        await self._activities.log(
            user_id=user_id,
            type_=ACTIVITY_LIST_CREATED,
            description=f'Created list "{lst.name}"',
            list_id=lst.id,
        )
        return lst

    async def _apply(self, lst: TaskList, changes: Dict[str, Any]) -> TaskList:
        fields: Dict[str, Any] = {}
        for key, value in changes.items():
            attr = _EDITABLE_FIELDS.get(key)
            if attr is None:
                continue
            if attr == "name":
                value = normalize_name(value)
            elif attr == "description":
                value = normalize_description(value)
            elif attr in ("color", "icon") and not value:
                continue
            elif attr in ("is_default", "is_archived"):
                value = bool(value)
            elif attr == "order":
                value = int(value)
            fields[attr] = value

        now = self._clock.now()
        if fields.get("is_default") is False and lst.is_default:
            raise ValidationError("Choose another default list instead of unsetting this one")
        if fields.get("is_default") and not lst.is_default:
            await self._repo.unset_default(lst.user_id, now, except_id=lst.id)

        updated = touch_list(lst, now, **fields)
        await self._repo.save(updated)
        return updated

    async def update(self, user_id: str, list_id: str, changes: Dict[str, Any]) -> TaskList:
        lst = await self._owned(user_id, list_id)
        await self._apply(lst, changes)
        return await self._repo.get(list_id)

    async def archive(self, user_id: str, list_id: str, is_archived: bool) -> TaskList:
        lst = await self._owned(user_id, list_id)
        await self._repo.save(touch_list(lst, self._clock.now(), is_archived=bool(is_archived)))
        return await self._repo.get(list_id)

    async def bulk_update(self, user_id: str, batches: Sequence[UpdateBatch]) -> list[TaskList]:
        """Apply each entry independently; lists the user does not own are skipped."""
        out: list[TaskList] = []
        for batch in batches:
            lst = await self._repo.get(batch.id)
            if lst is None or lst.user_id != user_id:
                continue
            out.append(await self._apply(lst, batch.updates))
        return out

    async def delete(self, user_id: str, list_id: str, move_tasks_to_list_id: Optional[str] = None) -> None:
        lst = await self._owned(user_id, list_id)
        if lst.is_default:
            raise ValidationError("Cannot delete default list")

        now = self._clock.now()
        if move_tasks_to_list_id:
            if move_tasks_to_list_id == list_id:
                raise ValidationError("Cannot move tasks into the list being deleted")
            target = await self._owned(user_id, move_tasks_to_list_id, "Target list not found")
            moved = await self._tasks.move_list(list_id, target.id, now)
            await self.update_task_count(target.id)
        else:
            moved = await self._tasks.move_list(list_id, None, now)

        await self._repo.delete(list_id)
        logger.info("List deleted: list_id=%s, moved_tasks=%s", list_id, moved)

    async def update_task_count(self, list_id: Optional[str]) -> Optional[TaskList]:
        """Recompute the denormalized count of non-done tasks."""
        if not list_id:
            return None
        lst = await self._repo.get(list_id)
        if lst is None:
            return None
        count = await self._tasks.count_open_in_list(list_id)
        updated = touch_list(lst, self._clock.now(), task_count=count)
        await self._repo.save(updated)
        return updated

    async def refresh_count(self, user_id: str, list_id: str) -> TaskList:
        await self.get(user_id, list_id)
        return await self.update_task_count(list_id)

    async def share(self, user_id: str, list_id: str, email: str, role: str = ROLE_VIEWER) -> ShareOutcome:
        validate_share_role(role)
        lst = await self._owned(user_id, list_id)
        email = (email or "").strip().lower()
        if not email:
            raise ValidationError("Email is required")

        owner = await self._users.get(user_id)
        target = await self._users.get_by_email(email)
        if target is None:
            invite = await self._invites.create_invite(owner, lst, email, role)
            return ShareOutcome(list=lst, invite=invite)

        current = list_role(lst, target.id)
        if current == ROLE_OWNER:
            raise ValidationError("You cannot share a list with yourself")
        if current is not None:
            raise ValidationError("User is already a collaborator on this list")

        now = self._clock.now()
        await self._repo.add_collaborator(lst.id, target.id, role, now)
        await self._repo.save(touch_list(lst, now))

        owner_name = owner.name if owner else "Someone"
        await self._notifications.create(
            user_id=target.id,
            type_=NOTIFY_SHARED_LIST,
            title="List Shared With You",
            message=f'{owner_name} shared the list "{lst.name}" with you'[:500],
            action_url=f"/dashboard?list={lst.id}",
            metadata={"listId": lst.id, "listName": lst.name, "sharedBy": owner_name, "role": role},
        )
        await self._activities.log(
            user_id=user_id,
            type_=ACTIVITY_LIST_SHARED,
            description=f'Shared list "{lst.name}" with {target.name}',
            list_id=lst.id,
            metadata={"sharedWith": target.id, "role": role},
        )
        await self._activities.log(
            user_id=user_id,
            type_=ACTIVITY_COLLABORATOR_ADDED,
            description=f'{target.name} joined "{lst.name}" as {role}',
            list_id=lst.id,
            metadata={"collaboratorId": target.id, "role": role},
        )
        return ShareOutcome(list=await self._repo.get(lst.id))

    async def remove_collaborator(self, user_id: str, list_id: str, collaborator_id: str) -> TaskList:
        lst = await self._owned(user_id, list_id)
        if not await self._repo.remove_collaborator(list_id, collaborator_id):
            raise NotFoundError("Collaborator not found")
        await self._repo.save(touch_list(lst, self._clock.now()))

        removed = (await self._users.summaries([collaborator_id])).get(collaborator_id)
        await self._activities.log(
            user_id=user_id,
            type_=ACTIVITY_COLLABORATOR_REMOVED,
            description=f'Removed {removed.name if removed else "a collaborator"} from "{lst.name}"',
            list_id=lst.id,
            metadata={"collaboratorId": collaborator_id},
        )
        return await self._repo.get(list_id)

    async def leave(self, user_id: str, list_id: str) -> None:
        lst = await self._repo.get(list_id)
        if lst is None or lst.user_id == user_id:
            raise NotFoundError("List not found")
        if not await self._repo.remove_collaborator(list_id, user_id):
            raise NotFoundError("You are not a collaborator on this list")
        await self._repo.save(touch_list(lst, self._clock.now()))
