from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional

from todu.constants import ACTIVITY_COMMENT_ADDED, NOTIFY_COMMENT, NOTIFY_MENTION, VISIBILITY_TEAM
from todu.domain.accounts.ports import UserRepository
from todu.domain.activities.service import ActivityService
from todu.domain.comments.mentions import extract_mentions
from todu.domain.comments.ports import CommentRepository
from todu.domain.common.errors import NotFoundError, PermissionDeniedError, ValidationError
from todu.domain.common.ports import Clock, IdGenerator
from todu.domain.notifications.service import NotificationService
from todu.domain.tasks.access import TaskAccess
from todu.models import Comment, Task

MAX_CONTENT_LENGTH = 5000


def _normalize_content(content: Optional[str]) -> str:
    c = (content or "").strip()
    if not c:
        raise ValidationError("Comment content is required")
    if len(c) > MAX_CONTENT_LENGTH:
        raise ValidationError(f"Comment is too long (max {MAX_CONTENT_LENGTH} chars).")
    return c


class CommentService:
    def __init__(
        self,
        repo: CommentRepository,
        users: UserRepository,
        access: TaskAccess,
        notifications: NotificationService,
        activities: ActivityService,
        clock: Clock,
        ids: IdGenerator,
    ) -> None:
        self._repo = repo
        self._users = users
        self._access = access
        self._notifications = notifications
        self._activities = activities
        self._clock = clock
        self._ids = ids

    async def _task(self, user_id: str, task_id: str) -> Task:
        task = await self._access.find_readable(user_id, task_id)
        if task is None:
            raise PermissionDeniedError("Access denied to this task")
        return task

    async def _resolve_mentions(self, content: str) -> tuple[str, ...]:
        names = extract_mentions(content)
        if not names:
            return ()
        users = await self._users.find_by_names(names)
        ids: list[str] = []
        for u in sorted(users, key=lambda u: names.index(u.name)):
            if u.id not in ids:
                ids.append(u.id)
        return tuple(ids)

    async def _notify_mentions(self, author_name: str, task: Task, user_ids: Iterable[str], author_id: str) -> None:
        for mentioned_id in user_ids:
            if mentioned_id == author_id:
                continue
            await self._notifications.create(
                user_id=mentioned_id,
                task_id=task.id,
                type_=NOTIFY_MENTION,
                title="You were mentioned",
                message=f'{author_name} mentioned you in "{task.title}"'[:500],
                action_url=f"/tasks/{task.id}",
            )

    async def for_task(self, user_id: str, task_id: str) -> list[Comment]:
        await self._task(user_id, task_id)
        return await self._repo.for_task(task_id)

    async def create(self, user_id: str, task_id: str, content: str) -> Comment:
        content = _normalize_content(content)
        task = await self._task(user_id, task_id)
        mentions = await self._resolve_mentions(content)

        now = self._clock.now()
        comment = Comment(
            id=self._ids.new_id(),
            task_id=task.id,
            user_id=user_id,
            content=content,
            mentions=mentions,
            created_at=now,
            updated_at=now,
        )
        await self._repo.insert(comment)

        author = await self._users.get(user_id)
        author_name = author.name if author else "Someone"
        await self._notify_mentions(author_name, task, mentions, user_id)

        # owners hear about comments on their tasks even when not mentioned
        if task.user_id != user_id and task.user_id not in mentions:
            await self._notifications.create(
                user_id=task.user_id,
                task_id=task.id,
                type_=NOTIFY_COMMENT,
                title="New comment",
                message=f'{author_name} commented on "{task.title}"'[:500],
                action_url=f"/tasks/{task.id}",
            )

        await self._activities.log(
            user_id=user_id,
            type_=ACTIVITY_COMMENT_ADDED,
            description=f'{author_name} commented on "{task.title}"',
            task_id=task.id,
            list_id=task.list_id,
            visibility=VISIBILITY_TEAM,
        )
        return await self._repo.get(comment.id)

    async def update(self, user_id: str, comment_id: str, content: str) -> Comment:
        content = _normalize_content(content)
        comment = await self._repo.get(comment_id)
        if comment is None or comment.user_id != user_id:
            raise NotFoundError("Comment not found or you don't have permission to edit it")

        mentions = await self._resolve_mentions(content)
        await self._repo.save(replace(comment, content=content, mentions=mentions, updated_at=self._clock.now()))

        added = [m for m in mentions if m not in comment.mentions]
        if added:
            task = await self._access.find_readable(user_id, comment.task_id)
            if task is not None:
                author_name = comment.author.name if comment.author else "Someone"
                await self._notify_mentions(author_name, task, added, user_id)
        return await self._repo.get(comment_id)

    async def delete(self, user_id: str, comment_id: str) -> None:
        comment = await self._repo.get(comment_id)
        if comment is None or comment.user_id != user_id:
            raise NotFoundError("Comment not found or you don't have permission to delete it")
        await self._repo.delete(comment_id)
