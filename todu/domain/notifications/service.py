from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from todu.constants import (
    NOTIFICATION_TYPES,
    NOTIFY_REMINDER,
    NOTIFY_TASK_DUE,
    NOTIFY_TASK_OVERDUE,
)
from todu.domain.accounts.ports import UserRepository
from todu.domain.common.errors import ValidationError
from todu.domain.common.ports import Clock, IdGenerator, Mailer
from todu.domain.common.time import to_iso_opt
from todu.domain.notifications.ports import NotificationRepository
from todu.email_templates import render_task_reminder
from todu.models import Notification, Task

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200
MAX_MESSAGE_LENGTH = 500
DEFAULT_PAGE_SIZE = 50


def _task_metadata(task: Task) -> Dict[str, Any]:
    return {
        "taskTitle": task.title,
        "priority": task.priority,
        "dueDate": to_iso_opt(task.due_date),
    }


class NotificationService:
    """
    In-app notifications plus the best-effort reminder email.
    """

    def __init__(
        self,
        repo: NotificationRepository,
        users: UserRepository,
        mailer: Mailer,
        clock: Clock,
        ids: IdGenerator,
        client_url: str,
    ) -> None:
        self._repo = repo
        self._users = users
        self._mailer = mailer
        self._clock = clock
        self._ids = ids
        self._client_url = client_url

    async def create(
        self,
        user_id: str,
        type_: str,
        title: str,
        message: str,
        task_id: Optional[str] = None,
        action_url: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        if type_ not in NOTIFICATION_TYPES:
            raise ValidationError(f"Invalid notification type: {type_}")
        title = (title or "").strip()
        message = (message or "").strip()
        if not title or not message:
            raise ValidationError("Title and message are required")
        if len(title) > MAX_TITLE_LENGTH:
            raise ValidationError(f"Title is too long (max {MAX_TITLE_LENGTH} chars).")
        if len(message) > MAX_MESSAGE_LENGTH:
            raise ValidationError(f"Message is too long (max {MAX_MESSAGE_LENGTH} chars).")

        now = self._clock.now()
        notification = Notification(
            id=self._ids.new_id(),
            user_id=user_id,
            task_id=task_id,
            type=type_,
            title=title,
            message=message,
            read=False,
            read_at=None,
            action_url=action_url,
            metadata=dict(metadata or {}),
            created_at=now,
            updated_at=now,
        )
        await self._repo.insert(notification)
        return notification

    async def list_for_user(
        self,
        user_id: str,
        read: Optional[bool] = None,
        limit: int = DEFAULT_PAGE_SIZE,
        skip: int = 0,
    ) -> list[Notification]:
        limit = limit if limit > 0 else DEFAULT_PAGE_SIZE
        return await self._repo.list_for_user(user_id, read=read, limit=limit, skip=max(skip, 0))

    async def unread_count(self, user_id: str) -> int:
        return await self._repo.count_unread(user_id)

    async def mark_read(self, user_id: str, notification_ids: Sequence[str]) -> int:
        if not notification_ids:
            raise ValidationError("notificationIds must be a non-empty array")
        return await self._repo.mark_read(list(notification_ids), user_id, self._clock.now())

    async def mark_all_read(self, user_id: str) -> int:
        return await self._repo.mark_all_read(user_id, self._clock.now())

    async def delete(self, user_id: str, notification_ids: Sequence[str]) -> int:
        if not notification_ids:
            raise ValidationError("notificationIds must be a non-empty array")
        return await self._repo.delete(list(notification_ids), user_id)

    async def already_notified(self, task: Task, type_: str, since) -> bool:
        return await self._repo.exists_since(task.user_id, task.id, type_, since)

    # --- per-task factories ---

    async def task_reminder(self, task: Task) -> Notification:
        return await self.create(
            user_id=task.user_id,
            task_id=task.id,
            type_=NOTIFY_REMINDER,
            title="Task Reminder",
            message=f"Reminder: {task.title}"[:MAX_MESSAGE_LENGTH],
            action_url=f"/dashboard?task={task.id}",
            metadata=_task_metadata(task),
        )

    async def task_due(self, task: Task) -> Notification:
        return await self.create(
            user_id=task.user_id,
            task_id=task.id,
            type_=NOTIFY_TASK_DUE,
            title="Task Due Today",
            message=f'"{task.title}" is due today'[:MAX_MESSAGE_LENGTH],
            action_url=f"/dashboard?task={task.id}",
            metadata=_task_metadata(task),
        )

    async def task_overdue(self, task: Task) -> Notification:
        return await self.create(
            user_id=task.user_id,
            task_id=task.id,
            type_=NOTIFY_TASK_OVERDUE,
            title="Task Overdue",
            message=f'"{task.title}" is overdue'[:MAX_MESSAGE_LENGTH],
            action_url=f"/dashboard?task={task.id}",
            metadata=_task_metadata(task),
        )

    async def send_task_reminder_email(self, task: Task) -> bool:
        """Email the task owner. Failures are logged, never raised."""
        user = await self._users.get(task.user_id)
        if not user:
            logger.error("User not found for email reminder: user_id=%s", task.user_id)
            return False
        email = render_task_reminder(user, task, self._client_url)
        try:
            await self._mailer.send(user.email, email.subject, email.text, email.html)
        except Exception as e:
            logger.warning("Reminder email failed: task_id=%s, error=%s", task.id, e)
            return False
        return True
