from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Dict, Optional

from todu.constants import (
    NOTIFY_REMINDER,
    NOTIFY_TASK_DUE,
    NOTIFY_TASK_OVERDUE,
    OVERDUE_DEDUP_HOURS,
    READ_NOTIFICATION_TTL_DAYS,
    REMINDER_WINDOW_SECONDS,
)
from todu.domain.common.errors import ValidationError
from todu.domain.common.ports import Clock
from todu.domain.invites.ports import InviteRepository
from todu.domain.notifications.ports import NotificationRepository
from todu.domain.notifications.service import NotificationService
from todu.domain.tasks.ports import TaskRepository
from todu.models import SweepResult

logger = logging.getLogger(__name__)

SWEEP_KINDS = ("all", "reminders", "due-today", "overdue")


class NotificationSweeps:
    """
    Periodic scans over tasks. Each sweep is idempotent: before creating a
    notification it checks for one of the same type inside the dedup window.
    """

    def __init__(
        self,
        tasks: TaskRepository,
        notifications: NotificationService,
        notification_repo: NotificationRepository,
        invites: InviteRepository,
        clock: Clock,
    ) -> None:
        self._tasks = tasks
        self._notifications = notifications
        self._notification_repo = notification_repo
        self._invites = invites
        self._clock = clock
        self._reminders_scanned_until: Optional[datetime] = None

    async def process_due_reminders(self) -> SweepResult:
        """
        Notify about reminders falling in ``[start, now + 60s]``. ``start`` is
        where the previous scan ended when that lies in the past, otherwise
        ``now``.
        """
        now = self._clock.now()
        window = timedelta(seconds=REMINDER_WINDOW_SECONDS)
        start = now
        if self._reminders_scanned_until is not None and self._reminders_scanned_until < now:
            start = self._reminders_scanned_until
        end = now + window
        result = SweepResult()
        for task in await self._tasks.with_reminder_between(start, end):
            try:
                if await self._notifications.already_notified(task, NOTIFY_REMINDER, task.reminder_date - window):
                    continue
                await self._notifications.task_reminder(task)
                await self._notifications.send_task_reminder_email(task)
                result.processed += 1
            except Exception as e:
                logger.error(f"Reminder failed: task_id={task.id}, error={e}", exc_info=True)
                result.errors += 1
        if self._reminders_scanned_until is None or end > self._reminders_scanned_until:
            self._reminders_scanned_until = end
        return result

    async def process_tasks_due_today(self) -> SweepResult:
        local_now = self._clock.local_now()
        midnight = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
        tomorrow = midnight + timedelta(days=1)
        result = SweepResult()
        for task in await self._tasks.due_between(midnight, tomorrow):
            try:
                if await self._notifications.already_notified(task, NOTIFY_TASK_DUE, midnight):
                    continue
                await self._notifications.task_due(task)
                result.processed += 1
            except Exception as e:
                logger.error(f"Due-today notification failed: task_id={task.id}, error={e}", exc_info=True)
                result.errors += 1
        return result

    async def process_overdue_tasks(self) -> SweepResult:
        now = self._clock.now()
        since = now - timedelta(hours=OVERDUE_DEDUP_HOURS)
        result = SweepResult()
        for task in await self._tasks.overdue(now):
            try:
                if await self._notifications.already_notified(task, NOTIFY_TASK_OVERDUE, since):
                    continue
                await self._notifications.task_overdue(task)
                result.processed += 1
            except Exception as e:
                logger.error(f"Overdue notification failed: task_id={task.id}, error={e}", exc_info=True)
                result.errors += 1
        return result

    async def purge_read_notifications(self) -> int:
        cutoff = self._clock.now() - timedelta(days=READ_NOTIFICATION_TTL_DAYS)
        n = await self._notification_repo.purge_read_before(cutoff)
        if n:
            logger.info("Purged %s read notifications", n)
        return n

    async def expire_invites(self) -> int:
        n = await self._invites.expire_before(self._clock.now())
        if n:
            logger.info("Expired %s list invites", n)
        return n

    async def process(self, kind: str = "all") -> Dict[str, Dict[str, int]]:
        """Run one or all task sweeps on demand."""
        if kind not in SWEEP_KINDS:
            raise ValidationError(f"Invalid type. Use one of: {', '.join(SWEEP_KINDS)}")
        out: Dict[str, Dict[str, int]] = {}
        if kind in ("all", "reminders"):
            out["reminders"] = (await self.process_due_reminders()).as_dict()
        if kind in ("all", "due-today"):
            out["dueToday"] = (await self.process_tasks_due_today()).as_dict()
        if kind in ("all", "overdue"):
            out["overdue"] = (await self.process_overdue_tasks()).as_dict()
        return out
