# todu/api/container.py
"""
Composition root: builds repositories, services and the scheduler from settings.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from todu.config import Settings
from todu.domain.accounts.service import AccountService
from todu.domain.activities.service import ActivityService
from todu.domain.comments.service import CommentService
from todu.domain.common.ports import Clock, IdGenerator, Mailer
from todu.domain.invites.service import InviteService
from todu.domain.lists.service import ListService
from todu.domain.messages.service import MessageService
from todu.domain.notifications.service import NotificationService
from todu.domain.notifications.sweeps import NotificationSweeps
from todu.domain.tasks.access import TaskAccess
from todu.domain.tasks.service import TaskService
from todu.infra.clock.system_clock import SystemClock
from todu.infra.db.connection import Database
from todu.infra.db.repo.activities_sqlite import ActivitiesSqliteRepo
from todu.infra.db.repo.comments_sqlite import CommentsSqliteRepo
from todu.infra.db.repo.invites_sqlite import InvitesSqliteRepo
from todu.infra.db.repo.lists_sqlite import ListsSqliteRepo
from todu.infra.db.repo.messages_sqlite import MessagesSqliteRepo
from todu.infra.db.repo.notifications_sqlite import NotificationsSqliteRepo
from todu.infra.db.repo.tasks_sqlite import TasksSqliteRepo
from todu.infra.db.repo.users_sqlite import UsersSqliteRepo
from todu.infra.email.smtp import SmtpMailer
from todu.infra.google.id_tokens import GoogleIdTokenVerifier
from todu.infra.ids.uuid_gen import UuidGenerator
from todu.infra.scheduler.loop import JobRunner, PeriodicJob, SchedulerLoop
from todu.infra.security.passwords import BcryptPasswordHasher
from todu.infra.security.tokens import JwtTokenIssuer
from todu.infra.storage.avatars import LocalAvatarStorage

logger = logging.getLogger(__name__)

JOB_REMINDERS = "reminders"
JOB_DUE_TODAY = "due_today"
JOB_OVERDUE = "overdue"
JOB_PURGE_READ = "purge_read_notifications"
JOB_EXPIRE_INVITES = "expire_invites"


@dataclass
class Container:
    settings: Settings
    db: Database
    clock: Clock
    accounts: AccountService
    lists: ListService
    tasks: TaskService
    comments: CommentService
    notifications: NotificationService
    sweeps: NotificationSweeps
    activities: ActivityService
    messages: MessageService
    invites: InviteService
    scheduler: SchedulerLoop


def build_container(
    settings: Settings,
    clock: Optional[Clock] = None,
    ids: Optional[IdGenerator] = None,
    mailer: Optional[Mailer] = None,
    bcrypt_rounds: int = 12,
) -> Container:
    """
    Wire everything against one SQLite file. Tests pass their own clock,
    mailer and a low bcrypt cost.
    """
    clock = clock or SystemClock(settings.timezone)
    ids = ids or UuidGenerator()
    mailer = mailer or SmtpMailer(settings.email)
    db = Database(str(settings.db_path))

    users_repo = UsersSqliteRepo(db)
    lists_repo = ListsSqliteRepo(db)
    tasks_repo = TasksSqliteRepo(db)
    comments_repo = CommentsSqliteRepo(db)
    notifications_repo = NotificationsSqliteRepo(db)
    activities_repo = ActivitiesSqliteRepo(db)
    messages_repo = MessagesSqliteRepo(db)
    invites_repo = InvitesSqliteRepo(db)

    access = TaskAccess(tasks_repo, lists_repo)
    activities = ActivityService(activities_repo, lists_repo, access, clock, ids)
    notifications = NotificationService(notifications_repo, users_repo, mailer, clock, ids, settings.client_url)
    invites = InviteService(invites_repo, lists_repo, users_repo, notifications, mailer, clock, ids, settings.client_url)
    lists = ListService(lists_repo, tasks_repo, users_repo, activities, notifications, invites, clock, ids)
    tasks = TaskService(tasks_repo, lists_repo, lists, access, activities, clock, ids)
    comments = CommentService(comments_repo, users_repo, access, notifications, activities, clock, ids)
    messages = MessageService(messages_repo, users_repo, notifications, clock, ids)

    google = GoogleIdTokenVerifier(settings.google_client_id) if settings.google_client_id else None
    accounts = AccountService(
        users=users_repo,
        lists=lists_repo,
        list_service=lists,
        tasks=tasks_repo,
        hasher=BcryptPasswordHasher(rounds=bcrypt_rounds),
        tokens=JwtTokenIssuer(settings.jwt_secret, settings.jwt_expires_in, clock),
        google=google,
        avatars=LocalAvatarStorage(settings.upload_dir),
        mailer=mailer,
        clock=clock,
        ids=ids,
        client_url=settings.client_url,
    )

    sweeps = NotificationSweeps(tasks_repo, notifications, notifications_repo, invites_repo, clock)
    scheduler = build_scheduler(sweeps, clock)

    return Container(
        settings=settings,
        db=db,
        clock=clock,
        accounts=accounts,
        lists=lists,
        tasks=tasks,
        comments=comments,
        notifications=notifications,
        sweeps=sweeps,
        activities=activities,
        messages=messages,
        invites=invites,
        scheduler=scheduler,
    )


def build_scheduler(sweeps: NotificationSweeps, clock: Clock) -> SchedulerLoop:
    runner = JobRunner()

    async def run_reminders(_: PeriodicJob):
        return (await sweeps.process_due_reminders()).as_dict()

    async def run_due_today(_: PeriodicJob):
        return (await sweeps.process_tasks_due_today()).as_dict()

    async def run_overdue(_: PeriodicJob):
        return (await sweeps.process_overdue_tasks()).as_dict()

    async def run_purge(_: PeriodicJob):
        return await sweeps.purge_read_notifications()

    async def run_expire(_: PeriodicJob):
        return await sweeps.expire_invites()

    runner.register(JOB_REMINDERS, run_reminders)
    runner.register(JOB_DUE_TODAY, run_due_today)
    runner.register(JOB_OVERDUE, run_overdue)
    runner.register(JOB_PURGE_READ, run_purge)
    runner.register(JOB_EXPIRE_INVITES, run_expire)

    loop = SchedulerLoop(runner, clock)
    loop.add(PeriodicJob(JOB_REMINDERS, "interval", {"minutes": 1}))
    loop.add(PeriodicJob(JOB_DUE_TODAY, "daily", {"hour": 8, "minute": 0}))
    loop.add(PeriodicJob(JOB_OVERDUE, "hourly", {"every_hours": 6}))
    loop.add(PeriodicJob(JOB_PURGE_READ, "daily", {"hour": 3, "minute": 0}))
    loop.add(PeriodicJob(JOB_EXPIRE_INVITES, "daily", {"hour": 3, "minute": 0}))
    return loop
