# todu/infra/scheduler/loop.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, Optional

from todu.domain.common.ports import Clock

logger = logging.getLogger(__name__)


@dataclass
class PeriodicJob:
    job_type: str
    schedule_kind: str  # 'interval' | 'daily' | 'hourly'
    schedule: Dict[str, Any] = field(default_factory=dict)
    next_due: Optional[datetime] = None
    last_run_at: Optional[datetime] = None
    last_error: Optional[str] = None


RunnerFn = Callable[[PeriodicJob], Awaitable[Any]]


@dataclass
class SchedulerConfig:
    poll_seconds: int = 10


def compute_next_due(kind: str, schedule: Dict[str, Any], now: datetime) -> Optional[datetime]:
    """
    Next run strictly after ``now`` (server-local, tz-aware):
    - interval => next whole minute plus (minutes - 1), like cron
    - daily    => next hh:mm
    - hourly   => next full hour divisible by ``every_hours`` (counted from midnight)
    """
    if kind == "interval":
        mins = int(schedule.get("minutes", 0) or 0)
        if mins <= 0:
            return None
        return now.replace(second=0, microsecond=0) + timedelta(minutes=mins)

    if kind == "daily":
        hour = int(schedule.get("hour", 0))
        minute = int(schedule.get("minute", 0))
        nxt = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
        if nxt <= now:
            nxt += timedelta(days=1)
        return nxt

    if kind == "hourly":
        every = int(schedule.get("every_hours", 1) or 1)
        if every <= 0 or 24 % every != 0:
            return None
        nxt = now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
        while nxt.hour % every != 0:
            nxt += timedelta(hours=1)
        return nxt

    return None


class JobRunner:
    """
    job_type -> coroutine(job)
    Handlers are registered in the composition root.
    """
    def __init__(self) -> None:
        self._handlers: Dict[str, RunnerFn] = {}

    def register(self, job_type: str, fn: RunnerFn) -> None:
        self._handlers[job_type] = fn

    async def run(self, job: PeriodicJob) -> Any:
        fn = self._handlers.get(job.job_type)
        if not fn:
            raise RuntimeError(f"No runner registered for job_type={job.job_type}")
        return await fn(job)


class SchedulerLoop:
    def __init__(self, runner: JobRunner, clock: Clock, cfg: Optional[SchedulerConfig] = None) -> None:
        self._runner = runner
        self._clock = clock
        self._cfg = cfg or SchedulerConfig()
        self._jobs: list[PeriodicJob] = []
        self._stop = asyncio.Event()

    @property
    def jobs(self) -> list[PeriodicJob]:
        return list(self._jobs)

    def add(self, job: PeriodicJob) -> PeriodicJob:
        if job.next_due is None:
            job.next_due = compute_next_due(job.schedule_kind, job.schedule, self._clock.local_now())
        self._jobs.append(job)
        logger.info(f"Scheduled job: job_type={job.job_type}, next_due={job.next_due}")
        return job

    def stop(self) -> None:
        self._stop.set()

    async def run_forever(self) -> None:
        while not self._stop.is_set():
            try:
                await self.tick()
            except Exception as e:
                # never crash the server because of the scheduler, but log errors
                logger.error(f"Scheduler tick error: {e}", exc_info=True)
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._cfg.poll_seconds)
            except asyncio.TimeoutError:
                pass

    async def tick(self) -> None:
        now = self._clock.local_now()
        for job in self._jobs:
            if job.next_due is not None and job.next_due <= now:
                await self._execute_one(job)

    async def _execute_one(self, job: PeriodicJob) -> None:
        try:
            result = await self._runner.run(job)
            job.last_error = None
            if result:
                logger.info(f"Job finished: job_type={job.job_type}, result={result}")
        except Exception as e:
            logger.error(f"Job execution failed: job_type={job.job_type}, error={e}", exc_info=True)
            job.last_error = str(e)
        job.last_run_at = self._clock.local_now()
        job.next_due = compute_next_due(job.schedule_kind, job.schedule, job.last_run_at)
