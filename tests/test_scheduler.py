"""
Tests for next-run computation and the polling loop.
"""
import asyncio
from datetime import datetime, timedelta, timezone

from todu.infra.scheduler.loop import JobRunner, PeriodicJob, SchedulerLoop, compute_next_due


def test_interval_aligns_to_whole_minutes():
    now = datetime(2025, 5, 1, 10, 15, 30, tzinfo=timezone.utc)
    assert compute_next_due("interval", {"minutes": 1}, now) == datetime(2025, 5, 1, 10, 16, tzinfo=timezone.utc)
    assert compute_next_due("interval", {"minutes": 5}, now) == datetime(2025, 5, 1, 10, 20, tzinfo=timezone.utc)
    assert compute_next_due("interval", {"minutes": 0}, now) is None


def test_daily_rolls_over_after_time_has_passed():
    before = datetime(2025, 5, 1, 7, 59, tzinfo=timezone.utc)
    after = datetime(2025, 5, 1, 8, 0, tzinfo=timezone.utc)
    assert compute_next_due("daily", {"hour": 8, "minute": 0}, before) == datetime(2025, 5, 1, 8, 0, tzinfo=timezone.utc)
    assert compute_next_due("daily", {"hour": 8, "minute": 0}, after) == datetime(2025, 5, 2, 8, 0, tzinfo=timezone.utc)


def test_hourly_aligns_to_every_n_hours():
    now = datetime(2025, 5, 1, 7, 30, tzinfo=timezone.utc)
    assert compute_next_due("hourly", {"every_hours": 6}, now) == datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)
    late = datetime(2025, 5, 1, 19, 5, tzinfo=timezone.utc)
    assert compute_next_due("hourly", {"every_hours": 6}, late) == datetime(2025, 5, 2, 0, 0, tzinfo=timezone.utc)


def test_unknown_kind_has_no_next_run():
    assert compute_next_due("weekly", {}, datetime(2025, 5, 1, tzinfo=timezone.utc)) is None


def test_tick_runs_due_jobs_and_survives_failures(clock):
    async def run():
        calls = []
        runner = JobRunner()

        async def ok_job(job):
            calls.append(job.job_type)
            return {"processed": 1}

        async def broken_job(job):
            raise RuntimeError("boom")

        runner.register("ok", ok_job)
        runner.register("broken", broken_job)

        loop = SchedulerLoop(runner, clock)
        ok = loop.add(PeriodicJob("ok", "interval", {"minutes": 1}))
        broken = loop.add(PeriodicJob("broken", "interval", {"minutes": 1}))

        # nothing is due yet
        await loop.tick()
        assert calls == []

        clock.advance(minutes=1)
        await loop.tick()
        assert calls == ["ok"]
        assert ok.last_error is None
        assert broken.last_error == "boom"
        assert broken.next_due == clock.local_now().replace(second=0) + timedelta(minutes=1)

    asyncio.run(run())


def test_run_forever_stops_on_request(clock):
    async def run():
        loop = SchedulerLoop(JobRunner(), clock)
        task = asyncio.create_task(loop.run_forever())
        await asyncio.sleep(0)
        loop.stop()
        await asyncio.wait_for(task, timeout=2)

    asyncio.run(run())
