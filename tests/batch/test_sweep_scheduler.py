"""Tests for SweepScheduler with a deterministic clock."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from rental_kernel.domain.clock import DeterministicClock

from rental_batch.domain.schedule import SweepSchedule
from rental_batch.scheduler import SweepScheduler
from rental_batch.tasks import TaskRegistry

START = datetime(2024, 1, 1, 0, 30, tzinfo=timezone.utc)


class CountingTask:
    description = "counts its runs"

    def __init__(self, name: str, fail: bool = False):
        self.name = name
        self.calls = 0
        self._fail = fail
        self.ran = threading.Event()

    def run(self) -> dict[str, int]:
        self.calls += 1
        self.ran.set()
        if self._fail:
            raise RuntimeError(f"{self.name} exploded")
        return {"calls": self.calls}


@pytest.fixture
def clock():
    return DeterministicClock(START)


@pytest.fixture
def tasks():
    return {
        "ok": CountingTask("ok"),
        "broken": CountingTask("broken", fail=True),
    }


@pytest.fixture
def registry(tasks):
    registry = TaskRegistry()
    for task in tasks.values():
        registry.register(task)
    return registry


class TestConstruction:
    def test_arms_unarmed_schedules(self, registry, clock):
        scheduler = SweepScheduler(
            registry, [SweepSchedule("every_minute", "ok", interval_seconds=60)], clock
        )
        (schedule,) = scheduler.schedules
        assert schedule.next_run_at == START + timedelta(seconds=60)

    def test_keeps_preset_next_run(self, registry, clock):
        preset = START + timedelta(days=2)
        scheduler = SweepScheduler(
            registry,
            [SweepSchedule("later", "ok", interval_seconds=60, next_run_at=preset)],
            clock,
        )
        assert scheduler.schedules[0].next_run_at == preset

    def test_rejects_duplicate_names(self, registry, clock):
        schedule = SweepSchedule("twice", "ok", interval_seconds=60)
        with pytest.raises(ValueError, match="duplicate"):
            SweepScheduler(registry, [schedule, schedule], clock)

    def test_rejects_unknown_task(self, registry, clock):
        with pytest.raises(ValueError, match="unknown task"):
            SweepScheduler(
                registry, [SweepSchedule("s", "missing", interval_seconds=60)], clock
            )


class TestTick:
    def test_fires_only_when_due(self, registry, clock, tasks):
        scheduler = SweepScheduler(
            registry, [SweepSchedule("every_minute", "ok", interval_seconds=60)], clock
        )

        assert scheduler.tick() == 0
        clock.advance(60)
        assert scheduler.tick() == 1
        assert scheduler.tick() == 0

        assert tasks["ok"].calls == 1
        (schedule,) = scheduler.schedules
        assert schedule.last_run_at == START + timedelta(seconds=60)
        assert schedule.next_run_at == START + timedelta(seconds=120)

    def test_cron_schedule(self, registry, clock, tasks):
        scheduler = SweepScheduler(
            registry, [SweepSchedule("nightly", "ok", cron_expression="0 1 * * *")], clock
        )
        clock.advance(30 * 60)

        assert scheduler.tick() == 1
        assert scheduler.schedules[0].next_run_at == datetime(
            2024, 1, 2, 1, 0, tzinfo=timezone.utc
        )

    def test_missed_runs_are_not_replayed(self, registry, clock, tasks):
        scheduler = SweepScheduler(
            registry, [SweepSchedule("every_minute", "ok", interval_seconds=60)], clock
        )
        clock.advance(3600)

        assert scheduler.tick() == 1
        assert tasks["ok"].calls == 1
        assert scheduler.schedules[0].next_run_at == clock.now() + timedelta(seconds=60)

    def test_failing_task_is_rearmed_and_others_still_run(
        self, registry, clock, tasks, captured_logs
    ):
        scheduler = SweepScheduler(
            registry,
            [
                SweepSchedule("bad", "broken", interval_seconds=60),
                SweepSchedule("good", "ok", interval_seconds=60),
            ],
            clock,
        )
        clock.advance(60)

        assert scheduler.tick() == 2

        assert tasks["broken"].calls == 1
        assert tasks["ok"].calls == 1
        by_name = {s.name: s for s in scheduler.schedules}
        assert by_name["bad"].next_run_at == clock.now() + timedelta(seconds=60)
        logs = captured_logs()
        assert any(r["message"] == "sweep_task_failed" for r in logs)
        fired = {r["schedule"]: r["status"] for r in logs if r["message"] == "schedule_fired"}
        assert fired == {"bad": "failed", "good": "succeeded"}

    def test_inactive_schedule_is_skipped(self, registry, clock, tasks):
        scheduler = SweepScheduler(
            registry,
            [SweepSchedule("off", "ok", interval_seconds=60, is_active=False)],
            clock,
        )
        clock.advance(600)
        assert scheduler.tick() == 0
        assert tasks["ok"].calls == 0


class TestRunNow:
    def test_returns_result(self, registry, clock):
        scheduler = SweepScheduler(registry, [], clock)
        assert scheduler.run_now("ok") == {"calls": 1}

    def test_errors_propagate(self, registry, clock):
        scheduler = SweepScheduler(registry, [], clock)
        with pytest.raises(RuntimeError, match="exploded"):
            scheduler.run_now("broken")
        with pytest.raises(KeyError):
            scheduler.run_now("missing")


class TestBackgroundLoop:
    def test_start_and_stop(self, registry, clock, tasks):
        scheduler = SweepScheduler(
            registry,
            [SweepSchedule("now", "ok", interval_seconds=60, next_run_at=START)],
            clock,
            tick_interval_seconds=1,
        )

        scheduler.start()
        try:
            assert tasks["ok"].ran.wait(5)
            assert scheduler.is_running
        finally:
            scheduler.stop(timeout=5)

        assert not scheduler.is_running
        assert tasks["ok"].calls == 1
