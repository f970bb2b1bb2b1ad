"""
SweepScheduler -- In-process polling scheduler.

Contract:
    ``tick()`` fires every schedule whose ``next_run_at`` has arrived
    (``should_fire``, pure) and re-arms it with ``compute_next_run``.
    ``start()`` / ``stop()`` run ``tick()`` on a daemon thread.

Invariants enforced:
    - All timestamps come from the injected Clock.
    - A failing task is logged and re-armed; it never stops the loop or
      the other schedules in the same tick.
    - The stop signal is checked between schedules.

Non-goals:
    - NOT a distributed scheduler (no leader election).  Run one instance.
    - Missed runs are not replayed: a schedule fires once, then re-arms
      from the tick time.
"""

from __future__ import annotations

import dataclasses
import threading
from datetime import datetime

from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.logging_config import get_logger

from rental_batch.domain.schedule import SweepSchedule, compute_next_run, should_fire
from rental_batch.tasks import TaskRegistry

logger = get_logger("batch.scheduler")


class SweepScheduler:
    def __init__(
        self,
        registry: TaskRegistry,
        schedules: list[SweepSchedule],
        clock: Clock | None = None,
        tick_interval_seconds: int = 60,
    ):
        self._registry = registry
        self._clock = clock or SystemClock()
        self._tick_interval = tick_interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

        now = self._clock.now()
        self._schedules: dict[str, SweepSchedule] = {}
        for schedule in schedules:
            if schedule.name in self._schedules:
                raise ValueError(f"duplicate schedule '{schedule.name}'")
            if schedule.task_name not in registry:
                raise ValueError(
                    f"schedule '{schedule.name}' refers to unknown task '{schedule.task_name}'"
                )
            if schedule.next_run_at is None:
                schedule = dataclasses.replace(
                    schedule, next_run_at=compute_next_run(schedule, now)
                )
            self._schedules[schedule.name] = schedule

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def schedules(self) -> tuple[SweepSchedule, ...]:
        with self._lock:
            return tuple(self._schedules.values())

    def tick(self) -> int:
        """Fire due schedules. Returns the number fired."""
        now = self._clock.now()
        fired = 0
        with self._lock:
            for name, schedule in list(self._schedules.items()):
                if self._stop_event.is_set():
                    break
                if not should_fire(schedule, now):
                    continue
                self._schedules[name] = self._fire(schedule, now)
                fired += 1
        return fired

    def run_now(self, task_name: str) -> dict[str, int]:
        """Run a task immediately, outside any schedule. Errors propagate."""
        task = self._registry.get(task_name)
        result = task.run()
        logger.info("task_run_manually", extra={"task": task_name, "result": result})
        return result

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="sweep-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "scheduler_started",
            extra={
                "tick_interval": self._tick_interval,
                "schedules": sorted(self._schedules),
            },
        )

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the current tick to finish."""
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("scheduler_tick_exception")
            self._stop_event.wait(timeout=self._tick_interval)

    def _fire(self, schedule: SweepSchedule, now: datetime) -> SweepSchedule:
        task = self._registry.get(schedule.task_name)
        try:
            result = task.run()
        except Exception:
            logger.exception(
                "sweep_task_failed",
                extra={"schedule": schedule.name, "task": schedule.task_name},
            )
            status = "failed"
            result = {}
        else:
            status = "succeeded"

        next_run = compute_next_run(schedule, now)
        logger.info(
            "schedule_fired",
            extra={
                "schedule": schedule.name,
                "task": schedule.task_name,
                "status": status,
                "result": result,
                "next_run_at": next_run.isoformat(),
            },
        )
        return dataclasses.replace(schedule, last_run_at=now, next_run_at=next_run)
