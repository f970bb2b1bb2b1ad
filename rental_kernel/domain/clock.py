"""
Clock -- injectable time source.

Responsibility:
    Domain and service code never call ``datetime.now()`` or
    ``date.today()`` directly; they ask an injected ``Clock``.  Every
    date-dependent rule (initial status, sweep, "not in the past" checks,
    expiry windows) is therefore deterministic under test.

Architecture position:
    Kernel > Domain -- pure, except SystemClock, the one sanctioned read of
    wall-clock time.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime``.
        - ``today()`` is the calendar date of ``now()`` in that timezone.
    """

    @abstractmethod
    def now(self) -> datetime:
        ...

    def now_utc(self) -> datetime:
        return self.now().astimezone(timezone.utc)

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Production clock: wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value until ``advance()``, ``advance_days()``
    or ``set_time()`` is called.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(
            2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc
        )
        self._offset = timedelta()

    @classmethod
    def on(cls, day: date, hour: int = 12) -> "DeterministicClock":
        """Clock fixed at ``hour`` o'clock UTC on ``day``."""
        return cls(datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc))

    def now(self) -> datetime:
        return self._fixed_time + self._offset

    def set_time(self, time: datetime) -> None:
        self._fixed_time = time
        self._offset = timedelta()

    def advance(self, seconds: int = 1) -> None:
        self._offset += timedelta(seconds=seconds)

    def advance_days(self, days: int = 1) -> None:
        self._offset += timedelta(days=days)
