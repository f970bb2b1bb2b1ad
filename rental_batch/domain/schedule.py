"""
Pure schedule evaluation.

Contract:
    ``should_fire(schedule, as_of)`` and ``compute_next_run(schedule, after)``
    are pure: every timestamp comes from the caller.  The scheduler owns the
    clock and the mutable run state.

Cron format:
    ``minute hour day_of_month month day_of_week`` with ``*``, single
    values, ranges (``1-5``), lists (``1,15``) and steps (``*/5``,
    ``8-18/2``).  Day of week is 0-6 from Sunday; 7 is accepted as Sunday.
    When both day fields are restricted a time matches if either does, as
    in classic cron.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

_FIELDS = (
    ("minute", 0, 59),
    ("hour", 0, 23),
    ("day_of_month", 1, 31),
    ("month", 1, 12),
    ("day_of_week", 0, 7),
)


# =============================================================================
# Cron
# =============================================================================


@dataclass(frozen=True)
class CronSpec:
    """A parsed cron expression; each field is the set of matching values."""

    expression: str
    minutes: frozenset[int]
    hours: frozenset[int]
    days_of_month: frozenset[int]
    months: frozenset[int]
    days_of_week: frozenset[int]

    @property
    def restricts_day_of_month(self) -> bool:
        return len(self.days_of_month) < 31

    @property
    def restricts_day_of_week(self) -> bool:
        return len(self.days_of_week) < 7


def _parse_bound(text: str, name: str, low: int, high: int) -> int:
    try:
        value = int(text)
    except ValueError:
        raise ValueError(f"{name}: '{text}' is not a number") from None
    if not low <= value <= high:
        raise ValueError(f"{name}: {value} outside [{low}, {high}]")
    return value


def _parse_field(text: str, name: str, low: int, high: int) -> frozenset[int]:
    values: set[int] = set()
    for part in text.split(","):
        if not part:
            raise ValueError(f"{name}: empty list element in '{text}'")
        span, _, step_text = part.partition("/")
        step = 1
        if step_text:
            step = _parse_bound(step_text, name, 1, high - low + 1)

        if span == "*":
            first, last = low, high
        elif "-" in span:
            first_text, _, last_text = span.partition("-")
            first = _parse_bound(first_text, name, low, high)
            last = _parse_bound(last_text, name, low, high)
            if first > last:
                raise ValueError(f"{name}: range {span} runs backwards")
        else:
            first = _parse_bound(span, name, low, high)
            last = high if step_text else first

        values.update(range(first, last + 1, step))
    return frozenset(values)


def parse_cron(expression: str) -> CronSpec:
    """Parse a 5-field cron expression.

    Raises:
        ValueError: wrong field count, bad syntax, or a value out of range.
    """
    parts = expression.split()
    if len(parts) != len(_FIELDS):
        raise ValueError(
            f"cron expression needs {len(_FIELDS)} fields, got {len(parts)}: '{expression}'"
        )
    minutes, hours, days, months, weekdays = (
        _parse_field(part, name, low, high)
        for part, (name, low, high) in zip(parts, _FIELDS)
    )
    if 7 in weekdays:
        weekdays = (weekdays - {7}) | {0}
    return CronSpec(
        expression=" ".join(parts),
        minutes=minutes,
        hours=hours,
        days_of_month=days,
        months=months,
        days_of_week=weekdays,
    )


def _matches_day(spec: CronSpec, moment: datetime) -> bool:
    if moment.month not in spec.months:
        return False
    # Python: Monday=0; cron: Sunday=0
    dom_ok = moment.day in spec.days_of_month
    dow_ok = (moment.weekday() + 1) % 7 in spec.days_of_week
    if spec.restricts_day_of_month and spec.restricts_day_of_week:
        return dom_ok or dow_ok
    return dom_ok and dow_ok


def matches_cron(spec: CronSpec, moment: datetime) -> bool:
    return (
        moment.minute in spec.minutes
        and moment.hour in spec.hours
        and _matches_day(spec, moment)
    )


def next_cron_match(
    spec: CronSpec, after: datetime, horizon_days: int = 366 * 4
) -> datetime:
    """First whole minute strictly after ``after`` that matches ``spec``.

    Skips whole days and hours that cannot match, so sparse schedules
    (``0 0 29 2 *``) resolve quickly.

    Raises:
        ValueError: nothing matches within ``horizon_days``.
    """
    candidate = after.replace(second=0, microsecond=0) + timedelta(minutes=1)
    limit = candidate + timedelta(days=horizon_days)
    while candidate < limit:
        if not _matches_day(spec, candidate):
            candidate = (candidate + timedelta(days=1)).replace(hour=0, minute=0)
        elif candidate.hour not in spec.hours:
            candidate = (candidate + timedelta(hours=1)).replace(minute=0)
        elif candidate.minute not in spec.minutes:
            candidate += timedelta(minutes=1)
        else:
            return candidate
    raise ValueError(f"'{spec.expression}' has no match within {horizon_days} days of {after}")


# =============================================================================
# Schedules
# =============================================================================


@dataclass(frozen=True)
class SweepSchedule:
    """When a sweep task runs: a cron expression or a fixed interval."""

    name: str
    task_name: str
    cron_expression: str | None = None
    interval_seconds: int | None = None
    is_active: bool = True
    last_run_at: datetime | None = None
    next_run_at: datetime | None = None

    def __post_init__(self) -> None:
        if (self.cron_expression is None) == (self.interval_seconds is None):
            raise ValueError(
                f"schedule '{self.name}' needs exactly one of cron_expression, interval_seconds"
            )
        if self.cron_expression is not None:
            parse_cron(self.cron_expression)
        if self.interval_seconds is not None and self.interval_seconds <= 0:
            raise ValueError(f"schedule '{self.name}': interval_seconds must be positive")


def should_fire(schedule: SweepSchedule, as_of: datetime) -> bool:
    """Active, armed, and its next run time has arrived."""
    if not schedule.is_active or schedule.next_run_at is None:
        return False
    return as_of >= schedule.next_run_at


def compute_next_run(schedule: SweepSchedule, after: datetime) -> datetime:
    if schedule.interval_seconds is not None:
        return after + timedelta(seconds=schedule.interval_seconds)
    return next_cron_match(parse_cron(schedule.cron_expression), after)
