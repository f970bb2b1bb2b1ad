"""
Calendar utilities (``rental_kernel.domain.calendar``).

Pure date arithmetic used by the due schedule, the overlap validator and
contract helpers.  ZERO I/O, no clock access.

* ``clamp_day_to_month`` -- day-of-month rule applied to a given month,
  clamped to that month's last day (31 -> 30, 28 or 29).
* ``months_between`` -- whole calendar months between two dates, with an
  ``inclusive`` flag that treats ``end`` as a covered day.
* ``periods_overlap`` -- inclusive-day range intersection.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterator
from datetime import date, timedelta


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def clamp_day_to_month(day_of_month: int, year: int, month: int) -> date:
    """Date in (year, month) for ``day_of_month``, clamped to the month end.

    >>> clamp_day_to_month(31, 2023, 2)
    datetime.date(2023, 2, 28)
    >>> clamp_day_to_month(31, 2024, 2)
    datetime.date(2024, 2, 29)
    """
    if not 1 <= day_of_month <= 31:
        raise ValueError(f"day_of_month must be in 1..31, got {day_of_month}")
    return date(year, month, min(day_of_month, days_in_month(year, month)))


def add_months(value: date, months: int) -> date:
    """Shift by whole months, clamping the day (Jan 31 + 1 month = Feb 28/29)."""
    index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(index, 12)
    return clamp_day_to_month(value.day, year, month + 1)


def iter_months(start: date, end: date) -> Iterator[tuple[int, int]]:
    """Yield (year, month) from the month containing ``start`` through the
    month containing ``end``, inclusive.  Empty when ``end < start``."""
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        yield year, month
        month += 1
        if month > 12:
            year, month = year + 1, 1


def months_between(start: date, end: date, inclusive: bool = False) -> int:
    """Whole calendar months from ``start`` to ``end``.

    Exclusive counting (the default) treats ``end`` as the boundary: Jan 15
    to Feb 15 is one month, Jan 15 to Feb 14 is zero, and a month only
    completes once ``end`` reaches the start's day number (Jan 31 to Feb 28
    is zero).  Inclusive counting treats ``end`` as a covered day, so a
    Jan 1 - Dec 31 contract is 12 months rather than 11.  Negative when
    ``end`` precedes ``start``.
    """
    if inclusive:
        end = end + timedelta(days=1)
    if end < start:
        return -months_between(end, start)
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return months


def periods_overlap(
    start1: date, end1: date, start2: date, end2: date
) -> bool:
    """Inclusive-day overlap: sharing a single day counts."""
    return start1 <= end2 and start2 <= end1


def days_until(today: date, target: date) -> int:
    return (target - today).days
