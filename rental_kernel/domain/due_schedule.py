"""
Monthly due schedule (``rental_kernel.domain.due_schedule``).

Pure computation of the due dates a contract produces.  Persistence and the
per-date existence check live in ``rental_kernel.services.due_generation``.

Algorithm:
    Walk calendar months from the month containing ``from_date`` through
    the month containing ``end_date``.  In each month the due falls on
    ``min(day_of_month, days_in_month)``.  Dates before ``from_date`` or
    after ``end_date`` are dropped, so a contract that starts after its
    billing day in the first month gets no due for that month.
"""

from __future__ import annotations

from datetime import date

from rental_kernel.domain.calendar import clamp_day_to_month, iter_months


def compute_due_dates(
    day_of_month: int,
    start_date: date,
    end_date: date,
    from_date: date | None = None,
) -> list[date]:
    """Due dates within ``[max(from_date, start_date), end_date]``.

    ``from_date`` defaults to ``start_date``; renewals and modifications
    pass a later date so already-serviced months are not billed again.
    """
    window_start = start_date if from_date is None else max(from_date, start_date)
    if end_date < window_start:
        return []

    dates: list[date] = []
    for year, month in iter_months(window_start, end_date):
        due = clamp_day_to_month(day_of_month, year, month)
        if window_start <= due <= end_date:
            dates.append(due)
    return dates


def describe_due(due_date: date) -> str:
    return f"Monthly rent for {due_date:%B %Y}"
