"""
rental_batch -- Scheduled contract sweeps.

Runs the kernel's periodic work on a cron-like, in-process scheduler:
the daily status sweep (activation, expiry, overdue dues), expiry
notices at 30 and 7 days, and the weekly renewal scan.

Architecture:
    rental_batch/ is a top-level package on top of rental_kernel.
    Nothing in rental_kernel imports from rental_batch.

    domain/schedule.py  pure cron parsing and schedule evaluation
    tasks.py            SweepTask protocol, the sweep tasks, TaskRegistry
    scheduler.py        SweepScheduler (tick / start / stop)
    __main__.py         ``python -m rental_batch``
"""
