"""
Pure schedule evaluation.

``is_due(schedule, as_of)`` and ``next_run_at(schedule)`` are PURE: no I/O,
no clock reads.  The scheduler supplies the current time.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from stock_batch.domain.types import RefreshSchedule


def next_run_at(schedule: RefreshSchedule) -> datetime | None:
    """When the schedule fires next; None means immediately."""
    if schedule.last_run_at is None:
        return None
    return schedule.last_run_at + timedelta(seconds=schedule.interval_seconds)


def is_due(schedule: RefreshSchedule, as_of: datetime) -> bool:
    """True if an active schedule should fire at ``as_of``."""
    if not schedule.is_active:
        return False
    next_run = next_run_at(schedule)
    return next_run is None or as_of >= next_run
