from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Callable, Dict, Iterator

import pandas as pd

from .models import DEFAULT_STANDARD_DAILY_HOURS
from .work_calendar import AssigneeWorkingCalendar

logger = logging.getLogger(__name__)

CapacityTable = Dict[date, float]


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from ``start`` to ``end`` inclusive; nothing if start > end."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def compute_capacity(
    start: date,
    end: date,
    is_non_working: Callable[[date], bool],
    rate: float,
    standard_daily_hours: float = DEFAULT_STANDARD_DAILY_HOURS,
) -> CapacityTable:
    """Return the dense day -> workable hours table for one assignee.

    Non-working days are kept with 0 hours. Personal schedule deductions are not
    applied here; see ``assignee_capacity`` for that.
    """
    if not (0.0 <= rate <= 1.0):
        raise ValueError(f"availability rate must be in [0, 1]: {rate}")
    if standard_daily_hours <= 0:
        raise ValueError("standard_daily_hours must be positive")
    full_day = standard_daily_hours * rate
    table: CapacityTable = {}
    for day in iter_days(start, end):
        table[day] = 0.0 if is_non_working(day) else full_day
    logger.debug("capacity table %s..%s: %d days, %.2f hours", start, end, len(table), sum(table.values()))
    return table


def assignee_capacity(start: date, end: date, working_calendar: AssigneeWorkingCalendar) -> CapacityTable:
    return {day: working_calendar.available_hours(day) for day in iter_days(start, end)}


def total_capacity(table: CapacityTable) -> float:
    return sum(table.values())


def capacity_frame(table: CapacityTable) -> pd.DataFrame:
    rows = [{"date": day.isoformat(), "available_hours": round(hours, 4)} for day, hours in sorted(table.items())]
    return pd.DataFrame(rows, columns=["date", "available_hours"])
