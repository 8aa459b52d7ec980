from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional

import pandas as pd

from .capacity import iter_days
from .models import MONTH_FMT, PlannedTask
from .quantize import AllocationQuantizer
from .work_calendar import AssigneeWorkingCalendar

HoursForDay = Callable[[date], float]


def month_key(day: date) -> str:
    return day.strftime(MONTH_FMT)


def available_hours_by_month(start: date, end: date, hours_for_day: HoursForDay) -> Dict[str, float]:
    monthly: Dict[str, float] = defaultdict(float)
    for day in iter_days(start, end):
        hours = hours_for_day(day)
        if hours > 0:
            monthly[month_key(day)] += hours
    return dict(monthly)


def working_days_by_month(start: date, end: date, is_working_day: Callable[[date], bool]) -> Dict[str, int]:
    monthly: Dict[str, int] = defaultdict(int)
    for day in iter_days(start, end):
        if is_working_day(day):
            monthly[month_key(day)] += 1
    return dict(monthly)


def distribute_hours_by_month(
    total_hours: float,
    start: date,
    end: date,
    hours_for_day: HoursForDay,
) -> Dict[str, float]:
    """Split ``total_hours`` over the months of the window in proportion to available hours.

    The result is unrounded; feed it to ``AllocationQuantizer.quantize``. A window
    without any available hours books everything to the start month.
    """
    if start > end:
        return {}
    monthly_available = available_hours_by_month(start, end, hours_for_day)
    total_available = sum(monthly_available.values())
    if total_available <= 0:
        return {month_key(start): float(total_hours)}
    return {
        month: total_hours * available / total_available
        for month, available in sorted(monthly_available.items())
    }


@dataclass(frozen=True)
class MonthlyAllocationDetail:
    planned_hours: float
    actual_hours: float
    working_days: int
    available_hours: float
    allocation_ratio: float


@dataclass(frozen=True)
class MonthlyTaskAllocation:
    task: PlannedTask
    months: Dict[str, MonthlyAllocationDetail]

    def month_keys(self) -> List[str]:
        return sorted(self.months)

    def get(self, month: str) -> Optional[MonthlyAllocationDetail]:
        return self.months.get(month)

    def total_planned_hours(self) -> float:
        return sum(detail.planned_hours for detail in self.months.values())

    def total_actual_hours(self) -> float:
        return sum(detail.actual_hours for detail in self.months.values())


def allocate_task_by_month(
    task: PlannedTask,
    hours_for_day: HoursForDay,
    quantizer: AllocationQuantizer,
    is_working_day: Optional[Callable[[date], bool]] = None,
) -> Optional[MonthlyTaskAllocation]:
    if task.planned_start is None:
        return None
    start = task.planned_start
    end = task.planned_end or start

    def _has_hours(day: date) -> bool:
        return hours_for_day(day) > 0

    planned = quantizer.quantize(distribute_hours_by_month(task.planned_hours, start, end, hours_for_day))
    available = available_hours_by_month(start, end, hours_for_day)
    working_days = working_days_by_month(start, end, is_working_day or _has_hours)
    total_available = sum(available.values())
    start_month = month_key(start)

    months: Dict[str, MonthlyAllocationDetail] = {}
    for month, hours in planned.items():
        month_available = available.get(month, 0.0)
        months[month] = MonthlyAllocationDetail(
            planned_hours=hours,
            actual_hours=task.actual_hours if month == start_month else 0.0,
            working_days=working_days.get(month, 0),
            available_hours=month_available,
            allocation_ratio=month_available / total_available if total_available > 0 else 0.0,
        )
    return MonthlyTaskAllocation(task=task, months=months)


def allocate_for_assignee(
    task: PlannedTask,
    working_calendar: AssigneeWorkingCalendar,
    quantizer: AllocationQuantizer,
) -> Optional[MonthlyTaskAllocation]:
    return allocate_task_by_month(
        task,
        working_calendar.available_hours,
        quantizer,
        is_working_day=working_calendar.is_working_day,
    )


def monthly_totals(allocations: Iterable[MonthlyTaskAllocation]) -> Dict[str, float]:
    totals: Dict[str, float] = defaultdict(float)
    for allocation in allocations:
        for month, detail in allocation.months.items():
            totals[month] += detail.planned_hours
    return dict(sorted(totals.items()))


def monthly_allocation_frame(allocations: Iterable[MonthlyTaskAllocation]) -> pd.DataFrame:
    rows = []
    for allocation in allocations:
        for month in allocation.month_keys():
            detail = allocation.months[month]
            rows.append(
                {
                    "task_id": allocation.task.id,
                    "task_name": allocation.task.name,
                    "assignee_id": allocation.task.assignee_id or "",
                    "month": month,
                    "planned_hours": detail.planned_hours,
                    "actual_hours": detail.actual_hours,
                    "working_days": detail.working_days,
                    "available_hours": round(detail.available_hours, 4),
                    "allocation_ratio": round(detail.allocation_ratio, 4),
                }
            )
    return pd.DataFrame(
        rows,
        columns=[
            "task_id",
            "task_name",
            "assignee_id",
            "month",
            "planned_hours",
            "actual_hours",
            "working_days",
            "available_hours",
            "allocation_ratio",
        ],
    )
