from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Sequence, Tuple

from .capacity import iter_days
from .models import PlannedTask, ScheduleEntry
from .work_calendar import AssigneeWorkingCalendar

EPSILON = 1e-9


@dataclass(frozen=True)
class TaskShare:
    task_id: str
    task_name: str
    allocated_hours: float
    total_hours: float


@dataclass(frozen=True)
class DailyWorkload:
    """One assignee's load on one day, as shown on the assignee Gantt."""

    date: date
    available_hours: float
    task_shares: Tuple[TaskShare, ...] = ()
    is_weekend: bool = False
    is_company_holiday: bool = False
    schedules: Tuple[ScheduleEntry, ...] = ()

    @property
    def allocated_hours(self) -> float:
        return sum(share.allocated_hours for share in self.task_shares)

    @property
    def is_overloaded(self) -> bool:
        return self.allocated_hours - self.available_hours > EPSILON


def _window_capacity(tasks: Sequence[PlannedTask], working_calendar: AssigneeWorkingCalendar) -> Dict[str, float]:
    totals: Dict[str, float] = {}
    for task in tasks:
        if not task.has_window() or not task.planned_hours:
            continue
        totals[task.id] = sum(
            working_calendar.available_hours(day) for day in iter_days(task.planned_start, task.planned_end)
        )
    return totals


def calculate_daily_workloads(
    tasks: Sequence[PlannedTask],
    working_calendar: AssigneeWorkingCalendar,
    start: date,
    end: date,
) -> List[DailyWorkload]:
    """Spread each task's planned hours over its window, weighted by daily availability."""
    window_capacity = _window_capacity(tasks, working_calendar)
    company_calendar = working_calendar.company_calendar
    workloads: List[DailyWorkload] = []
    for day in iter_days(start, end):
        available = working_calendar.available_hours(day)
        shares: List[TaskShare] = []
        if available > 0:
            for task in tasks:
                in_window = window_capacity.get(task.id, 0.0)
                if in_window <= 0 or not (task.planned_start <= day <= task.planned_end):
                    continue
                shares.append(
                    TaskShare(
                        task_id=task.id,
                        task_name=task.name,
                        allocated_hours=task.planned_hours * available / in_window,
                        total_hours=task.planned_hours,
                    )
                )
        workloads.append(
            DailyWorkload(
                date=day,
                available_hours=available,
                task_shares=tuple(shares),
                is_weekend=company_calendar.is_weekend(day),
                is_company_holiday=company_calendar.is_company_holiday(day),
                schedules=working_calendar.schedules_for(day),
            )
        )
    return workloads
