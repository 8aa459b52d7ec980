from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from .capacity import iter_days
from .models import NO_WORKING_DAYS, Assignee, CalculationOptions, FeasibilityWarning, PlannedTask, ScheduleEntry
from .work_calendar import AssigneeWorkingCalendar, CompanyCalendar

logger = logging.getLogger(__name__)


def _has_capacity(
    task: PlannedTask,
    assignee: Optional[Assignee],
    calendar: CompanyCalendar,
    schedules: Iterable[ScheduleEntry],
    options: Optional[CalculationOptions],
) -> bool:
    days = iter_days(task.planned_start, task.planned_end)
    if assignee is None:
        return any(not calendar.is_company_holiday(day) for day in days)
    working_calendar = AssigneeWorkingCalendar(assignee, calendar, schedules, options)
    return sum(working_calendar.available_hours(day) for day in days) > 0


def validate_task_feasibility(
    task: PlannedTask,
    assignee: Optional[Assignee],
    calendar: CompanyCalendar,
    schedules: Iterable[ScheduleEntry] = (),
    options: Optional[CalculationOptions] = None,
) -> Optional[FeasibilityWarning]:
    """Flag a task whose whole planned window offers no working capacity.

    Tasks without a planned start or end are not evaluated. Unassigned tasks only
    look at company non-working days; assigned tasks also take the assignee's
    rate and personal schedule into account.
    """
    if not task.has_window():
        return None
    if _has_capacity(task, assignee, calendar, schedules, options):
        return None
    logger.warning("task %s (%s) has no working days between %s and %s", task.id, task.name, task.planned_start, task.planned_end)
    return FeasibilityWarning(
        task_id=task.id,
        task_no=task.task_no,
        task_name=task.name,
        assignee_id=assignee.user_id if assignee else None,
        assignee_name=assignee.display_name if assignee else None,
        period_start=task.planned_start,
        period_end=task.planned_end,
        reason=NO_WORKING_DAYS,
    )


def validate_tasks_feasibility(
    tasks: Sequence[PlannedTask],
    assignees: Mapping[str, Assignee],
    calendar: CompanyCalendar,
    schedules_by_user: Mapping[str, Sequence[ScheduleEntry]],
    options: Optional[CalculationOptions] = None,
) -> List[FeasibilityWarning]:
    warnings: List[FeasibilityWarning] = []
    for task in tasks:
        assignee = assignees.get(task.assignee_id) if task.assignee_id is not None else None
        schedules = schedules_by_user.get(assignee.user_id, ()) if assignee else ()
        warning = validate_task_feasibility(task, assignee, calendar, schedules, options)
        if warning:
            warnings.append(warning)
    return warnings


def warnings_frame(warnings: Iterable[FeasibilityWarning]) -> pd.DataFrame:
    rows = [
        {
            "task_id": warning.task_id,
            "task_no": warning.task_no,
            "task_name": warning.task_name,
            "assignee_id": warning.assignee_id or "",
            "assignee_name": warning.assignee_name or "",
            "period_start": warning.period_start.isoformat(),
            "period_end": warning.period_end.isoformat(),
            "reason": warning.reason,
        }
        for warning in warnings
    ]
    return pd.DataFrame(
        rows,
        columns=[
            "task_id",
            "task_no",
            "task_name",
            "assignee_id",
            "assignee_name",
            "period_start",
            "period_end",
            "reason",
        ],
    )
