from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Mapping, Sequence, Tuple

import pandas as pd

from .capacity import iter_days
from .models import AllocationEntry, TaskRequirement

logger = logging.getLogger(__name__)

EPSILON = 1e-9


class UnschedulableTaskError(RuntimeError):
    def __init__(self, task: TaskRequirement, remaining: float) -> None:
        super().__init__(f"Task {task.name} unschedulable: {remaining:.2f}h left after the date range")
        self.task = task
        self.remaining = remaining


@dataclass(frozen=True)
class ScheduleResult:
    entries: Tuple[AllocationEntry, ...]
    tasks: Tuple[TaskRequirement, ...]
    remaining: Tuple[float, ...]

    def is_complete(self) -> bool:
        return all(value <= EPSILON for value in self.remaining)

    def unscheduled(self) -> List[Tuple[TaskRequirement, float]]:
        return [(task, left) for task, left in zip(self.tasks, self.remaining) if left > EPSILON]

    def hours_for(self, task_name: str) -> float:
        return sum(entry.hours for entry in self.entries if entry.task_name == task_name)

    def total_hours(self) -> float:
        return sum(entry.hours for entry in self.entries)


def generate_schedule(
    start: date,
    end: date,
    capacity: Mapping[date, float],
    tasks: Sequence[TaskRequirement],
    *,
    default_hours: float = 0.0,
    strict: bool = False,
) -> ScheduleResult:
    """Pack tasks into days in caller order, filling each day before moving on.

    A task that completes mid-day hands the day's leftover hours to the next task,
    so one date can carry several entries. Work that does not fit into the range
    is reported through ``ScheduleResult.remaining`` (or raised when ``strict``).
    """
    remaining = [float(task.hours) for task in tasks]
    entries: List[AllocationEntry] = []

    def _skip_done(idx: int) -> int:
        while idx < len(tasks) and remaining[idx] <= EPSILON:
            remaining[idx] = 0.0
            idx += 1
        return idx

    task_idx = _skip_done(0)
    for day in iter_days(start, end):
        if task_idx >= len(tasks):
            break
        day_left = max(0.0, float(capacity.get(day, default_hours)))
        while day_left > EPSILON and task_idx < len(tasks):
            amount = min(day_left, remaining[task_idx])
            entries.append(AllocationEntry(date=day, task_name=tasks[task_idx].name, hours=amount))
            day_left -= amount
            remaining[task_idx] -= amount
            task_idx = _skip_done(task_idx)

    result = ScheduleResult(entries=tuple(entries), tasks=tuple(tasks), remaining=tuple(remaining))
    leftovers = result.unscheduled()
    if leftovers:
        if strict:
            task, left = leftovers[0]
            raise UnschedulableTaskError(task, left)
        for task, left in leftovers:
            logger.warning("task %s: %.2fh could not be scheduled between %s and %s", task.name, left, start, end)
    return result


def schedule_frame(result: ScheduleResult) -> pd.DataFrame:
    rows = [
        {"date": entry.date.isoformat(), "task": entry.task_name, "hours": round(entry.hours, 4)}
        for entry in result.entries
    ]
    return pd.DataFrame(rows, columns=["date", "task", "hours"])
