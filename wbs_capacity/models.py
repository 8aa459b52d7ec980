from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Tuple


DATE_FMT = "%Y-%m-%d"
MONTH_FMT = "%Y-%m"
TIME_FMT = "%H:%M"

DEFAULT_STANDARD_DAILY_HOURS = 7.5
DEFAULT_QUANTIZATION_UNIT = 0.25
DEFAULT_WEEKEND_DAYS: Tuple[int, ...] = (5, 6)
DEFAULT_FULL_DAY_OFF_TITLES: Tuple[str, ...] = (
    "Vacation",
    "Paid leave",
    "Day off",
    "Full day off",
    "Compensatory day off",
    "Substitute holiday",
)

NO_WORKING_DAYS = "NO_WORKING_DAYS"
HOLIDAY_TYPES = ("NATIONAL", "COMPANY")


def _parse_time(value: str, field_name: str) -> datetime:
    try:
        return datetime.strptime(value.strip(), TIME_FMT)
    except ValueError as exc:
        raise ValueError(f"invalid time in '{field_name}': {value!r}") from exc


@dataclass(frozen=True)
class CompanyHoliday:
    date: date
    name: str
    type: str = "COMPANY"

    def __post_init__(self) -> None:
        if self.type not in HOLIDAY_TYPES:
            raise ValueError(f"unsupported holiday type '{self.type}'")


@dataclass(frozen=True)
class Assignee:
    """Member assigned to tasks with a fractional commitment rate."""

    user_id: str
    name: str = ""
    rate: float = 1.0
    id: Optional[str] = None

    def __post_init__(self) -> None:
        if not (0.0 <= self.rate <= 1.0):
            raise ValueError(f"rate for {self.user_id} must be in [0, 1]: {self.rate}")

    @property
    def key(self) -> str:
        return self.id if self.id is not None else self.user_id

    @property
    def display_name(self) -> str:
        return self.name or self.user_id


@dataclass(frozen=True)
class ScheduleEntry:
    """Personal schedule exception for one user on one day.

    Entries whose title is one of the configured full-day-off titles remove the
    whole day; any other entry deducts the span between ``start_time`` and
    ``end_time`` ("HH:MM").
    """

    user_id: str
    date: date
    title: str
    start_time: str = ""
    end_time: str = ""

    def __post_init__(self) -> None:
        if bool(self.start_time) != bool(self.end_time):
            raise ValueError(f"schedule '{self.title}' needs both start_time and end_time")
        if self.start_time:
            _parse_time(self.start_time, "start_time")
            _parse_time(self.end_time, "end_time")

    def is_full_day_off(self, off_titles: Tuple[str, ...]) -> bool:
        return self.title in off_titles

    def duration_hours(self) -> float:
        if not self.start_time:
            return 0.0
        start = _parse_time(self.start_time, "start_time")
        end = _parse_time(self.end_time, "end_time")
        return max(0.0, (end - start).total_seconds() / 3600.0)


@dataclass(frozen=True)
class TaskRequirement:
    name: str
    hours: float

    def __post_init__(self) -> None:
        if self.hours < 0:
            raise ValueError(f"task '{self.name}' has negative required hours")


@dataclass(frozen=True)
class AllocationEntry:
    date: date
    task_name: str
    hours: float


@dataclass(frozen=True)
class PlannedTask:
    """WBS task row as delivered by the task persistence layer."""

    id: str
    name: str
    planned_hours: float = 0.0
    task_no: str = ""
    planned_start: Optional[date] = None
    planned_end: Optional[date] = None
    assignee_id: Optional[str] = None
    actual_hours: float = 0.0

    def __post_init__(self) -> None:
        if self.planned_hours < 0 or self.actual_hours < 0:
            raise ValueError(f"task {self.id} has negative hours")

    def has_window(self) -> bool:
        return self.planned_start is not None and self.planned_end is not None

    def requirement(self) -> TaskRequirement:
        return TaskRequirement(name=self.name, hours=self.planned_hours)


@dataclass(frozen=True)
class FeasibilityWarning:
    task_id: str
    task_no: str
    task_name: str
    assignee_id: Optional[str]
    assignee_name: Optional[str]
    period_start: date
    period_end: date
    reason: str = NO_WORKING_DAYS


@dataclass(frozen=True)
class CalculationOptions:
    consider_personal_schedules: bool = True
    full_day_off_titles: Tuple[str, ...] = DEFAULT_FULL_DAY_OFF_TITLES


@dataclass(frozen=True)
class EngineConfig:
    project_start: date
    project_end: date
    standard_daily_hours: float = DEFAULT_STANDARD_DAILY_HOURS
    quantization_unit: float = DEFAULT_QUANTIZATION_UNIT
    weekend_days: Tuple[int, ...] = DEFAULT_WEEKEND_DAYS
    calculation_options: CalculationOptions = field(default_factory=CalculationOptions)
    logging_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.standard_daily_hours <= 0:
            raise ValueError("standard_daily_hours must be positive")
        if self.quantization_unit <= 0:
            raise ValueError("quantization_unit must be positive")
        invalid = [day for day in self.weekend_days if not 0 <= day <= 6]
        if invalid:
            raise ValueError(f"weekend_days must be weekday numbers 0-6: {invalid}")
