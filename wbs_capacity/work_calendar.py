from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import (
    DEFAULT_STANDARD_DAILY_HOURS,
    DEFAULT_WEEKEND_DAYS,
    Assignee,
    CalculationOptions,
    CompanyHoliday,
    ScheduleEntry,
)


class CompanyCalendar:
    """Company-wide non-working days: weekends plus national and company holidays.

    Instances are immutable after construction and can be passed wherever a
    ``Callable[[date], bool]`` non-working predicate is expected.
    """

    def __init__(
        self,
        holidays: Iterable[CompanyHoliday] = (),
        *,
        standard_daily_hours: float = DEFAULT_STANDARD_DAILY_HOURS,
        weekend_days: Sequence[int] = DEFAULT_WEEKEND_DAYS,
    ) -> None:
        if standard_daily_hours <= 0:
            raise ValueError("standard_daily_hours must be positive")
        self._standard_daily_hours = float(standard_daily_hours)
        self._weekend_days = frozenset(int(day) for day in weekend_days)
        self._holidays: Dict[date, CompanyHoliday] = {holiday.date: holiday for holiday in holidays}

    @property
    def standard_daily_hours(self) -> float:
        return self._standard_daily_hours

    def is_weekend(self, day: date) -> bool:
        return day.weekday() in self._weekend_days

    def is_company_holiday(self, day: date) -> bool:
        return self.is_weekend(day) or day in self._holidays

    is_non_working = is_company_holiday

    def __call__(self, day: date) -> bool:
        return self.is_company_holiday(day)

    def holiday_name(self, day: date) -> Optional[str]:
        holiday = self._holidays.get(day)
        return holiday.name if holiday else None

    def holidays(self) -> List[CompanyHoliday]:
        return [self._holidays[day] for day in sorted(self._holidays)]


class AssigneeWorkingCalendar:
    """Per-assignee view over the company calendar.

    Combines company non-working days, the assignee's rate and the personal
    schedule entries of that assignee to answer how many hours are workable on
    a given day.
    """

    def __init__(
        self,
        assignee: Assignee,
        company_calendar: CompanyCalendar,
        schedules: Iterable[ScheduleEntry] = (),
        options: Optional[CalculationOptions] = None,
    ) -> None:
        self.assignee = assignee
        self.company_calendar = company_calendar
        self.options = options or CalculationOptions()
        by_day: Dict[date, List[ScheduleEntry]] = defaultdict(list)
        if self.options.consider_personal_schedules:
            for entry in schedules:
                if entry.user_id == assignee.user_id:
                    by_day[entry.date].append(entry)
        self._schedules_by_day = dict(by_day)

    def schedules_for(self, day: date) -> Tuple[ScheduleEntry, ...]:
        return tuple(self._schedules_by_day.get(day, ()))

    def _has_full_day_off(self, entries: Sequence[ScheduleEntry]) -> bool:
        titles = self.options.full_day_off_titles
        return any(entry.is_full_day_off(titles) for entry in entries)

    def is_working_day(self, day: date) -> bool:
        if self.company_calendar.is_company_holiday(day):
            return False
        if self._has_full_day_off(self.schedules_for(day)):
            return False
        return self.assignee.rate > 0

    def _deducted_hours(self, entries: Sequence[ScheduleEntry], cap: float) -> float:
        if not entries:
            return 0.0
        if self._has_full_day_off(entries):
            return cap
        total = sum(entry.duration_hours() for entry in entries)
        return min(cap, total)

    def available_hours(self, day: date) -> float:
        if not self.is_working_day(day):
            return 0.0
        standard = self.company_calendar.standard_daily_hours
        remaining = max(0.0, standard - self._deducted_hours(self.schedules_for(day), standard))
        return min(remaining, standard * self.assignee.rate)


def unassigned_hours(company_calendar: CompanyCalendar):
    """Hours-per-day function for tasks without an assignee (company calendar only)."""

    def _hours(day: date) -> float:
        if company_calendar.is_company_holiday(day):
            return 0.0
        return company_calendar.standard_daily_hours

    return _hours
