"""Tests for company and per-assignee working calendars."""

from __future__ import annotations

from datetime import date

import pytest

from wbs_capacity.models import Assignee, CalculationOptions, CompanyHoliday, ScheduleEntry
from wbs_capacity.work_calendar import AssigneeWorkingCalendar, CompanyCalendar, unassigned_hours

MONDAY = date(2024, 7, 1)
TUESDAY = date(2024, 7, 2)
SATURDAY = date(2024, 7, 6)


def working_calendar(rate: float = 1.0, schedules=(), holidays=(), options=None) -> AssigneeWorkingCalendar:
    return AssigneeWorkingCalendar(
        Assignee(user_id="u1", name="Test User", rate=rate),
        CompanyCalendar(holidays),
        schedules,
        options,
    )


def entry(title: str, day: date = TUESDAY, start: str = "", end: str = "", user_id: str = "u1") -> ScheduleEntry:
    return ScheduleEntry(user_id=user_id, date=day, title=title, start_time=start, end_time=end)


# --- CompanyCalendar ---

def test_weekends_and_holidays_are_non_working() -> None:
    calendar = CompanyCalendar([CompanyHoliday(TUESDAY, "Founders day")])
    assert not calendar.is_company_holiday(MONDAY)
    assert calendar.is_company_holiday(TUESDAY)
    assert calendar.is_company_holiday(SATURDAY)
    assert calendar(SATURDAY)
    assert calendar.is_weekend(SATURDAY)
    assert not calendar.is_weekend(TUESDAY)
    assert calendar.holiday_name(TUESDAY) == "Founders day"
    assert calendar.holiday_name(MONDAY) is None


def test_custom_weekend_days() -> None:
    calendar = CompanyCalendar(weekend_days=(4, 5))
    assert calendar.is_company_holiday(date(2024, 7, 5))
    assert not calendar.is_company_holiday(date(2024, 7, 7))


def test_holidays_listed_in_date_order() -> None:
    calendar = CompanyCalendar(
        [CompanyHoliday(date(2024, 8, 12), "Summer", "NATIONAL"), CompanyHoliday(TUESDAY, "Company")]
    )
    assert [holiday.date for holiday in calendar.holidays()] == [TUESDAY, date(2024, 8, 12)]


def test_non_positive_standard_hours_rejected() -> None:
    with pytest.raises(ValueError):
        CompanyCalendar(standard_daily_hours=0)


def test_unknown_holiday_type_rejected() -> None:
    with pytest.raises(ValueError):
        CompanyHoliday(TUESDAY, "x", "REGIONAL")


def test_unassigned_hours_follow_company_calendar() -> None:
    hours = unassigned_hours(CompanyCalendar(standard_daily_hours=8.0))
    assert hours(MONDAY) == 8.0
    assert hours(SATURDAY) == 0.0


# --- AssigneeWorkingCalendar ---

def test_full_rate_plain_day() -> None:
    assert working_calendar().available_hours(MONDAY) == 7.5


def test_rate_caps_available_hours() -> None:
    assert working_calendar(rate=0.8).available_hours(MONDAY) == pytest.approx(6.0)


def test_full_day_off_removes_the_day() -> None:
    calendar = working_calendar(schedules=[entry("Vacation")])
    assert not calendar.is_working_day(TUESDAY)
    assert calendar.available_hours(TUESDAY) == 0.0
    assert calendar.available_hours(MONDAY) == 7.5


def test_partial_absence_is_deducted() -> None:
    calendar = working_calendar(schedules=[entry("Dentist", start="10:00", end="12:30")])
    assert calendar.is_working_day(TUESDAY)
    assert calendar.available_hours(TUESDAY) == pytest.approx(5.0)


def test_rate_cap_and_deduction_take_the_minimum() -> None:
    light = working_calendar(rate=0.5, schedules=[entry("Meeting", start="09:00", end="11:00")])
    assert light.available_hours(TUESDAY) == pytest.approx(3.75)
    heavy = working_calendar(rate=0.5, schedules=[entry("Training", start="09:00", end="15:00")])
    assert heavy.available_hours(TUESDAY) == pytest.approx(1.5)


def test_deductions_are_capped_at_standard_hours() -> None:
    calendar = working_calendar(
        schedules=[entry("Offsite", start="08:00", end="13:00"), entry("Offsite", start="13:00", end="18:00")]
    )
    assert calendar.is_working_day(TUESDAY)
    assert calendar.available_hours(TUESDAY) == 0.0


def test_other_users_schedules_are_ignored() -> None:
    calendar = working_calendar(schedules=[entry("Vacation", user_id="someone-else")])
    assert calendar.available_hours(TUESDAY) == 7.5
    assert calendar.schedules_for(TUESDAY) == ()


def test_personal_schedules_can_be_switched_off() -> None:
    options = CalculationOptions(consider_personal_schedules=False)
    calendar = working_calendar(schedules=[entry("Vacation")], options=options)
    assert calendar.available_hours(TUESDAY) == 7.5


def test_custom_full_day_off_titles() -> None:
    options = CalculationOptions(full_day_off_titles=("Sabbatical",))
    calendar = working_calendar(schedules=[entry("Sabbatical"), entry("Vacation", day=MONDAY)], options=options)
    assert calendar.available_hours(TUESDAY) == 0.0
    assert calendar.available_hours(MONDAY) == 7.5


def test_zero_rate_has_no_working_days() -> None:
    calendar = working_calendar(rate=0.0)
    assert not calendar.is_working_day(MONDAY)
    assert calendar.available_hours(MONDAY) == 0.0


def test_company_holiday_wins_over_everything() -> None:
    calendar = working_calendar(holidays=[CompanyHoliday(MONDAY, "Closed")])
    assert calendar.available_hours(MONDAY) == 0.0


# --- ScheduleEntry validation ---

def test_malformed_time_rejected() -> None:
    with pytest.raises(ValueError):
        entry("Meeting", start="9am", end="10:00")


def test_start_without_end_rejected() -> None:
    with pytest.raises(ValueError):
        entry("Meeting", start="09:00")


def test_inverted_times_deduct_nothing() -> None:
    assert entry("Meeting", start="12:00", end="10:00").duration_hours() == 0.0


def test_assignee_rate_validated() -> None:
    with pytest.raises(ValueError):
        Assignee(user_id="u1", rate=1.2)
