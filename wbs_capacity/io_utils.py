from __future__ import annotations

import json
from collections import defaultdict
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd
from dateutil import parser as dateparser

from .models import (
    DEFAULT_FULL_DAY_OFF_TITLES,
    DEFAULT_QUANTIZATION_UNIT,
    DEFAULT_STANDARD_DAILY_HOURS,
    DEFAULT_WEEKEND_DAYS,
    HOLIDAY_TYPES,
    Assignee,
    CalculationOptions,
    CompanyHoliday,
    EngineConfig,
    PlannedTask,
    ScheduleEntry,
)

_TASK_REQUIRED_COLUMNS = {"id", "name", "planned_hours"}
_HOLIDAY_REQUIRED_COLUMNS = {"date", "name"}
_SCHEDULE_REQUIRED_COLUMNS = {"user_id", "date", "title"}


def _require_columns(df: pd.DataFrame, required: Iterable[str], source: str) -> None:
    missing = [col for col in sorted(required) if col not in df.columns]
    if missing:
        raise ValueError(f"{source} missing required columns: {', '.join(missing)}")


def _is_blank(value: object) -> bool:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return True
    return isinstance(value, str) and value.strip() == ""


def _parse_optional_str(value: object) -> Optional[str]:
    if _is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _parse_optional_date(value: object, field_name: str) -> Optional[date]:
    if _is_blank(value):
        return None
    try:
        return dateparser.isoparse(str(value)).date()
    except (ValueError, TypeError) as exc:
        raise ValueError(f"invalid date in '{field_name}': {value}") from exc


def _parse_required_date(value: object, field_name: str) -> date:
    parsed = _parse_optional_date(value, field_name)
    if parsed is None:
        raise ValueError(f"'{field_name}' is required")
    return parsed


def _numeric_column(df: pd.DataFrame, col: str, source: str) -> None:
    try:
        df[col] = pd.to_numeric(df[col]).fillna(0.0)
    except ValueError as exc:
        raise ValueError(f"invalid numeric value in {source} column '{col}'") from exc
    if (df[col] < 0).any():
        raise ValueError(f"{source} column '{col}' contains negative values")


def load_tasks(path: str | Path) -> List[PlannedTask]:
    df = pd.read_csv(path, dtype={"id": str, "task_no": str, "assignee_id": str})
    _require_columns(df, _TASK_REQUIRED_COLUMNS, "tasks.csv")
    _numeric_column(df, "planned_hours", "tasks.csv")
    if "actual_hours" in df.columns:
        _numeric_column(df, "actual_hours", "tasks.csv")
    tasks: List[PlannedTask] = []
    for row in df.to_dict(orient="records"):
        if _is_blank(row["name"]):
            raise ValueError(f"tasks.csv: task {row['id']} has no name")
        tasks.append(
            PlannedTask(
                id=str(row["id"]).strip(),
                name=str(row["name"]).strip(),
                planned_hours=float(row["planned_hours"]),
                task_no=_parse_optional_str(row.get("task_no")) or "",
                planned_start=_parse_optional_date(row.get("planned_start"), "planned_start"),
                planned_end=_parse_optional_date(row.get("planned_end"), "planned_end"),
                assignee_id=_parse_optional_str(row.get("assignee_id")),
                actual_hours=float(row.get("actual_hours", 0.0) or 0.0),
            )
        )
    return tasks


def load_holidays(path: str | Path) -> List[CompanyHoliday]:
    df = pd.read_csv(path, dtype=str)
    _require_columns(df, _HOLIDAY_REQUIRED_COLUMNS, "holidays.csv")
    holidays: List[CompanyHoliday] = []
    for row in df.to_dict(orient="records"):
        holiday_type = (_parse_optional_str(row.get("type")) or "COMPANY").upper()
        if holiday_type not in HOLIDAY_TYPES:
            raise ValueError(f"holidays.csv: unsupported type '{holiday_type}'")
        holidays.append(
            CompanyHoliday(
                date=_parse_required_date(row["date"], "date"),
                name=_parse_optional_str(row["name"]) or "",
                type=holiday_type,
            )
        )
    return holidays


def load_assignees(path: str | Path) -> Dict[str, Assignee]:
    data = json.loads(Path(path).read_text())
    if not isinstance(data, list):
        raise ValueError("assignees file must be a JSON array")
    assignees: Dict[str, Assignee] = {}
    for entry in data:
        if not isinstance(entry, dict):
            raise ValueError("assignee entries must be objects")
        user_id = entry.get("user_id")
        if not user_id or not isinstance(user_id, str):
            raise ValueError("assignee user_id is required")
        rate = entry.get("rate", 1.0)
        if not isinstance(rate, (int, float)) or isinstance(rate, bool):
            raise ValueError(f"rate must be a number for {user_id}")
        raw_id = entry.get("id")
        assignee = Assignee(
            user_id=user_id,
            name=str(entry.get("name", "") or ""),
            rate=float(rate),
            id=str(raw_id) if raw_id is not None else None,
        )
        if assignee.key in assignees:
            raise ValueError(f"duplicate assignee id '{assignee.key}'")
        assignees[assignee.key] = assignee
    return assignees


def load_schedules(path: str | Path) -> Dict[str, List[ScheduleEntry]]:
    df = pd.read_csv(path, dtype=str)
    _require_columns(df, _SCHEDULE_REQUIRED_COLUMNS, "schedules.csv")
    schedules: Dict[str, List[ScheduleEntry]] = defaultdict(list)
    for row in df.to_dict(orient="records"):
        user_id = _parse_optional_str(row["user_id"])
        if not user_id:
            raise ValueError("schedules.csv contains a row without user_id")
        schedules[user_id].append(
            ScheduleEntry(
                user_id=user_id,
                date=_parse_required_date(row["date"], "date"),
                title=_parse_optional_str(row["title"]) or "",
                start_time=_parse_optional_str(row.get("start_time")) or "",
                end_time=_parse_optional_str(row.get("end_time")) or "",
            )
        )
    return dict(schedules)


def _positive_number(data: dict, key: str, default: float) -> float:
    value = data.get(key, default)
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ValueError(f"{key} must be a number")
    if value <= 0:
        raise ValueError(f"{key} must be positive")
    return float(value)


def _weekend_days(data: dict) -> Tuple[int, ...]:
    raw = data.get("weekend_days", list(DEFAULT_WEEKEND_DAYS))
    if not isinstance(raw, list) or not all(isinstance(day, int) and not isinstance(day, bool) for day in raw):
        raise ValueError("weekend_days must be an array of integers")
    if any(day < 0 or day > 6 for day in raw):
        raise ValueError("weekend_days values must be in [0, 6]")
    return tuple(raw)


def load_config(path: str | Path) -> EngineConfig:
    data = json.loads(Path(path).read_text())
    if not isinstance(data, dict):
        raise ValueError("config file must be a JSON object")
    try:
        project_start = dateparser.isoparse(data["project_start"]).date()
    except (KeyError, ValueError, TypeError) as exc:
        raise ValueError("project_start must be a valid ISO date string") from exc
    try:
        project_end = dateparser.isoparse(data["project_end"]).date()
    except (KeyError, ValueError, TypeError) as exc:
        raise ValueError("project_end must be a valid ISO date string") from exc
    if project_end < project_start:
        raise ValueError("project_end must not be earlier than project_start")

    consider_schedules = data.get("consider_personal_schedules", True)
    if not isinstance(consider_schedules, bool):
        raise ValueError("consider_personal_schedules must be a boolean")
    off_titles = data.get("full_day_off_titles")
    if off_titles is None:
        off_titles = list(DEFAULT_FULL_DAY_OFF_TITLES)
    elif not isinstance(off_titles, list) or not all(isinstance(title, str) for title in off_titles):
        raise ValueError("full_day_off_titles must be an array of strings")
    logging_level = data.get("logging_level", "INFO")
    if not isinstance(logging_level, str):
        raise ValueError("logging_level must be a string")

    return EngineConfig(
        project_start=project_start,
        project_end=project_end,
        standard_daily_hours=_positive_number(data, "standard_daily_hours", DEFAULT_STANDARD_DAILY_HOURS),
        quantization_unit=_positive_number(data, "quantization_unit", DEFAULT_QUANTIZATION_UNIT),
        weekend_days=_weekend_days(data),
        calculation_options=CalculationOptions(
            consider_personal_schedules=consider_schedules,
            full_day_off_titles=tuple(off_titles),
        ),
        logging_level=logging_level,
    )


def ensure_directory(path: str | Path) -> Path:
    target = Path(path)
    target.mkdir(parents=True, exist_ok=True)
    return target


def write_csv(df: pd.DataFrame, path: str | Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
