from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .allocation import allocate_for_assignee, allocate_task_by_month, monthly_allocation_frame
from .capacity import capacity_frame, compute_capacity, total_capacity
from .feasibility import validate_tasks_feasibility
from .io_utils import (
    ensure_directory,
    load_assignees,
    load_config,
    load_holidays,
    load_schedules,
    load_tasks,
    write_csv,
)
from .models import Assignee, EngineConfig, FeasibilityWarning, PlannedTask, ScheduleEntry
from .quantize import AllocationQuantizer
from .schedule import ScheduleResult, UnschedulableTaskError, generate_schedule, schedule_frame
from .work_calendar import AssigneeWorkingCalendar, CompanyCalendar, unassigned_hours


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="WBS capacity and schedule batch tool (CSV/JSON in, CSV/Markdown out)."
    )
    parser.add_argument(
        "--project-dir",
        help="Project directory containing input/ and output/ subfolders",
    )
    parser.add_argument("--tasks", help="Path to tasks CSV (overrides project-dir default)")
    parser.add_argument("--holidays", help="Path to holidays CSV (optional)")
    parser.add_argument("--assignees", help="Path to assignees JSON (optional)")
    parser.add_argument("--schedules", help="Path to personal schedules CSV (optional)")
    parser.add_argument("--config", help="Path to configuration JSON file (overrides project-dir default)")
    parser.add_argument(
        "--outdir",
        default=None,
        help="Output directory for generated files (default: <project-dir>/output or ./out)",
    )
    parser.add_argument(
        "--assignee",
        help="Only schedule tasks of this assignee id, using that assignee's rate",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail if any task cannot be fully scheduled within the project window",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Plan and print summary without writing output files",
    )
    return parser.parse_args(argv)


@dataclass(frozen=True)
class InputPaths:
    tasks: Path
    config: Path
    holidays: Optional[Path]
    assignees: Optional[Path]
    schedules: Optional[Path]
    outdir: Path


def _resolve_io_paths(args: argparse.Namespace) -> InputPaths:
    project_dir = Path(args.project_dir).resolve() if args.project_dir else None
    if project_dir and not project_dir.exists():
        raise ValueError(f"project directory not found: {project_dir}")
    input_dir = project_dir / "input" if project_dir else None

    def _pick(path_value: Optional[str], default_name: str) -> Optional[Path]:
        if path_value:
            return Path(path_value)
        if input_dir:
            return input_dir / default_name
        return None

    tasks_path = _pick(args.tasks, "tasks.csv")
    config_path = _pick(args.config, "config.json")
    missing = [name for name, value in (("tasks", tasks_path), ("config", config_path)) if value is None]
    if missing:
        joined = ", ".join(f"--{name}" for name in missing)
        raise ValueError(f"missing required input paths: {joined} (or provide --project-dir)")
    for label, path in (("tasks", tasks_path), ("config", config_path)):
        if not path.exists():
            raise ValueError(f"{label} file not found at {path}")

    optional: Dict[str, Optional[Path]] = {}
    for label, value, default_name in (
        ("holidays", args.holidays, "holidays.csv"),
        ("assignees", args.assignees, "assignees.json"),
        ("schedules", args.schedules, "schedules.csv"),
    ):
        path = _pick(value, default_name)
        if value and not path.exists():
            raise ValueError(f"{label} file not found at {path}")
        optional[label] = path if path is not None and path.exists() else None

    if args.outdir:
        outdir = Path(args.outdir)
    elif project_dir:
        outdir = project_dir / "output"
    else:
        outdir = Path("out")

    return InputPaths(
        tasks=tasks_path,
        config=config_path,
        holidays=optional["holidays"],
        assignees=optional["assignees"],
        schedules=optional["schedules"],
        outdir=outdir,
    )


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(message)s")


def _select_tasks(
    tasks: List[PlannedTask],
    assignees: Dict[str, Assignee],
    assignee_id: Optional[str],
) -> Tuple[List[PlannedTask], float]:
    if assignee_id is None:
        return tasks, 1.0
    assignee = assignees.get(assignee_id)
    if assignee is None:
        raise ValueError(f"unknown assignee '{assignee_id}'")
    return [task for task in tasks if task.assignee_id == assignee_id], assignee.rate


def _monthly_allocations(
    tasks: List[PlannedTask],
    assignees: Dict[str, Assignee],
    calendar: CompanyCalendar,
    schedules: Dict[str, List[ScheduleEntry]],
    cfg: EngineConfig,
) -> pd.DataFrame:
    quantizer = AllocationQuantizer(cfg.quantization_unit)
    unassigned = unassigned_hours(calendar)
    allocations = []
    for task in tasks:
        assignee = assignees.get(task.assignee_id) if task.assignee_id is not None else None
        if assignee is None:
            allocation = allocate_task_by_month(task, unassigned, quantizer)
        else:
            working_calendar = AssigneeWorkingCalendar(
                assignee, calendar, schedules.get(assignee.user_id, ()), cfg.calculation_options
            )
            allocation = allocate_for_assignee(task, working_calendar, quantizer)
        if allocation is not None:
            allocations.append(allocation)
    return monthly_allocation_frame(allocations)


def _print_dry_run_summary(result: ScheduleResult, capacity_hours: float, warnings: List[FeasibilityWarning]) -> None:
    print(f"Capacity in window: {capacity_hours:.2f}h, scheduled: {result.total_hours():.2f}h")
    if not result.entries:
        print("No work scheduled.")
    else:
        print("Schedule:")
        for entry in result.entries:
            print(f"- {entry.date.isoformat()} {entry.task_name}: {entry.hours:.2f}h")
    leftovers = result.unscheduled()
    if leftovers:
        print("\nUnscheduled remainder:")
        for task, left in leftovers:
            print(f"- {task.name}: {left:.2f}h")
    if warnings:
        print("\nFeasibility warnings:")
        for warning in warnings:
            print(f"- {warning.task_id} {warning.task_name}: {warning.reason}")
    else:
        print("\nFeasibility warnings: none")


def _write_warnings_markdown(warnings: List[FeasibilityWarning], result: ScheduleResult, outdir: Path) -> Path:
    path = outdir / "feasibility_warnings.md"
    lines: List[str] = ["# Feasibility Warnings", ""]
    if not warnings:
        lines.append("Every dated task has working capacity in its planned window.")
    for warning in warnings:
        label = f"{warning.task_no} " if warning.task_no else ""
        lines.append(f"- **{warning.task_id} – {label}{warning.task_name}**")
        lines.append(f"  - Reason: {warning.reason}")
        lines.append(f"  - Window: {warning.period_start.isoformat()} → {warning.period_end.isoformat()}")
        if warning.assignee_id:
            lines.append(f"  - Assignee: {warning.assignee_name} ({warning.assignee_id})")
        lines.append("")
    leftovers = result.unscheduled()
    if leftovers:
        lines.extend(["", "## Unscheduled Remainder", ""])
        for task, left in leftovers:
            lines.append(f"- {task.name}: {left:.2f}h")
    path.write_text("\n".join(lines).strip() + "\n")
    return path


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    try:
        paths = _resolve_io_paths(args)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)

    cfg = load_config(paths.config)
    _configure_logging(cfg.logging_level)
    tasks = load_tasks(paths.tasks)
    holidays = load_holidays(paths.holidays) if paths.holidays else []
    assignees = load_assignees(paths.assignees) if paths.assignees else {}
    schedules = load_schedules(paths.schedules) if paths.schedules else {}
    calendar = CompanyCalendar(
        holidays,
        standard_daily_hours=cfg.standard_daily_hours,
        weekend_days=cfg.weekend_days,
    )

    try:
        selected, rate = _select_tasks(tasks, assignees, args.assignee)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)

    warnings = validate_tasks_feasibility(selected, assignees, calendar, schedules, cfg.calculation_options)
    capacity = compute_capacity(cfg.project_start, cfg.project_end, calendar, rate, cfg.standard_daily_hours)
    try:
        result = generate_schedule(
            cfg.project_start,
            cfg.project_end,
            capacity,
            [task.requirement() for task in selected],
            strict=args.strict,
        )
    except UnschedulableTaskError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)

    if args.dry_run:
        _print_dry_run_summary(result, total_capacity(capacity), warnings)
        return

    outdir_path = ensure_directory(paths.outdir)
    capacity_path = outdir_path / "capacity.csv"
    schedule_path = outdir_path / "schedule.csv"
    monthly_path = outdir_path / "monthly_allocation.csv"
    write_csv(capacity_frame(capacity), capacity_path)
    write_csv(schedule_frame(result), schedule_path)
    write_csv(_monthly_allocations(selected, assignees, calendar, schedules, cfg), monthly_path)
    warnings_path = _write_warnings_markdown(warnings, result, outdir_path)
    for path in (capacity_path, schedule_path, monthly_path, warnings_path):
        print(f"Wrote {path}")
    if warnings:
        print("Infeasible tasks:")
        for warning in warnings:
            print(f"- {warning.task_id} {warning.task_name}: {warning.reason}")


if __name__ == "__main__":
    main()
