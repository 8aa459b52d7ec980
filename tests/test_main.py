"""End-to-end tests for the batch command line tool."""

from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from wbs_capacity.main import main

TASKS_CSV = (
    "id,task_no,name,planned_hours,planned_start,planned_end,assignee_id\n"
    "1,W-1,T1,5,2024-07-01,2024-07-01,1\n"
    "2,W-2,T2,10,2024-07-01,2024-07-02,1\n"
    "3,W-3,T3,10,2024-07-03,2024-07-04,2\n"
    "4,W-4,T4,10,2024-07-04,2024-07-05,\n"
)


def make_project(tmp_path: Path, tasks_csv: str = TASKS_CSV, **config) -> Path:
    input_dir = tmp_path / "proj" / "input"
    input_dir.mkdir(parents=True)
    cfg = {"project_start": "2024-07-01", "project_end": "2024-07-05", "logging_level": "WARNING"}
    cfg.update(config)
    (input_dir / "config.json").write_text(json.dumps(cfg))
    (input_dir / "tasks.csv").write_text(tasks_csv)
    (input_dir / "assignees.json").write_text(
        json.dumps([{"id": 1, "user_id": "alice", "rate": 1.0}, {"id": 2, "user_id": "bob", "rate": 0.5}])
    )
    return tmp_path / "proj"


def test_writes_all_outputs(tmp_path: Path) -> None:
    project_dir = make_project(tmp_path)
    main(["--project-dir", str(project_dir)])
    outdir = project_dir / "output"
    schedule = pd.read_csv(outdir / "schedule.csv")
    assert list(zip(schedule["date"], schedule["task"], schedule["hours"])) == [
        ("2024-07-01", "T1", 5.0),
        ("2024-07-01", "T2", 2.5),
        ("2024-07-02", "T2", 7.5),
        ("2024-07-03", "T3", 7.5),
        ("2024-07-04", "T3", 2.5),
        ("2024-07-04", "T4", 5.0),
        ("2024-07-05", "T4", 5.0),
    ]
    capacity = pd.read_csv(outdir / "capacity.csv")
    assert capacity["available_hours"].tolist() == [7.5] * 5
    monthly = pd.read_csv(outdir / "monthly_allocation.csv")
    assert monthly["planned_hours"].sum() == pytest.approx(35.0)
    assert "Every dated task" in (outdir / "feasibility_warnings.md").read_text()


def test_assignee_filter_uses_rate(tmp_path: Path) -> None:
    project_dir = make_project(tmp_path)
    main(["--project-dir", str(project_dir), "--assignee", "2"])
    schedule = pd.read_csv(project_dir / "output" / "schedule.csv")
    assert schedule["task"].tolist() == ["T3", "T3", "T3"]
    assert schedule["hours"].tolist() == [3.75, 3.75, 2.5]


def test_holiday_window_reported(tmp_path: Path) -> None:
    project_dir = make_project(tmp_path)
    (project_dir / "input" / "holidays.csv").write_text("date,name\n2024-07-01,Closed\n")
    main(["--project-dir", str(project_dir)])
    report = (project_dir / "output" / "feasibility_warnings.md").read_text()
    assert "W-1 T1" in report
    assert "NO_WORKING_DAYS" in report
    assert "## Unscheduled Remainder" in report


def test_dry_run_prints_summary(tmp_path: Path, capsys) -> None:
    project_dir = make_project(tmp_path)
    main(["--project-dir", str(project_dir), "--dry-run"])
    out = capsys.readouterr().out
    assert "Capacity in window: 37.50h, scheduled: 35.00h" in out
    assert "2024-07-01 T2: 2.50h" in out
    assert not (project_dir / "output").exists()


def test_strict_exits_when_work_does_not_fit(tmp_path: Path) -> None:
    project_dir = make_project(tmp_path, tasks_csv="id,name,planned_hours\n1,Huge,100\n")
    with pytest.raises(SystemExit) as excinfo:
        main(["--project-dir", str(project_dir), "--strict"])
    assert excinfo.value.code == 1


def test_missing_inputs_exit_with_usage_error(tmp_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--tasks", str(tmp_path / "nope.csv")])
    assert excinfo.value.code == 2
    assert "--config" in capsys.readouterr().err


def test_unknown_assignee_exits(tmp_path: Path) -> None:
    project_dir = make_project(tmp_path)
    with pytest.raises(SystemExit) as excinfo:
        main(["--project-dir", str(project_dir), "--assignee", "42"])
    assert excinfo.value.code == 2
