from __future__ import annotations

import json
import re
from pathlib import Path

import allure
from click.testing import CliRunner

from compute_jobs import __version__
from compute_jobs.main import compute_jobs

pytestmark = [
    allure.epic("Job Execution"),
    allure.feature("CLI"),
]

_JOB_ID_RE = re.compile(r"job_id=(job_[0-9a-f]+)")


def test_submit_wait_prints_completed_table(tmp_path: Path) -> None:
    db_path = tmp_path / "cli.db"

    result = CliRunner().invoke(
        compute_jobs,
        ["submit", "6", "3", "--wait", "--db-path", str(db_path)],
    )

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert re.match(r"Job job_[0-9a-f]+: status=COMPLETED progress=100% a=6 b=3", lines[0])
    assert "Results (4/4):" in result.output
    assert re.search(r"divide\s+result=2\b", result.output)
    assert re.search(r"multiply\s+result=18\b", result.output)


def test_submit_then_status_json(tmp_path: Path) -> None:
    db_path = tmp_path / "cli.db"
    runner = CliRunner()

    submitted = runner.invoke(compute_jobs, ["submit", "10", "0", "--db-path", str(db_path)])
    assert submitted.exit_code == 0, submitted.output
    assert "Job submitted:" in submitted.output
    match = _JOB_ID_RE.search(submitted.output)
    assert match is not None

    status = runner.invoke(
        compute_jobs,
        ["status", match.group(1), "--format", "json", "--db-path", str(db_path)],
    )

    assert status.exit_code == 0, status.output
    payload = json.loads(status.output)
    assert payload["id"] == match.group(1)
    assert payload["status"] == "FAILED"
    assert payload["progress"] == 100
    results = {item["operation"]: item for item in payload["results"]}
    assert results["add"]["result"] == 10.0
    assert results["divide"]["result"] is None
    assert results["divide"]["error"] == "Division by zero"


def test_status_unknown_job_exits_with_error(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        compute_jobs,
        ["status", "job_missing", "--db-path", str(tmp_path / "cli.db")],
    )

    assert result.exit_code == 1
    assert "Job not found" in result.output


def test_watch_reports_final_state(tmp_path: Path) -> None:
    db_path = tmp_path / "cli.db"
    runner = CliRunner()
    submitted = runner.invoke(compute_jobs, ["submit", "2", "4", "--db-path", str(db_path)])
    match = _JOB_ID_RE.search(submitted.output)
    assert match is not None

    result = runner.invoke(
        compute_jobs,
        ["watch", match.group(1), "--interval", "0.05", "--timeout", "5", "--db-path", str(db_path)],
    )

    assert result.exit_code == 0, result.output
    assert f"{match.group(1)}: status=COMPLETED progress=100%" in result.output
    assert "Results (4/4):" in result.output


def test_document_backend_submit_wait(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        compute_jobs,
        [
            "submit",
            "1.5",
            "0.5",
            "--wait",
            "--backend",
            "document",
            "--format",
            "json",
            "--db-path",
            str(tmp_path / "unused.db"),
        ],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["status"] == "COMPLETED"
    assert {item["operation"]: item["result"] for item in payload["results"]} == {
        "add": 2.0,
        "subtract": 1.0,
        "multiply": 0.75,
        "divide": 3.0,
    }


def test_non_numeric_operand_is_rejected() -> None:
    result = CliRunner().invoke(compute_jobs, ["submit", "six", "3"])

    assert result.exit_code == 2


def test_version_option() -> None:
    result = CliRunner().invoke(compute_jobs, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output
