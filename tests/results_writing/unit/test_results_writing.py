"""Results writing tests."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

from loadtest_runner.configuration import TestRunOptions
from loadtest_runner.remote_api import TestRunResultsResponse, decode_transactions
from loadtest_runner.results_writing import (
    RunMetadata,
    render_transactions_csv,
    write_report_files,
    write_run_result_json,
    write_run_summary_workbook,
)
from openpyxl import load_workbook

TRANSACTIONS = decode_transactions(
    [
        {"name": "login", "scriptName": "web", "avgTRT": 1.5, "passed": 90, "failed": 10},
        {"name": "search, advanced", "scriptName": "web", "passed": 5},
    ]
)


def _metadata(output_dir: Path) -> RunMetadata:
    moment = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)
    return RunMetadata(
        run_start=moment,
        run_end=moment,
        server_url="https://lrc.example.com",
        tenant_id="tenant-1",
        project_id=1,
        config_path=output_dir / "loadtest.yaml",
        output_dir=output_dir,
    )


def test_transactions_csv_has_header_and_quoted_rows() -> None:
    lines = render_transactions_csv(TRANSACTIONS).decode("utf-8").splitlines()

    assert lines[0].split(",")[:3] == ["Name", "Script", "Min TRT"]
    assert lines[1].startswith("login,web,")
    assert lines[2].startswith('"search, advanced",web,')
    assert len(lines) == 3


def test_write_report_files_keeps_going_after_one_failure(tmp_path: Path) -> None:
    (tmp_path / "blocked.pdf").mkdir()

    written = write_report_files(
        {"blocked.pdf": b"x", "lrc_results_7.json": b"{}", "lrc_transactions_7.csv": b"a\n"},
        tmp_path,
    )

    assert [path.name for path in written] == ["lrc_results_7.json", "lrc_transactions_7.csv"]
    assert (tmp_path / "lrc_results_7.json").read_bytes() == b"{}"


def test_run_result_json_contains_options_and_summary(tmp_path: Path) -> None:
    path = write_run_result_json(
        7,
        TestRunOptions(test_id=42, skip_pdf_report=False),
        {"runId": 7, "status": "passed"},
        _metadata(tmp_path),
    )

    document = json.loads(path.read_text(encoding="utf-8"))
    assert path.name == "lrc_run_result_7.json"
    assert document["testOptions"]["testId"] == 42
    assert document["testRun"] == {"runId": 7, "status": "passed"}
    assert document["metadata"]["run_start"] == "2026-01-02T03:04:05+00:00"


def test_run_summary_workbook_has_run_info_transactions_and_trt_summary(tmp_path: Path) -> None:
    results = TestRunResultsResponse.from_payload(
        {"status": "PASSED", "duration": "0:00:50", "scriptErrors": 5, "totalVusers": 3}
    )

    path = write_run_summary_workbook(
        tmp_path / "lrc_run_summary_7.xlsx",
        run_id=7,
        status="PASSED",
        metadata=_metadata(tmp_path),
        results=results,
        transactions=TRANSACTIONS,
    )

    workbook = load_workbook(path)
    assert workbook.sheetnames == ["RunInfo", "Transactions", "TrtSummary"]
    run_info = {
        row[0]: row[1] for row in workbook["RunInfo"].iter_rows(values_only=True)
    }
    assert run_info["run_id"] == 7
    assert run_info["duration_seconds"] == 50
    assert run_info["errors_per_second"] == 0.1
    assert run_info["average_throughput_bytes"] == -1
    trt_rows = list(workbook["TrtSummary"].iter_rows(min_row=2, values_only=True))
    assert trt_rows[0][0] == "login"
    assert trt_rows[0][8] == 90.0
    assert trt_rows[0][9] == 2.0


def test_run_summary_workbook_without_results_uses_zero_tps(tmp_path: Path) -> None:
    path = write_run_summary_workbook(
        tmp_path / "summary.xlsx",
        run_id=7,
        status="FAILED",
        metadata=_metadata(tmp_path),
        results=None,
        transactions=TRANSACTIONS,
    )

    trt_rows = list(load_workbook(path)["TrtSummary"].iter_rows(min_row=2, values_only=True))
    assert [row[9] for row in trt_rows] == [0, 0]
