"""Run summary workbook writer service."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from openpyxl import Workbook
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from loadtest_runner.remote_api.response_models import (
    Measurement,
    TestRunResultsResponse,
    TestRunTransactionsResponse,
    TestRunTrtSummaryResponse,
    ZeroDurationError,
)

from .report_models import RunMetadata
from .summary_rendering import TRANSACTION_COLUMNS

TRT_SUMMARY_COLUMNS = (
    "Name",
    "Script",
    "Min TRT",
    "Avg TRT",
    "Max TRT",
    "Std Deviation",
    "Passed",
    "Failed",
    "Success Rate %",
    "Avg TPS",
)


# pylint: disable=too-many-arguments
def write_run_summary_workbook(
    output_path: Path | str,
    *,
    run_id: int,
    status: str,
    metadata: RunMetadata,
    results: TestRunResultsResponse | None,
    transactions: Sequence[TestRunTransactionsResponse],
) -> Path:
    """Create the run summary workbook with RunInfo, Transactions and TrtSummary sheets."""
    workbook = Workbook()
    sheet = workbook.active
    if sheet is None:
        raise RuntimeError("Workbook active sheet is not available.")
    assert isinstance(sheet, Worksheet)
    sheet.title = "RunInfo"
    _write_run_info(sheet, run_id, status, metadata, results)

    transactions_sheet = workbook.create_sheet("Transactions")
    _write_table(
        transactions_sheet,
        TRANSACTION_COLUMNS,
        [
            (
                tx.name,
                tx.script_name,
                tx.min_trt,
                tx.avg_trt,
                tx.max_trt,
                tx.percentile_trt,
                tx.std_deviation,
                tx.breakers,
                tx.sla_status,
                tx.sla_threshold,
                tx.sla_trend,
                tx.passed,
                tx.failed,
            )
            for tx in transactions
        ],
    )

    duration = results.duration_seconds() if results is not None else Measurement.invalid()
    trt_rows = []
    for tx in transactions:
        summary = TestRunTrtSummaryResponse.from_transaction(tx, duration)
        trt_rows.append(
            (
                summary.name,
                summary.script_name,
                summary.min_trt,
                summary.avg_trt,
                summary.max_trt,
                summary.std_deviation,
                summary.passed,
                summary.failed,
                round(summary.success_rate, 2),
                round(summary.avg_tps, 4),
            )
        )
    _write_table(workbook.create_sheet("TrtSummary"), TRT_SUMMARY_COLUMNS, trt_rows)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(output_path)
    return output_path


def _write_run_info(
    sheet,
    run_id: int,
    status: str,
    metadata: RunMetadata,
    results: TestRunResultsResponse | None,
) -> None:
    entries: list[tuple[str, object]] = [
        ("run_id", run_id),
        ("status", status),
        ("run_start", metadata.run_start.isoformat()),
        ("run_end", metadata.run_end.isoformat()),
        ("server_url", metadata.server_url),
        ("tenant_id", metadata.tenant_id),
        ("project_id", metadata.project_id),
        ("config_path", str(metadata.config_path)),
    ]
    if results is not None:
        try:
            errors_per_second = results.errors_per_second().as_float()
        except ZeroDurationError:
            errors_per_second = 0.0
        entries.extend(
            (
                ("result_status", results.status),
                ("duration", results.duration),
                ("duration_seconds", results.duration_seconds().as_float()),
                ("total_vusers", results.total_vusers),
                ("total_transactions_passed", results.total_transactions_passed),
                ("total_transactions_failed", results.total_transactions_failed),
                ("script_errors", results.script_errors),
                ("errors_per_second", errors_per_second),
                ("average_hits_per_second", results.average_hits_per_second().as_float()),
                ("average_throughput_bytes", results.average_throughput_bytes().as_float()),
                ("total_throughput_bytes", results.total_throughput_bytes().as_float()),
            )
        )
    for row, (key, value) in enumerate(entries, start=1):
        sheet.cell(row=row, column=1, value=key)
        sheet.cell(row=row, column=2, value=value)
    sheet.column_dimensions["A"].width = 28


def _write_table(sheet, columns: Sequence[str], rows: Sequence[Sequence[object]]) -> None:
    for column_index, name in enumerate(columns, start=1):
        cell = sheet.cell(row=1, column=column_index, value=name)
        cell.style = "Headline 1"
        sheet.column_dimensions[get_column_letter(column_index)].width = max(
            12, min(len(name) + 6, 40)
        )
    for row_index, row in enumerate(rows, start=2):
        for column_index, value in enumerate(row, start=1):
            sheet.cell(row=row_index, column=column_index, value=value)
