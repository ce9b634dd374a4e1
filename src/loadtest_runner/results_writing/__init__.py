"""Results writing domain exports."""

from .artifact_writer import write_artifact, write_report_files, write_run_result_json
from .report_models import (
    ArtifactWriteError,
    RunMetadata,
    run_result_file_name,
    run_summary_file_name,
)
from .summary_rendering import TRANSACTION_COLUMNS, render_json, render_transactions_csv
from .summary_workbook import TRT_SUMMARY_COLUMNS, write_run_summary_workbook

__all__ = [
    "ArtifactWriteError",
    "RunMetadata",
    "TRANSACTION_COLUMNS",
    "TRT_SUMMARY_COLUMNS",
    "render_json",
    "render_transactions_csv",
    "run_result_file_name",
    "run_summary_file_name",
    "write_artifact",
    "write_report_files",
    "write_run_result_json",
    "write_run_summary_workbook",
]
