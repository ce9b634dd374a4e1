"""Run execution domain exports."""

from .cancellation import CancellationToken, RunCancelled
from .load_test_runner import LoadTestRunner, PollingFailure, PollingTimeout, RunApiClient
from .run_contracts import (
    LoadTestRun,
    RunOutcome,
    RunRequest,
    pdf_report_file_name,
    results_file_name,
    transactions_file_name,
)
from .run_states import (
    IllegalTransitionError,
    ReportPhase,
    RunStatus,
    advance_report_phase,
    advance_run_status,
    map_remote_status,
)
from .run_use_case import (
    RunExecutionError,
    check_connection,
    execute_load_test_run,
    mask_username,
)

__all__ = [
    "CancellationToken",
    "RunCancelled",
    "LoadTestRunner",
    "PollingFailure",
    "PollingTimeout",
    "RunApiClient",
    "LoadTestRun",
    "RunOutcome",
    "RunRequest",
    "pdf_report_file_name",
    "results_file_name",
    "transactions_file_name",
    "IllegalTransitionError",
    "ReportPhase",
    "RunStatus",
    "advance_report_phase",
    "advance_run_status",
    "map_remote_status",
    "RunExecutionError",
    "check_connection",
    "execute_load_test_run",
    "mask_username",
]
