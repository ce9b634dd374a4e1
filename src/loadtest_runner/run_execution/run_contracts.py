"""Run execution entities."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from loadtest_runner.remote_api.endpoint_catalog import ReportReference
from loadtest_runner.remote_api.response_models import (
    TestRunResultsResponse,
    TestRunTransactionsResponse,
)

from .run_states import ReportPhase, RunStatus


def pdf_report_file_name(run_id: int) -> str:
    return f"lrc_report_{run_id}.pdf"


def results_file_name(run_id: int) -> str:
    return f"lrc_results_{run_id}.json"


def transactions_file_name(run_id: int) -> str:
    return f"lrc_transactions_{run_id}.csv"


@dataclass(frozen=True)
class LoadTestRun:  # pylint: disable=too-many-instance-attributes
    """Read-only outcome of one remote run, handed out once the run has ended."""

    run_id: int | None
    test_id: int
    status: RunStatus
    report_phase: ReportPhase = ReportPhase.NOT_REQUESTED
    reports: Mapping[str, ReportReference] = field(default_factory=dict)
    report_contents: Mapping[str, bytes] = field(default_factory=dict)
    has_report: bool = False
    results: TestRunResultsResponse | None = None
    transactions: tuple[TestRunTransactionsResponse, ...] = ()
    failure_reason: str | None = None
    detailed_status: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "reports", MappingProxyType(dict(self.reports)))
        object.__setattr__(self, "report_contents", MappingProxyType(dict(self.report_contents)))

    @property
    def succeeded(self) -> bool:
        return self.status is RunStatus.PASSED

    def summary(self) -> dict[str, object]:
        """JSON-ready view without artifact bytes."""
        return {
            "runId": self.run_id,
            "testId": self.test_id,
            "status": self.status.value,
            "detailedStatus": self.detailed_status,
            "reportPhase": self.report_phase.value,
            "hasReport": self.has_report,
            "failureReason": self.failure_reason,
            "reports": sorted(self.reports),
            "reportFiles": sorted(self.report_contents),
        }


@dataclass(frozen=True)
class RunRequest:
    """Input contract for executing one run."""

    config_path: str
    output_dir: str | None = None
    test_id: int | None = None
    skip_pdf_report: bool = False
    debug_log: bool = False
    test_mode: bool = False


@dataclass(frozen=True)
class RunOutcome:
    """Output contract for one completed run."""

    run: LoadTestRun
    output_dir: Path
    written_files: tuple[Path, ...]

    @property
    def succeeded(self) -> bool:
        return self.run.succeeded
