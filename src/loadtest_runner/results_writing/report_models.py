"""Results writing entities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

RUN_SUMMARY_SHEET_NAMES = ("RunInfo", "Transactions", "TrtSummary")


def run_result_file_name(run_id: int) -> str:
    return f"lrc_run_result_{run_id}.json"


def run_summary_file_name(run_id: int) -> str:
    return f"lrc_run_summary_{run_id}.xlsx"


class ArtifactWriteError(Exception):
    """Raised when one run artifact cannot be written to the output directory."""


@dataclass(frozen=True)
class RunMetadata:
    """Metadata rendered into the RunInfo sheet and the run result document."""

    run_start: datetime
    run_end: datetime
    server_url: str
    tenant_id: str
    project_id: int
    config_path: Path
    output_dir: Path
