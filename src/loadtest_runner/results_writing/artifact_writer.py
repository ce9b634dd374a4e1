"""Writes run artifacts into the output directory."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import asdict
from pathlib import Path
from typing import Any

from loadtest_runner.configuration.runtime_settings import TestRunOptions

from .report_models import ArtifactWriteError, RunMetadata, run_result_file_name

logger = logging.getLogger(__name__)


def write_report_files(contents: Mapping[str, bytes], output_dir: Path | str) -> tuple[Path, ...]:
    """Write each named artifact; a failing file is logged and the others are still written."""
    destination = Path(output_dir)
    written: list[Path] = []
    for file_name, content in sorted(contents.items()):
        try:
            written.append(write_artifact(destination / file_name, content))
        except ArtifactWriteError as exc:
            logger.error("%s", exc)
    return tuple(written)


def write_artifact(path: Path, content: bytes) -> Path:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    except OSError as exc:
        raise ArtifactWriteError(f"Failed to create report file {path}: {exc}") from exc
    logger.info("Report file %s created.", path)
    return path


def write_run_result_json(
    run_id: int,
    options: TestRunOptions,
    run_summary: Mapping[str, Any],
    metadata: RunMetadata,
) -> Path:
    """Write ``lrc_run_result_<runId>.json``: test options plus the run summary."""
    document = {
        "testOptions": {
            "testId": options.test_id,
            "sendEmail": options.send_email,
            "skipPdfReport": options.skip_pdf_report,
            "debugLog": options.debug_log,
            "testMode": options.test_mode,
        },
        "testRun": dict(run_summary),
        "metadata": {
            key: value.isoformat() if hasattr(value, "isoformat") else str(value)
            for key, value in asdict(metadata).items()
        },
    }
    path = metadata.output_dir / run_result_file_name(run_id)
    content = json.dumps(document, indent=2, sort_keys=True).encode("utf-8")
    return write_artifact(path, content)
