"""Byte renderings of run summaries written next to the PDF report."""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Sequence
from typing import Any

from loadtest_runner.remote_api.response_models import TestRunTransactionsResponse

TRANSACTION_COLUMNS = (
    "Name",
    "Script",
    "Min TRT",
    "Avg TRT",
    "Max TRT",
    "Percentile TRT",
    "Std Deviation",
    "Breakers",
    "SLA Status",
    "SLA Threshold",
    "SLA Trend",
    "Passed",
    "Failed",
)


def render_transactions_csv(transactions: Sequence[TestRunTransactionsResponse]) -> bytes:
    """Render transaction statistics as a UTF-8 CSV document with a header row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(TRANSACTION_COLUMNS)
    for transaction in transactions:
        writer.writerow(
            (
                transaction.name,
                transaction.script_name,
                transaction.min_trt,
                transaction.avg_trt,
                transaction.max_trt,
                transaction.percentile_trt,
                transaction.std_deviation,
                transaction.breakers,
                transaction.sla_status,
                transaction.sla_threshold,
                transaction.sla_trend,
                transaction.passed,
                transaction.failed,
            )
        )
    return buffer.getvalue().encode("utf-8")


def render_json(payload: Any) -> bytes:
    return json.dumps(payload, indent=2, sort_keys=True).encode("utf-8")
