"""Response model and derived metric tests."""

from __future__ import annotations

import pytest
from loadtest_runner.remote_api.response_models import (
    INVALID_MEASUREMENT_VALUE,
    LoadTestResponse,
    Measurement,
    PayloadDecodeError,
    RunStatusResponse,
    TestRunResultsResponse,
    TestRunTransactionsResponse,
    TestRunTrtSummaryResponse,
    ZeroDurationError,
    decode_transactions,
    parse_duration,
    parse_throughput,
)


def _results(**overrides) -> TestRunResultsResponse:
    payload = {
        "status": "PASSED",
        "duration": "1:02:03",
        "percentileValue": 90,
        "totalVusers": 10,
        "averageThroughput": "2 MB/s",
        "totalThroughput": "10 GB/s",
        "averageHits": "12.5 hits/s",
        "totalHits": 500,
        "totalTransactionsPassed": 90,
        "totalTransactionsFailed": 10,
        "scriptErrors": 3723,
    }
    payload.update(overrides)
    return TestRunResultsResponse.from_payload(payload)


@pytest.mark.parametrize(
    ("text", "seconds"),
    [("1:02:03", 3723.0), ("0:00:00", 0.0), ("10:00:00", 36000.0)],
)
def test_parse_duration_returns_total_seconds(text: str, seconds: float) -> None:
    assert parse_duration(text) == Measurement.of(seconds)


@pytest.mark.parametrize("text", ["", "1:02", "a:b:c", "1:02:03:04", "-1:00:00"])
def test_parse_duration_marks_malformed_text_invalid(text: str) -> None:
    measurement = parse_duration(text)

    assert not measurement.is_valid
    assert measurement.as_float() == INVALID_MEASUREMENT_VALUE == -1.0


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("2 MB/s", 2097152.0),
        ("10 bytes/s", 10.0),
        ("1.5 KB/s", 1536.0),
        ("3 hits/s", 3.0),
    ],
)
def test_parse_throughput_scales_known_units(text: str, expected: float) -> None:
    assert parse_throughput(text).as_float() == expected


@pytest.mark.parametrize("text", ["", "2MB/s", "2 MB /s", "many MB/s"])
def test_parse_throughput_marks_malformed_text_invalid(text: str) -> None:
    assert parse_throughput(text).as_float() == -1.0


def test_results_derived_metrics() -> None:
    results = _results()

    assert results.duration_seconds().as_float() == 3723.0
    assert results.errors_per_second().as_float() == 1.0
    assert results.average_hits_per_second().as_float() == 12.5
    assert results.average_throughput_bytes().as_float() == 2097152.0
    assert results.total_throughput_bytes().as_float() == 10 * 1024**3


def test_errors_per_second_raises_on_zero_duration() -> None:
    with pytest.raises(ZeroDurationError):
        _results(duration="0:00:00").errors_per_second()


def test_errors_per_second_is_invalid_for_unparsable_duration() -> None:
    assert not _results(duration="soon").errors_per_second().is_valid


def test_results_reject_non_mapping_payload() -> None:
    with pytest.raises(PayloadDecodeError):
        TestRunResultsResponse.from_payload(["not", "an", "object"])  # type: ignore[arg-type]


def test_results_reject_non_numeric_counters() -> None:
    with pytest.raises(PayloadDecodeError, match="totalVusers"):
        _results(totalVusers="many")


def test_decode_transactions_reads_each_entry() -> None:
    transactions = decode_transactions(
        [
            {"name": "login", "scriptName": "web", "avgTRT": 1.25, "passed": 9, "failed": 1},
            {"name": "logout", "passed": 4},
        ]
    )

    assert [tx.name for tx in transactions] == ["login", "logout"]
    assert transactions[0].avg_trt == 1.25
    assert transactions[1].failed == 0


def test_decode_transactions_rejects_object_payload() -> None:
    with pytest.raises(PayloadDecodeError):
        decode_transactions({"name": "login"})


def test_trt_summary_from_transaction_computes_rates() -> None:
    transaction = TestRunTransactionsResponse.from_payload(
        {"name": "login", "passed": 90, "failed": 10, "maxTRT": 3.0}
    )

    summary = TestRunTrtSummaryResponse.from_transaction(transaction, Measurement.of(50))

    assert summary.success_rate == 90.0
    assert summary.avg_tps == 2.0
    assert summary.max_trt == 3.0


def test_trt_summary_tps_is_zero_without_duration() -> None:
    transaction = TestRunTransactionsResponse.from_payload({"name": "login", "passed": 1})

    summary = TestRunTrtSummaryResponse.from_transaction(transaction, Measurement.invalid())

    assert summary.avg_tps == 0.0


def test_load_test_response_reads_transaction_sla_settings() -> None:
    load_test = LoadTestResponse.from_payload(
        {
            "id": 42,
            "name": "checkout",
            "transactions": [
                {"id": 1, "transactionName": "pay", "slaPercentileThreshold": 2.5, "enabled": True}
            ],
        }
    )

    assert load_test.name == "checkout"
    assert load_test.transactions[0].transaction_name == "pay"
    assert load_test.transactions[0].sla_percentile_threshold == 2.5


def test_run_status_is_upper_cased_and_required() -> None:
    status = RunStatusResponse.from_payload({"status": "running", "detailedStatus": "INIT"})

    assert status.status == "RUNNING"
    assert status.detailed_status == "INIT"
    assert status.has_report is False
    assert RunStatusResponse.from_payload({"status": "PASSED", "hasReport": True}).has_report
    with pytest.raises(PayloadDecodeError):
        RunStatusResponse.from_payload({"detailedStatus": "INIT"})
