"""Read-only projections of API payloads and their derived metrics."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

INVALID_MEASUREMENT_VALUE = -1.0
THROUGHPUT_UNITS = ("bytes", "KB", "MB", "GB", "TB", "PB", "EB", "ZB", "YB")


class ZeroDurationError(ValueError):
    """Raised when a per-second rate is requested for a run that lasted zero seconds."""


class PayloadDecodeError(ValueError):
    """Raised when an API payload does not have the expected shape."""


@dataclass(frozen=True)
class Measurement:
    """A parsed metric value, or the invalid marker when the source text did not parse."""

    value: float | None

    @staticmethod
    def of(value: float) -> Measurement:
        return Measurement(value=float(value))

    @staticmethod
    def invalid() -> Measurement:
        return Measurement(value=None)

    @property
    def is_valid(self) -> bool:
        return self.value is not None

    def as_float(self) -> float:
        """Return the value, or -1.0 for an invalid measurement."""
        return INVALID_MEASUREMENT_VALUE if self.value is None else self.value


def parse_duration(text: str) -> Measurement:
    """Parse ``H:MM:SS`` into total seconds."""
    parts = (text or "").strip().split(":")
    if len(parts) != 3:
        return Measurement.invalid()
    try:
        hours, minutes, seconds = (int(part) for part in parts)
    except ValueError:
        return Measurement.invalid()
    if min(hours, minutes, seconds) < 0:
        return Measurement.invalid()
    return Measurement.of(hours * 3600 + minutes * 60 + seconds)


def parse_throughput(text: str) -> Measurement:
    """Parse ``"<number> <unit>/s"`` into bytes per second.

    Units outside ``THROUGHPUT_UNITS`` (``hits/s`` for instance) keep the number unscaled.
    """
    tokens = (text or "").split(" ")
    if len(tokens) != 2:
        return Measurement.invalid()
    number_text, unit_text = tokens
    try:
        number = float(number_text)
    except ValueError:
        return Measurement.invalid()
    unit = unit_text.removesuffix("/s")
    if unit in THROUGHPUT_UNITS:
        return Measurement.of(number * 1024 ** THROUGHPUT_UNITS.index(unit))
    return Measurement.of(number)


@dataclass(frozen=True)
class TestRunResultsResponse:  # pylint: disable=too-many-instance-attributes
    """Results summary of a finished run."""

    __test__ = False

    status: str
    duration: str
    percentile_value: int
    total_vusers: int
    average_throughput: str
    total_throughput: str
    average_hits: str
    total_hits: int
    total_transactions_passed: int
    total_transactions_failed: int
    script_errors: int

    @staticmethod
    def from_payload(payload: Mapping[str, Any]) -> TestRunResultsResponse:
        data = _require_payload_mapping(payload, "results")
        return TestRunResultsResponse(
            status=_text(data, "status"),
            duration=_text(data, "duration"),
            percentile_value=_integer(data, "percentileValue"),
            total_vusers=_integer(data, "totalVusers"),
            average_throughput=_text(data, "averageThroughput"),
            total_throughput=_text(data, "totalThroughput"),
            average_hits=_text(data, "averageHits"),
            total_hits=_integer(data, "totalHits"),
            total_transactions_passed=_integer(data, "totalTransactionsPassed"),
            total_transactions_failed=_integer(data, "totalTransactionsFailed"),
            script_errors=_integer(data, "scriptErrors"),
        )

    def duration_seconds(self) -> Measurement:
        return parse_duration(self.duration)

    def errors_per_second(self) -> Measurement:
        """Script errors divided by run duration.

        Raises:
          ZeroDurationError: If the run duration is zero seconds.
        """
        duration = self.duration_seconds()
        if duration.value is None:
            return Measurement.invalid()
        if duration.value == 0:
            raise ZeroDurationError(
                f"Cannot compute errors per second for zero duration '{self.duration}'."
            )
        return Measurement.of(self.script_errors / duration.value)

    def average_hits_per_second(self) -> Measurement:
        try:
            return Measurement.of(float(self.average_hits.removesuffix(" hits/s")))
        except ValueError:
            return Measurement.invalid()

    def average_throughput_bytes(self) -> Measurement:
        return parse_throughput(self.average_throughput)

    def total_throughput_bytes(self) -> Measurement:
        return parse_throughput(self.total_throughput)


@dataclass(frozen=True)
class TestRunTransactionsResponse:  # pylint: disable=too-many-instance-attributes
    """Response-time statistics of one transaction in a run."""

    __test__ = False

    name: str
    load_test_script_id: int
    script_name: str
    min_trt: float
    max_trt: float
    avg_trt: float
    percentile_trt: float
    breakers: float
    sla_status: str
    sla_threshold: float
    std_deviation: float
    passed: int
    failed: int
    sla_trend: float

    @staticmethod
    def from_payload(payload: Mapping[str, Any]) -> TestRunTransactionsResponse:
        data = _require_payload_mapping(payload, "transaction")
        return TestRunTransactionsResponse(
            name=_text(data, "name"),
            load_test_script_id=_integer(data, "loadTestScriptId"),
            script_name=_text(data, "scriptName"),
            min_trt=_number(data, "minTRT"),
            max_trt=_number(data, "maxTRT"),
            avg_trt=_number(data, "avgTRT"),
            percentile_trt=_number(data, "percentileTRT"),
            breakers=_number(data, "breakers"),
            sla_status=_text(data, "slaStatus"),
            sla_threshold=_number(data, "slaThreshold"),
            std_deviation=_number(data, "stdDeviation"),
            passed=_integer(data, "passed"),
            failed=_integer(data, "failed"),
            sla_trend=_number(data, "slaTrend"),
        )


@dataclass(frozen=True)
class TestRunTrtSummaryResponse:  # pylint: disable=too-many-instance-attributes
    """Transaction response time summary row."""

    __test__ = False

    name: str
    load_test_script_id: int
    script_name: str
    max_trt: float
    avg_trt: float
    min_trt: float
    passed: int
    failed: int
    success_rate: float
    avg_tps: float
    std_deviation: float

    @staticmethod
    def from_transaction(
        transaction: TestRunTransactionsResponse, duration_seconds: Measurement
    ) -> TestRunTrtSummaryResponse:
        """Summarize one transaction; TPS is 0 when the run duration is unknown or zero."""
        total = transaction.passed + transaction.failed
        success_rate = transaction.passed * 100.0 / total if total else 0.0
        avg_tps = total / duration_seconds.value if duration_seconds.value else 0.0
        return TestRunTrtSummaryResponse(
            name=transaction.name,
            load_test_script_id=transaction.load_test_script_id,
            script_name=transaction.script_name,
            max_trt=transaction.max_trt,
            avg_trt=transaction.avg_trt,
            min_trt=transaction.min_trt,
            passed=transaction.passed,
            failed=transaction.failed,
            success_rate=success_rate,
            avg_tps=avg_tps,
            std_deviation=transaction.std_deviation,
        )


@dataclass(frozen=True)
class LoadTestTransactionsResponse:  # pylint: disable=too-many-instance-attributes
    """SLA settings of one transaction configured on a load test."""

    id: int
    enabled: bool
    script_id: int
    script_name: str
    test_script_id: int
    transaction_name: str
    sla_percentile_threshold: float
    stop_on_break: bool
    failed_trx_ratio: float
    failed_trx_enabled: bool

    @staticmethod
    def from_payload(payload: Mapping[str, Any]) -> LoadTestTransactionsResponse:
        data = _require_payload_mapping(payload, "load test transaction")
        return LoadTestTransactionsResponse(
            id=_integer(data, "id"),
            enabled=bool(data.get("enabled", False)),
            script_id=_integer(data, "scriptId"),
            script_name=_text(data, "scriptName"),
            test_script_id=_integer(data, "testScriptId"),
            transaction_name=_text(data, "transactionName"),
            sla_percentile_threshold=_number(data, "slaPercentileThreshold"),
            stop_on_break=bool(data.get("stopOnBreak", False)),
            failed_trx_ratio=_number(data, "failedTrxRatio"),
            failed_trx_enabled=bool(data.get("failedTrxEnabled", False)),
        )


@dataclass(frozen=True)
class LoadTestResponse:
    """Load test definition addressed by project and test id."""

    id: int
    name: str
    transactions: tuple[LoadTestTransactionsResponse, ...] = ()

    @staticmethod
    def from_payload(payload: Mapping[str, Any]) -> LoadTestResponse:
        data = _require_payload_mapping(payload, "load test")
        return LoadTestResponse(
            id=_integer(data, "id"),
            name=_text(data, "name"),
            transactions=tuple(
                LoadTestTransactionsResponse.from_payload(item)
                for item in _sequence(data.get("transactions"), "load test transactions")
            ),
        )


@dataclass(frozen=True)
class RunStatusResponse:
    """One answer of the run status endpoint."""

    status: str
    detailed_status: str | None
    has_report: bool

    @staticmethod
    def from_payload(payload: Mapping[str, Any]) -> RunStatusResponse:
        data = _require_payload_mapping(payload, "run status")
        status = _text(data, "status").strip().upper()
        if not status:
            raise PayloadDecodeError("Run status payload has no status.")
        detailed = data.get("detailedStatus")
        return RunStatusResponse(
            status=status,
            detailed_status=str(detailed) if detailed is not None else None,
            has_report=bool(data.get("hasReport", False)),
        )


@dataclass(frozen=True)
class TestRunDetailsResponse:
    """Details of one run as reported after it ended."""

    __test__ = False

    id: int
    status: str
    ui_status: str | None
    duration: str | None

    @staticmethod
    def from_payload(payload: Mapping[str, Any]) -> TestRunDetailsResponse:
        data = _require_payload_mapping(payload, "test run")
        ui_status = data.get("uiStatus")
        duration = data.get("duration")
        return TestRunDetailsResponse(
            id=_integer(data, "id"),
            status=_text(data, "status"),
            ui_status=str(ui_status) if ui_status is not None else None,
            duration=str(duration) if duration is not None else None,
        )


def decode_transactions(payload: Any) -> tuple[TestRunTransactionsResponse, ...]:
    """Decode the transactions endpoint payload (a list of transaction objects)."""
    return tuple(
        TestRunTransactionsResponse.from_payload(item)
        for item in _sequence(payload, "transactions")
    )


def _require_payload_mapping(payload: Any, label: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise PayloadDecodeError(f"Expected a JSON object for {label}, got {type(payload).__name__}.")
    return payload


def _sequence(value: Any, label: str) -> Sequence[Any]:
    if value is None:
        return ()
    if isinstance(value, str | bytes) or not isinstance(value, Sequence):
        raise PayloadDecodeError(f"Expected a JSON array for {label}.")
    return value


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)


def _integer(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise PayloadDecodeError(f"Field '{key}' must be an integer, got {value!r}.") from exc


def _number(data: Mapping[str, Any], key: str) -> float:
    value = data.get(key)
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise PayloadDecodeError(f"Field '{key}' must be a number, got {value!r}.") from exc
