"""Run orchestrator: start a remote run, follow it to the end and collect its reports."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, NoReturn, Protocol, TypeVar

from loadtest_runner.configuration.loader import ConfigurationError
from loadtest_runner.configuration.runtime_settings import (
    PollingPolicy,
    ServerConfiguration,
    TestRunOptions,
)
from loadtest_runner.remote_api.api_client import RawResponse
from loadtest_runner.remote_api.api_errors import ApiError, RequestError, TransientError
from loadtest_runner.remote_api.endpoint_catalog import ReportReference
from loadtest_runner.remote_api.response_models import (
    LoadTestResponse,
    PayloadDecodeError,
    RunStatusResponse,
    TestRunDetailsResponse,
    TestRunResultsResponse,
    TestRunTransactionsResponse,
    ZeroDurationError,
    decode_transactions,
)
from loadtest_runner.results_writing.summary_rendering import render_json, render_transactions_csv

from .cancellation import CancellationToken, RunCancelled
from .run_contracts import (
    LoadTestRun,
    pdf_report_file_name,
    results_file_name,
    transactions_file_name,
)
from .run_states import (
    ReportPhase,
    RunStatus,
    advance_report_phase,
    advance_run_status,
    map_remote_status,
)

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class RunApiClient(Protocol):
    """Remote operations the runner needs; ``LoadTestApiClient`` implements it."""

    def login(self) -> None: ...

    def validate_tenant(self) -> None: ...

    def get_load_test(self, project_id: int, load_test_id: int) -> LoadTestResponse: ...

    def start_test_run(
        self,
        project_id: int,
        load_test_id: int,
        *,
        send_email: bool = False,
        initiator: str | None = None,
    ) -> int: ...

    def get_run_status(self, run_id: int) -> RunStatusResponse: ...

    def stop_test_run(self, run_id: int) -> None: ...

    def get_test_run(self, run_id: int) -> TestRunDetailsResponse: ...

    def generate_report(self, run_id: int, report_type: str = "pdf") -> ReportReference: ...

    def get_report(self, reference: ReportReference) -> bytes | None: ...

    def get_results(self, run_id: int) -> RawResponse: ...

    def get_transactions(self, run_id: int) -> RawResponse: ...


class PollingFailure(Exception):
    """Raised when the remote service stayed unreachable for a whole retry budget."""


class PollingTimeout(PollingFailure):
    """Raised when the overall polling deadline has passed."""


class _CancellationObserved(Exception):
    """Internal signal: the cancellation token was seen at a suspension point."""


@dataclass
class _RunRecorder:  # pylint: disable=too-many-instance-attributes
    """Mutable run state; only the runner writes it."""

    test_id: int
    run_id: int | None = None
    status: RunStatus = RunStatus.CREATED
    report_phase: ReportPhase = ReportPhase.NOT_REQUESTED
    reports: dict[str, ReportReference] = field(default_factory=dict)
    report_contents: dict[str, bytes] = field(default_factory=dict)
    results: TestRunResultsResponse | None = None
    transactions: tuple[TestRunTransactionsResponse, ...] = ()
    failure_reason: str | None = None
    detailed_status: str | None = None
    report_ready: bool = False

    def advance(self, target: RunStatus) -> None:
        self.status = advance_run_status(self.status, target)

    def advance_report(self, target: ReportPhase) -> None:
        self.report_phase = advance_report_phase(self.report_phase, target)
        if target is ReportPhase.READY:
            self.report_ready = True

    def fail(self, reason: str) -> None:
        self.failure_reason = reason
        if not self.status.is_terminal:
            self.advance(RunStatus.FAILED)

    def freeze(self) -> LoadTestRun:
        return LoadTestRun(
            run_id=self.run_id,
            test_id=self.test_id,
            status=self.status,
            report_phase=self.report_phase,
            reports=self.reports,
            report_contents=self.report_contents,
            has_report=self.report_ready,
            results=self.results,
            transactions=self.transactions,
            failure_reason=self.failure_reason,
            detailed_status=self.detailed_status,
        )


class LoadTestRunner:
    """Drive one remote load-test run from start to a final verdict.

    The runner owns the run state. Remote failures that end the run are recorded
    as a FAILED run with a reason; configuration problems propagate as
    ``ConfigurationError``; an observed cancellation stops the remote run and
    raises ``RunCancelled`` carrying the final run.
    """

    def __init__(
        self,
        api_client: RunApiClient,
        server: ServerConfiguration,
        options: TestRunOptions,
        polling: PollingPolicy | None = None,
        *,
        cancellation: CancellationToken | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        polling = polling or PollingPolicy()
        self._api = api_client
        self._server = server
        self._options = options
        self._polling = polling.for_test_mode() if options.test_mode else polling
        self._cancellation = cancellation or CancellationToken()
        self._clock = clock
        self._record = _RunRecorder(test_id=options.test_id)
        self._deadline = 0.0
        self._stop_requested = False

    def run(self) -> LoadTestRun:
        """Execute the run and return its final, read-only state.

        Raises:
          ConfigurationError: If login, tenant validation or the load test lookup fail
            for configuration reasons; the remote run is never started then.
          RunCancelled: If cancellation was requested before the run or its report
            collection ended.
        """
        self._deadline = self._clock() + self._polling.timeout_seconds
        try:
            self._prepare()
            self._start()
            self._poll_status()
        except _CancellationObserved:
            self._cancel()
        except PollingFailure as exc:
            self._record.fail(str(exc))
        except RequestError as exc:
            self._record.fail(f"Request rejected with HTTP {exc.status_code}: {exc.body[:200]}")
        except PayloadDecodeError as exc:
            self._record.fail(f"Unexpected API response: {exc}")

        if self._record.failure_reason is None and self._record.run_id is not None:
            self._collect_reports()
            self._log_run_details()
        elif self._record.failure_reason:
            logger.error("Run %s failed: %s", self._record.run_id, self._record.failure_reason)

        run = self._record.freeze()
        logger.info("Run %s ended with status %s", run.run_id, run.status.name)
        return run

    def _prepare(self) -> None:
        self._call("Login", self._api.login)
        self._call("Tenant validation", self._api.validate_tenant)
        try:
            load_test = self._call(
                "Load test lookup",
                self._api.get_load_test,
                self._server.project_id,
                self._options.test_id,
            )
        except RequestError as exc:
            if exc.status_code == 404:
                raise ConfigurationError(
                    f"Load test {self._options.test_id} does not exist in project "
                    f"{self._server.project_id}."
                ) from exc
            raise ConfigurationError(
                f"Load test {self._options.test_id} is not accessible (HTTP {exc.status_code})."
            ) from exc
        logger.info(
            "Load test %s '%s' has %d configured transaction(s)",
            load_test.id,
            load_test.name,
            len(load_test.transactions),
        )

    def _start(self) -> None:
        self._check_cancelled()
        run_id = self._call(
            "Run start",
            self._api.start_test_run,
            self._server.project_id,
            self._options.test_id,
            send_email=self._options.send_email or self._server.send_email,
            initiator=self._server.initiator,
        )
        self._record.run_id = run_id
        self._record.advance(RunStatus.STARTING)
        logger.info("Run %s started for load test %s", run_id, self._options.test_id)

    def _poll_status(self) -> None:
        run_id = self._require_run_id()
        while True:
            self._check_cancelled()
            response = self._call("Status check", self._api.get_run_status, run_id)
            self._record.detailed_status = response.detailed_status
            target = map_remote_status(response.status)
            if target is None:
                logger.warning("Run %s reported unknown status %s", run_id, response.status)
            elif target is not self._record.status:
                logger.info(
                    "Run %s status: %s (%s) has_report=%s",
                    run_id,
                    response.status,
                    response.detailed_status or "-",
                    response.has_report,
                )
                self._record.advance(target)
            if self._record.status.is_terminal:
                return
            self._pause(self._polling.status_interval_seconds)

    def _cancel(self) -> None:
        logger.warning("Cancellation requested for run %s", self._record.run_id)
        self._request_stop()
        self._record.advance(RunStatus.CANCELED)
        raise RunCancelled(self._record.freeze())

    def _request_stop(self) -> None:
        run_id = self._record.run_id
        if run_id is None or self._stop_requested:
            return
        self._stop_requested = True
        try:
            self._api.stop_test_run(run_id)
        except (ApiError, PayloadDecodeError) as exc:
            logger.warning("Stop request for run %s failed: %s", run_id, exc)
        else:
            logger.info("Stop requested for run %s", run_id)

    def _collect_reports(self) -> None:
        if self._options.skip_pdf_report:
            self._record.advance_report(ReportPhase.SKIPPED)
            logger.info("Report generation skipped")
            return
        self._record.advance_report(ReportPhase.GENERATING)
        try:
            ready = self._wait_for_pdf_report()
        except _CancellationObserved:
            self._record.advance_report(ReportPhase.UNAVAILABLE)
            self._abandon_reports()
        except (PollingFailure, ApiError, PayloadDecodeError) as exc:
            logger.warning("PDF report is not available: %s", exc)
            ready = False
        self._record.advance_report(ReportPhase.READY if ready else ReportPhase.UNAVAILABLE)

        try:
            self._fetch_results()
            self._fetch_transactions()
        except _CancellationObserved:
            self._abandon_reports()
        if ready:
            self._record.advance_report(ReportPhase.DONE)

    def _abandon_reports(self) -> NoReturn:
        # The remote run has already ended, so there is nothing to stop.
        logger.warning(
            "Report collection for run %s abandoned after cancellation", self._record.run_id
        )
        raise RunCancelled(self._record.freeze())

    def _wait_for_pdf_report(self) -> bool:
        run_id = self._require_run_id()
        file_name = pdf_report_file_name(run_id)
        reference = self._call("Report generation", self._api.generate_report, run_id)
        self._record.reports[file_name] = reference
        logger.info("Report %s requested for run %s", reference.value, run_id)
        while True:
            content = self._call("Report download", self._api.get_report, reference)
            if content is not None:
                self._record.report_contents[file_name] = content
                logger.info("Report %s is ready (%d bytes)", file_name, len(content))
                return True
            self._pause(self._polling.report_interval_seconds)

    def _fetch_results(self) -> None:
        run_id = self._require_run_id()
        try:
            raw = self._call("Results download", self._api.get_results, run_id)
            payload = raw.json()
            results = TestRunResultsResponse.from_payload(payload)
        except (PollingFailure, ApiError, PayloadDecodeError) as exc:
            logger.warning("Results summary for run %s is not available: %s", run_id, exc)
            return
        self._record.results = results
        self._record.report_contents[results_file_name(run_id)] = render_json(payload)
        _log_results(results)

    def _fetch_transactions(self) -> None:
        run_id = self._require_run_id()
        try:
            raw = self._call("Transactions download", self._api.get_transactions, run_id)
            transactions = decode_transactions(raw.json())
        except (PollingFailure, ApiError, PayloadDecodeError) as exc:
            logger.warning("Transactions summary for run %s is not available: %s", run_id, exc)
            return
        self._record.transactions = transactions
        self._record.report_contents[transactions_file_name(run_id)] = render_transactions_csv(
            transactions
        )

    def _log_run_details(self) -> None:
        if self._cancellation.cancelled:
            return
        run_id = self._require_run_id()
        try:
            details = self._call("Run details", self._api.get_test_run, run_id)
        except (_CancellationObserved, PollingFailure, ApiError, PayloadDecodeError) as exc:
            logger.debug("Run details for %s are not available: %s", run_id, exc)
            return
        logger.info(
            "Run %s: status=%s ui_status=%s duration=%s",
            details.id,
            details.status,
            details.ui_status or "-",
            details.duration or "-",
        )

    def _call(self, description: str, operation: Callable[..., _T], *args: Any, **kwargs: Any) -> _T:
        try:
            return operation(*args, **kwargs)
        except TransientError as exc:
            if self._cancellation.cancelled:
                raise _CancellationObserved() from exc
            raise PollingFailure(f"{description} failed: {exc}") from exc

    def _pause(self, interval: float) -> None:
        self._check_cancelled()
        remaining = self._deadline - self._clock()
        if remaining <= 0:
            raise PollingTimeout(
                f"Run {self._record.run_id} did not finish within "
                f"{self._polling.timeout_seconds:g} seconds."
            )
        if self._cancellation.wait(min(interval, remaining)):
            raise _CancellationObserved()

    def _check_cancelled(self) -> None:
        if self._cancellation.cancelled:
            raise _CancellationObserved()

    def _require_run_id(self) -> int:
        if self._record.run_id is None:
            raise RuntimeError("The remote run has not been started.")
        return self._record.run_id


def _log_results(results: TestRunResultsResponse) -> None:
    try:
        errors_per_second = results.errors_per_second().as_float()
    except ZeroDurationError:
        errors_per_second = 0.0
    logger.info(
        "Results: status=%s duration=%s vusers=%d passed=%d failed=%d "
        "errors/s=%.2f hits/s=%.2f avg throughput=%.0f B/s",
        results.status,
        results.duration,
        results.total_vusers,
        results.total_transactions_passed,
        results.total_transactions_failed,
        errors_per_second,
        results.average_hits_per_second().as_float(),
        results.average_throughput_bytes().as_float(),
    )
