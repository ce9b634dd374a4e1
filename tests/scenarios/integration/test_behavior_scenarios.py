"""End-to-end scenarios: real API client and runner against a scripted HTTP session."""

from __future__ import annotations

import json
from collections import defaultdict

import pytest
from loadtest_runner.configuration import (
    BasicCredentials,
    PollingPolicy,
    RetryPolicy,
    ServerConfiguration,
    TestRunOptions,
)
from loadtest_runner.remote_api import LoadTestApiClient
from loadtest_runner.run_execution import (
    CancellationToken,
    LoadTestRunner,
    ReportPhase,
    RunCancelled,
    RunStatus,
)

BASE_URL = "https://lrc.example.com"


class ScriptedResponse:
    def __init__(self, status_code=200, payload=None, *, content=None, content_type=None):
        self.status_code = status_code
        self.content = content if content is not None else json.dumps(payload).encode("utf-8")
        self.headers = {"Content-Type": content_type or "application/json"}


class RoutingSession:
    """Answers by (method, path); a list of answers is consumed in order, the last one repeats."""

    def __init__(self, routes) -> None:
        self.routes = {key: list(value) for key, value in routes.items()}
        self.hits: dict[tuple[str, str], int] = defaultdict(int)
        self.closed = 0

    def request(self, method: str, url: str, **kwargs):
        key = (method, url.removeprefix(BASE_URL))
        self.hits[key] += 1
        answers = self.routes[key]
        return answers.pop(0) if len(answers) > 1 else answers[0]

    def close(self) -> None:
        self.closed += 1


class TickingToken(CancellationToken):
    def __init__(self, clock: list[float], cancel_after_waits: int | None = None) -> None:
        super().__init__()
        self.clock = clock
        self.cancel_after_waits = cancel_after_waits
        self.wait_count = 0

    def wait(self, seconds: float) -> bool:
        self.wait_count += 1
        self.clock[0] += seconds
        if self.cancel_after_waits is not None and self.wait_count >= self.cancel_after_waits:
            self.cancel()
        return self.cancelled


def _status(value: str) -> ScriptedResponse:
    return ScriptedResponse(200, {"status": value, "detailedStatus": value.lower()})


def _routes(overrides=None):
    routes = {
        ("POST", "/v1/auth"): [ScriptedResponse(200, {"token": "tok"})],
        ("GET", "/v1/projects"): [ScriptedResponse(200, [{"id": 1}])],
        ("GET", "/v1/projects/1/load-tests/42"): [
            ScriptedResponse(200, {"id": 42, "name": "checkout", "transactions": []})
        ],
        ("POST", "/v1/projects/1/load-tests/42/runs"): [ScriptedResponse(200, {"runId": 77})],
        ("GET", "/v1/test-runs/77/status"): [
            _status("RUNNING"),
            _status("RUNNING"),
            _status("RUNNING"),
            _status("PASSED"),
        ],
        ("PUT", "/v1/test-runs/77"): [ScriptedResponse(200, {})],
        ("POST", "/v1/test-runs/77/reports"): [ScriptedResponse(200, {"reportId": 5})],
        ("GET", "/v1/test-runs/reports/5"): [
            ScriptedResponse(200, {"message": "in progress"}),
            ScriptedResponse(200, content=b"%PDF-1.7", content_type="application/pdf"),
        ],
        ("GET", "/v1/test-runs/77/results"): [
            ScriptedResponse(200, {"status": "PASSED", "duration": "0:00:40", "scriptErrors": 4})
        ],
        ("GET", "/v1/test-runs/77/transactions"): [ScriptedResponse(503, {"message": "busy"})],
        ("GET", "/v1/test-runs/77"): [ScriptedResponse(200, {"id": 77, "status": "PASSED"})],
    }
    routes.update(overrides or {})
    return routes


def _run(session: RoutingSession, *, cancel_after_waits=None, timeout_seconds=600.0):
    clock = [0.0]
    token = TickingToken(clock, cancel_after_waits)
    server = ServerConfiguration(
        url=BASE_URL,
        auth=BasicCredentials(username="alice", password="secret"),
        tenant_id="tenant-1",
        project_id=1,
    )
    with LoadTestApiClient(
        server,
        RetryPolicy(max_attempts=2, backoff_seconds=0.01),
        session=session,
        cancel_event=token.event,
        sleep=lambda _seconds: None,
    ) as client:
        runner = LoadTestRunner(
            client,
            server,
            TestRunOptions(test_id=42),
            PollingPolicy(
                status_interval_seconds=10,
                report_interval_seconds=5,
                timeout_seconds=timeout_seconds,
            ),
            cancellation=token,
            clock=lambda: clock[0],
        )
        return runner.run()


def test_passed_run_downloads_report_and_results_despite_unavailable_transactions() -> None:
    session = RoutingSession(_routes())

    run = _run(session)

    assert run.status is RunStatus.PASSED
    assert run.detailed_status == "passed"
    assert run.has_report is True
    assert run.report_phase is ReportPhase.DONE
    assert set(run.report_contents) == {"lrc_report_77.pdf", "lrc_results_77.json"}
    assert session.hits[("GET", "/v1/test-runs/77/status")] == 4
    assert session.hits[("GET", "/v1/test-runs/77/transactions")] == 2
    assert session.hits[("PUT", "/v1/test-runs/77")] == 0
    assert session.closed == 1


def test_cancelled_run_sends_one_stop_request_and_closes_session() -> None:
    session = RoutingSession(_routes({("GET", "/v1/test-runs/77/status"): [_status("RUNNING")]}))

    with pytest.raises(RunCancelled) as exc_info:
        _run(session, cancel_after_waits=2)

    assert exc_info.value.run.status is RunStatus.CANCELED
    assert session.hits[("PUT", "/v1/test-runs/77")] == 1
    assert session.closed == 1


def test_unreachable_status_endpoint_fails_the_run_after_retry_budget() -> None:
    session = RoutingSession(
        _routes(
            {
                ("GET", "/v1/test-runs/77/status"): [
                    _status("RUNNING"),
                    ScriptedResponse(500, {"message": "down"}),
                ]
            }
        )
    )

    run = _run(session)

    assert run.status is RunStatus.FAILED
    assert "gave up after 2 attempt(s)" in (run.failure_reason or "")
    assert session.hits[("GET", "/v1/test-runs/77/status")] == 3
    assert run.report_phase is ReportPhase.NOT_REQUESTED
