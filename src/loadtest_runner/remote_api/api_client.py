"""REST API client: one logical remote operation per call, with bounded retries."""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

import requests
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_when_event_set,
    wait_exponential,
)

from loadtest_runner.configuration.loader import ConfigurationError
from loadtest_runner.configuration.runtime_settings import (
    OAuthCredentials,
    RetryPolicy,
    ServerConfiguration,
)

from .api_errors import (
    ApiError,
    AuthenticationError,
    RequestError,
    RetriesExhaustedError,
    TransientError,
)
from .endpoint_catalog import Endpoint, EndpointKind, ReportReference
from .response_models import (
    LoadTestResponse,
    PayloadDecodeError,
    RunStatusResponse,
    TestRunDetailsResponse,
)

logger = logging.getLogger(__name__)

_BASIC_LOGIN_PATH = "v1/auth"
_OAUTH_LOGIN_PATH = "v1/auth-client"
_SESSION_COOKIE = "LWSSO_COOKIE_KEY"
_TENANT_PARAMETER = "TENANTID"
_AUTH_FAILURE_CODES = (401, 403)
_STOP_ACTION = {"action": "STOP"}


class HttpResponse(Protocol):  # pylint: disable=too-few-public-methods
    """Subset of ``requests.Response`` used by the client."""

    status_code: int
    headers: Mapping[str, str]
    content: bytes


class HttpSession(Protocol):
    """Subset of ``requests.Session`` used by the client."""

    def request(self, method: str, url: str, **kwargs: Any) -> HttpResponse: ...

    def close(self) -> None: ...


@dataclass(frozen=True)
class RawResponse:
    """Undecoded answer of one successful call."""

    status_code: int
    content: bytes
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    @property
    def is_json(self) -> bool:
        content_type = next(
            (value for key, value in self.headers.items() if key.lower() == "content-type"), ""
        )
        return "json" in content_type.lower()

    def json(self) -> Any:
        try:
            return json.loads(self.text) if self.content else None
        except json.JSONDecodeError as exc:
            raise PayloadDecodeError(f"Response body is not valid JSON: {exc}") from exc


class LoadTestApiClient:
    """Client for the load-test REST API.

    One instance holds one authenticated session. Use it as a context manager so the
    session is released on every exit path.
    """

    def __init__(
        self,
        server: ServerConfiguration,
        retry_policy: RetryPolicy | None = None,
        *,
        session: HttpSession | None = None,
        cancel_event: threading.Event | None = None,
        sleep: Callable[[float], Any] | None = None,
    ) -> None:
        self._server = server
        self._retry_policy = retry_policy or RetryPolicy()
        self._session: HttpSession = session or requests.Session()
        self._cancel_event = cancel_event
        self._sleep = sleep or (cancel_event.wait if cancel_event else time.sleep)
        self._token: str | None = None
        self._closed = False

    def __enter__(self) -> LoadTestApiClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Release the session; later calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        self._token = None
        self._session.close()
        logger.debug("API session closed")

    def login(self) -> None:
        """Authenticate with the configured auth mode and keep the session token."""
        auth = self._server.auth
        if isinstance(auth, OAuthCredentials):
            path = _OAUTH_LOGIN_PATH
            body = {"client_id": auth.client_id, "client_secret": auth.client_secret}
        else:
            path = _BASIC_LOGIN_PATH
            body = {"user": auth.username, "password": auth.password}
        try:
            raw = self._call_with_retry("POST", self._url(path), body=body, authenticated=False)
        except RequestError as exc:
            if exc.status_code in _AUTH_FAILURE_CODES:
                raise AuthenticationError(
                    f"Login failed for '{self._server.principal}': invalid credentials."
                ) from exc
            raise ConfigurationError(f"Login failed: {exc}") from exc
        payload = raw.json()
        token = payload.get("token") if isinstance(payload, Mapping) else None
        if not token:
            raise AuthenticationError("Login response did not contain a session token.")
        self._token = str(token)
        logger.info("Logged in to %s as %s", self._server.url, self._server.principal)

    def validate_tenant(self) -> None:
        """Check that the tenant is reachable and the configured project belongs to it."""
        try:
            raw = self.execute(Endpoint(EndpointKind.LIST_PROJECTS))
        except RequestError as exc:
            raise ConfigurationError(
                f"Tenant '{self._server.tenant_id}' is not reachable (HTTP {exc.status_code})."
            ) from exc
        projects = raw.json() or []
        project_ids = {
            str(project.get("id")) for project in projects if isinstance(project, Mapping)
        }
        if str(self._server.project_id) not in project_ids:
            raise ConfigurationError(
                f"Project {self._server.project_id} does not exist in tenant "
                f"'{self._server.tenant_id}'."
            )

    def execute(self, endpoint: Endpoint, body: Any = None) -> RawResponse:
        """Send one operation and return its raw answer.

        Raises:
          RequestError: On a 4xx answer.
          RetriesExhaustedError: When every attempt failed transiently.
        """
        resolved = endpoint.resolve()
        if resolved.path is None:
            raise ValueError(
                f"{endpoint.kind.name} has no path template; fetch it from its reference URL."
            )
        if self._token is None:
            self.login()
        return self._call_with_retry(resolved.method, self._url(resolved.path), body=body)

    def get_load_test(self, project_id: int, load_test_id: int) -> LoadTestResponse:
        raw = self.execute(
            Endpoint(
                EndpointKind.GET_LOAD_TEST,
                {"projectId": project_id, "loadTestId": load_test_id},
            )
        )
        return LoadTestResponse.from_payload(raw.json())

    def start_test_run(
        self,
        project_id: int,
        load_test_id: int,
        *,
        send_email: bool = False,
        initiator: str | None = None,
    ) -> int:
        body: dict[str, Any] = {"sendEmail": send_email}
        if initiator:
            body["initiator"] = initiator
        raw = self.execute(
            Endpoint(
                EndpointKind.START_TEST_RUN,
                {"projectId": project_id, "loadTestId": load_test_id},
            ),
            body,
        )
        return _require_id(raw.json(), "runId")

    def get_run_status(self, run_id: int) -> RunStatusResponse:
        raw = self.execute(Endpoint(EndpointKind.GET_RUN_STATUS, {"runId": run_id}))
        return RunStatusResponse.from_payload(raw.json())

    def stop_test_run(self, run_id: int) -> None:
        self.execute(Endpoint(EndpointKind.CHANGE_TEST_RUN_STATUS, {"runId": run_id}), _STOP_ACTION)

    def get_test_run(self, run_id: int) -> TestRunDetailsResponse:
        raw = self.execute(Endpoint(EndpointKind.GET_TEST_RUN, {"runId": run_id}))
        return TestRunDetailsResponse.from_payload(raw.json())

    def generate_report(self, run_id: int, report_type: str = "pdf") -> ReportReference:
        raw = self.execute(
            Endpoint(EndpointKind.GENERATE_REPORT, {"runId": run_id}),
            {"reportType": report_type},
        )
        return ReportReference.for_report(_require_id(raw.json(), "reportId"))

    def get_results(self, run_id: int) -> RawResponse:
        return self.execute(Endpoint(EndpointKind.GET_RESULTS, {"runId": run_id}))

    def get_transactions(self, run_id: int) -> RawResponse:
        return self.execute(Endpoint(EndpointKind.GET_TRANSACTIONS, {"runId": run_id}))

    def get_report(self, reference: ReportReference) -> bytes | None:
        """Fetch a generated artifact.

        Returns:
          The artifact bytes, or None when the server says it does not exist (yet).
        """
        try:
            if reference.kind is EndpointKind.DOWNLOAD_TRANSACTION_CSV:
                if self._token is None:
                    self.login()
                raw = self._call_with_retry("GET", self._url(reference.value))
            else:
                raw = self.execute(Endpoint(EndpointKind.GET_REPORT, {"reportId": reference.value}))
        except RequestError as exc:
            if exc.status_code == 404:
                return None
            raise
        if raw.is_json:
            logger.debug("Report %s is not available yet: %s", reference.value, raw.text)
            return None
        return raw.content

    def _url(self, path_or_url: str) -> str:
        if path_or_url.startswith(("http://", "https://")):
            return path_or_url
        return f"{self._server.url}/{path_or_url.lstrip('/')}"

    def _call_with_retry(
        self, method: str, url: str, *, body: Any = None, authenticated: bool = True
    ) -> RawResponse:
        stop = stop_after_attempt(self._retry_policy.max_attempts)
        if self._cancel_event is not None:
            stop = stop | stop_when_event_set(self._cancel_event)
        failures: list[tuple[TransientError, int]] = []

        def _before_sleep(retry_state: RetryCallState) -> None:
            _log_before_retry(retry_state)
            error = retry_state.outcome.exception() if retry_state.outcome else None
            if isinstance(error, TransientError):
                failures.append((error, retry_state.attempt_number))

        def _sleep(seconds: float) -> None:
            self._sleep(seconds)
            # The outcome is already reset here, so the failure comes from _before_sleep.
            if self._cancel_event is not None and self._cancel_event.is_set() and failures:
                last_error, attempts = failures[-1]
                logger.info("Cancellation requested; not retrying %s %s", method, url)
                raise RetriesExhaustedError(last_error, attempts) from last_error

        retrying = Retrying(
            stop=stop,
            wait=wait_exponential(
                multiplier=self._retry_policy.backoff_seconds,
                max=self._retry_policy.max_backoff_seconds,
            ),
            retry=retry_if_exception_type(TransientError),
            sleep=_sleep,
            before_sleep=_before_sleep,
        )
        try:
            return retrying(self._send_once, method, url, body, authenticated)
        except RetryError as exc:
            last_error = exc.last_attempt.exception()
            if not isinstance(last_error, TransientError):  # pragma: no cover - retry filter
                raise
            raise RetriesExhaustedError(last_error, exc.last_attempt.attempt_number) from last_error

    def _send_once(self, method: str, url: str, body: Any, authenticated: bool) -> RawResponse:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        cookies: dict[str, str] = {}
        if authenticated and self._token:
            if self._server.uses_oauth:
                headers["Authorization"] = f"Bearer {self._token}"
            else:
                cookies[_SESSION_COOKIE] = self._token
        kwargs: dict[str, Any] = {
            "params": {_TENANT_PARAMETER: self._server.tenant_id},
            "headers": headers,
            "cookies": cookies,
            "timeout": self._retry_policy.request_timeout_seconds,
        }
        if body is not None:
            kwargs["json"] = body
        if self._server.proxy is not None:
            proxy_url = self._server.proxy.proxy_url()
            kwargs["proxies"] = {"http": proxy_url, "https": proxy_url}

        logger.debug("%s %s", method, url)
        try:
            response = self._session.request(method, url, **kwargs)
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as exc:
            raise TransientError(f"{method} {url} failed: {exc}", method=method, url=url) from exc
        except requests.exceptions.RequestException as exc:
            raise ApiError(f"{method} {url} failed: {exc}", method=method, url=url) from exc

        content = response.content or b""
        status_code = response.status_code
        if status_code >= 500:
            raise TransientError(
                f"{method} {url} failed with HTTP {status_code}",
                method=method,
                url=url,
                status_code=status_code,
            )
        if status_code >= 400:
            raise RequestError(
                method=method,
                url=url,
                status_code=status_code,
                body=content.decode("utf-8", errors="replace"),
            )
        return RawResponse(
            status_code=status_code, content=content, headers=dict(response.headers or {})
        )


def _require_id(payload: Any, key: str) -> int:
    value = payload.get(key) if isinstance(payload, Mapping) else None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise PayloadDecodeError(f"Response is missing a numeric '{key}': {payload!r}") from exc


def _log_before_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        "Attempt %d failed: %s; retrying in %.1fs", retry_state.attempt_number, error, delay
    )


