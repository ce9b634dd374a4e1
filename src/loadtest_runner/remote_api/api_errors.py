"""API client error taxonomy."""

from __future__ import annotations

from loadtest_runner.configuration.loader import ConfigurationError


class AuthenticationError(ConfigurationError):
    """Raised when the remote service rejects the configured credentials."""


class ApiError(Exception):
    """Base class for failures of one API call."""

    def __init__(self, message: str, *, method: str, url: str) -> None:
        super().__init__(message)
        self.method = method
        self.url = url


class RequestError(ApiError):
    """Raised for 4xx answers; these are never retried."""

    def __init__(self, *, method: str, url: str, status_code: int, body: str) -> None:
        super().__init__(
            f"{method} {url} failed with HTTP {status_code}: {body[:500]}",
            method=method,
            url=url,
        )
        self.status_code = status_code
        self.body = body


class TransientError(ApiError):
    """Raised for 5xx answers and connection-level failures."""

    def __init__(
        self, message: str, *, method: str, url: str, status_code: int | None = None
    ) -> None:
        super().__init__(message, method=method, url=url)
        self.status_code = status_code


class RetriesExhaustedError(TransientError):
    """Raised when every allowed attempt of one call failed transiently."""

    def __init__(self, last_error: TransientError, attempts: int) -> None:
        super().__init__(
            f"{last_error} (gave up after {attempts} attempt(s))",
            method=last_error.method,
            url=last_error.url,
            status_code=last_error.status_code,
        )
        self.attempts = attempts
        self.last_error = last_error
