"""Configuration domain entities."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

TEST_MODE_INTERVAL_SECONDS = 1.0


@dataclass(frozen=True)
class BasicCredentials:
    """User name and password authentication."""

    username: str
    password: str


@dataclass(frozen=True)
class OAuthCredentials:
    """OAuth client id and secret authentication."""

    client_id: str
    client_secret: str


AuthCredentials = BasicCredentials | OAuthCredentials


@dataclass(frozen=True)
class ProxySettings:
    """Outbound proxy used for every API call."""

    host: str
    port: int | None = None
    username: str | None = None
    password: str | None = None

    def proxy_url(self) -> str:
        """Render the proxy as a URL understood by requests."""
        credentials = ""
        if self.username:
            credentials = f"{self.username}:{self.password or ''}@"
        port = f":{self.port}" if self.port is not None else ""
        host = self.host if "://" in self.host else f"http://{self.host}"
        scheme, _, address = host.partition("://")
        return f"{scheme}://{credentials}{address}{port}"


@dataclass(frozen=True)
class ServerConfiguration:  # pylint: disable=too-many-instance-attributes
    """Remote service connectivity configuration for one invocation."""

    url: str
    auth: AuthCredentials
    tenant_id: str
    project_id: int
    send_email: bool = False
    initiator: str | None = None
    proxy: ProxySettings | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.auth, BasicCredentials | OAuthCredentials):
            raise TypeError("auth must be BasicCredentials or OAuthCredentials.")

    @property
    def uses_oauth(self) -> bool:
        return isinstance(self.auth, OAuthCredentials)

    @property
    def principal(self) -> str:
        """User name or OAuth client id, whichever the auth mode uses."""
        if isinstance(self.auth, OAuthCredentials):
            return self.auth.client_id
        return self.auth.username

    def with_proxy(self, proxy: ProxySettings | None) -> ServerConfiguration:
        return replace(self, proxy=proxy)


@dataclass(frozen=True)
class TestRunOptions:
    """Per-invocation options of one test run."""

    __test__ = False

    test_id: int
    send_email: bool = False
    skip_pdf_report: bool = False
    debug_log: bool = False
    test_mode: bool = False


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry settings for transient API failures."""

    max_attempts: int = 3
    backoff_seconds: float = 2.0
    max_backoff_seconds: float = 30.0
    request_timeout_seconds: float = 60.0


@dataclass(frozen=True)
class PollingPolicy:
    """Intervals and overall deadline used while waiting on the remote run."""

    status_interval_seconds: float = 10.0
    report_interval_seconds: float = 5.0
    timeout_seconds: float = 21600.0

    def for_test_mode(self) -> PollingPolicy:
        return replace(
            self,
            status_interval_seconds=min(self.status_interval_seconds, TEST_MODE_INTERVAL_SECONDS),
            report_interval_seconds=min(self.report_interval_seconds, TEST_MODE_INTERVAL_SECONDS),
        )


@dataclass(frozen=True)
class Configuration:
    """Top-level configuration aggregate."""

    path: Path
    server: ServerConfiguration
    options: TestRunOptions
    retry: RetryPolicy
    polling: PollingPolicy
