"""API endpoint catalog: one table row per remote operation."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

API_VERSION_PREFIX = "v1"

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


class MissingPathVariable(ValueError):
    """Raised when an endpoint is built without a variable its path template needs."""

    def __init__(self, kind: EndpointKind, names: tuple[str, ...]) -> None:
        super().__init__(f"{kind.name} requires path variable(s): {', '.join(names)}")
        self.kind = kind
        self.names = names


class EndpointKind(str, Enum):
    """Remote operations known to the API client."""

    GET_LOAD_TEST = "get-load-test"
    START_TEST_RUN = "start-test-run"
    GET_RUN_STATUS = "get-run-status"
    CHANGE_TEST_RUN_STATUS = "change-test-run-status"
    GET_TEST_RUN = "get-test-run"
    GENERATE_REPORT = "generate-report"
    GET_REPORT = "get-report"
    GET_RESULTS = "get-results"
    GET_TRANSACTIONS = "get-transactions"
    LIST_PROJECTS = "list-projects"
    DOWNLOAD_TRANSACTION_CSV = "download-transaction-csv"


@dataclass(frozen=True)
class EndpointTemplate:
    """HTTP verb and relative path template of one operation."""

    method: str
    path_template: str | None

    @property
    def variable_names(self) -> tuple[str, ...]:
        if self.path_template is None:
            return ()
        return tuple(_PLACEHOLDER.findall(self.path_template))


ENDPOINT_TEMPLATES: Mapping[EndpointKind, EndpointTemplate] = MappingProxyType(
    {
        EndpointKind.GET_LOAD_TEST: EndpointTemplate(
            "GET", "projects/{projectId}/load-tests/{loadTestId}"
        ),
        EndpointKind.START_TEST_RUN: EndpointTemplate(
            "POST", "projects/{projectId}/load-tests/{loadTestId}/runs"
        ),
        EndpointKind.GET_RUN_STATUS: EndpointTemplate("GET", "test-runs/{runId}/status"),
        EndpointKind.CHANGE_TEST_RUN_STATUS: EndpointTemplate("PUT", "test-runs/{runId}"),
        EndpointKind.GET_TEST_RUN: EndpointTemplate("GET", "test-runs/{runId}"),
        EndpointKind.GENERATE_REPORT: EndpointTemplate("POST", "test-runs/{runId}/reports"),
        EndpointKind.GET_REPORT: EndpointTemplate("GET", "test-runs/reports/{reportId}"),
        EndpointKind.GET_RESULTS: EndpointTemplate("GET", "test-runs/{runId}/results"),
        EndpointKind.GET_TRANSACTIONS: EndpointTemplate("GET", "test-runs/{runId}/transactions"),
        EndpointKind.LIST_PROJECTS: EndpointTemplate("GET", "projects"),
        # Fetched from a reference URL returned by an earlier response.
        EndpointKind.DOWNLOAD_TRANSACTION_CSV: EndpointTemplate("GET", None),
    }
)


@dataclass(frozen=True)
class ResolvedEndpoint:
    """Relative path and HTTP verb ready to be sent."""

    method: str
    path: str | None

    @property
    def requires_reference(self) -> bool:
        return self.path is None


@dataclass(frozen=True)
class Endpoint:
    """One remote operation bound to its path variables."""

    kind: EndpointKind
    variables: Mapping[str, str | int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        missing = tuple(
            name
            for name in ENDPOINT_TEMPLATES[self.kind].variable_names
            if str(self.variables.get(name, "")).strip() == ""
        )
        if missing:
            raise MissingPathVariable(self.kind, missing)
        object.__setattr__(self, "variables", MappingProxyType(dict(self.variables)))

    def resolve(self) -> ResolvedEndpoint:
        template = ENDPOINT_TEMPLATES[self.kind]
        if template.path_template is None:
            return ResolvedEndpoint(method=template.method, path=None)
        relative = _PLACEHOLDER.sub(
            lambda match: str(self.variables[match.group(1)]), template.path_template
        )
        return ResolvedEndpoint(method=template.method, path=f"{API_VERSION_PREFIX}/{relative}")


def resolve_endpoint(
    kind: EndpointKind, variables: Mapping[str, str | int] | None = None
) -> ResolvedEndpoint:
    """Resolve ``kind`` against ``variables`` into ``(method, path)``."""
    return Endpoint(kind, variables or {}).resolve()


@dataclass(frozen=True)
class ReportReference:
    """Where a generated artifact can be fetched: a report id or a previously returned URL."""

    kind: EndpointKind
    value: str

    @staticmethod
    def for_report(report_id: str | int) -> ReportReference:
        return ReportReference(kind=EndpointKind.GET_REPORT, value=str(report_id))

    @staticmethod
    def for_url(url: str) -> ReportReference:
        return ReportReference(kind=EndpointKind.DOWNLOAD_TRANSACTION_CSV, value=url)
