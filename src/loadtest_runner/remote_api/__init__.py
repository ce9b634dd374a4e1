"""Remote API exports."""

from .api_client import LoadTestApiClient, RawResponse
from .api_errors import (
    ApiError,
    AuthenticationError,
    RequestError,
    RetriesExhaustedError,
    TransientError,
)
from .endpoint_catalog import (
    ENDPOINT_TEMPLATES,
    Endpoint,
    EndpointKind,
    MissingPathVariable,
    ReportReference,
    ResolvedEndpoint,
    resolve_endpoint,
)
from .response_models import (
    LoadTestResponse,
    LoadTestTransactionsResponse,
    Measurement,
    PayloadDecodeError,
    RunStatusResponse,
    TestRunDetailsResponse,
    TestRunResultsResponse,
    TestRunTransactionsResponse,
    TestRunTrtSummaryResponse,
    ZeroDurationError,
    decode_transactions,
    parse_duration,
    parse_throughput,
)

__all__ = [
    "LoadTestApiClient",
    "RawResponse",
    "ApiError",
    "AuthenticationError",
    "RequestError",
    "RetriesExhaustedError",
    "TransientError",
    "ENDPOINT_TEMPLATES",
    "Endpoint",
    "EndpointKind",
    "MissingPathVariable",
    "ReportReference",
    "ResolvedEndpoint",
    "resolve_endpoint",
    "LoadTestResponse",
    "LoadTestTransactionsResponse",
    "Measurement",
    "PayloadDecodeError",
    "RunStatusResponse",
    "TestRunDetailsResponse",
    "TestRunResultsResponse",
    "TestRunTransactionsResponse",
    "TestRunTrtSummaryResponse",
    "ZeroDurationError",
    "decode_transactions",
    "parse_duration",
    "parse_throughput",
]
