"""Run execution use-case service."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path

from loadtest_runner.configuration import (
    BasicCredentials,
    Configuration,
    ConfigurationError,
    load_configuration,
)
from loadtest_runner.remote_api import ApiError, LoadTestApiClient, PayloadDecodeError
from loadtest_runner.results_writing import (
    ArtifactWriteError,
    RunMetadata,
    run_summary_file_name,
    write_report_files,
    write_run_result_json,
    write_run_summary_workbook,
)

from .cancellation import CancellationToken
from .load_test_runner import LoadTestRunner
from .run_contracts import LoadTestRun, RunOutcome, RunRequest

logger = logging.getLogger(__name__)

ApiClientFactory = Callable[[Configuration, threading.Event], LoadTestApiClient]


class RunExecutionError(Exception):
    """Raised when a run use case cannot be completed."""


def execute_load_test_run(
    request: RunRequest,
    *,
    api_client_factory: ApiClientFactory | None = None,
    cancellation: CancellationToken | None = None,
    environ: Mapping[str, str] | None = None,
) -> RunOutcome:
    """Execute one remote load-test run and write its artifacts.

    Raises:
      RunExecutionError: If the configuration is invalid or rejected by the server.
      RunCancelled: If the run was cancelled; the remote run has been asked to stop.
    """
    resolved_factory = api_client_factory or _default_api_client
    token = cancellation or CancellationToken()
    configuration = _load_run_configuration(request, environ)
    if configuration.options.debug_log:
        logging.getLogger("loadtest_runner").setLevel(logging.DEBUG)
    _log_job_parameters(configuration)

    run_start = datetime.now(UTC)
    with resolved_factory(configuration, token.event) as api_client:
        runner = LoadTestRunner(
            api_client,
            configuration.server,
            configuration.options,
            configuration.polling,
            cancellation=token,
        )
        try:
            run = runner.run()
        except ConfigurationError as exc:
            raise RunExecutionError(str(exc)) from exc

    output_dir = Path(request.output_dir) if request.output_dir else Path.cwd()
    metadata = RunMetadata(
        run_start=run_start,
        run_end=datetime.now(UTC),
        server_url=configuration.server.url,
        tenant_id=configuration.server.tenant_id,
        project_id=configuration.server.project_id,
        config_path=configuration.path.resolve(),
        output_dir=output_dir.resolve(),
    )
    written = _write_run_artifacts(run, configuration, metadata)
    return RunOutcome(run=run, output_dir=output_dir.resolve(), written_files=written)


def check_connection(
    config_path: str,
    *,
    api_client_factory: ApiClientFactory | None = None,
    environ: Mapping[str, str] | None = None,
) -> None:
    """Log in and validate the tenant with the configured server."""
    resolved_factory = api_client_factory or _default_api_client
    try:
        configuration = load_configuration(config_path, environ=environ)
        with resolved_factory(configuration, threading.Event()) as api_client:
            api_client.login()
            api_client.validate_tenant()
    except (ConfigurationError, ApiError, PayloadDecodeError, OSError) as exc:
        raise RunExecutionError(str(exc)) from exc


def mask_username(username: str) -> str:
    """Keep the first two and last two characters of a user name."""
    if len(username) <= 4:
        return "*" * len(username)
    return f"{username[:2]}{'*' * (len(username) - 4)}{username[-2:]}"


def _default_api_client(
    configuration: Configuration, cancel_event: threading.Event
) -> LoadTestApiClient:
    return LoadTestApiClient(
        configuration.server, configuration.retry, cancel_event=cancel_event
    )


def _load_run_configuration(
    request: RunRequest, environ: Mapping[str, str] | None
) -> Configuration:
    try:
        configuration = load_configuration(request.config_path, environ=environ)
    except (ConfigurationError, OSError) as exc:
        raise RunExecutionError(str(exc)) from exc
    options = configuration.options
    options = replace(
        options,
        test_id=request.test_id or options.test_id,
        skip_pdf_report=options.skip_pdf_report or request.skip_pdf_report,
        debug_log=options.debug_log or request.debug_log,
        test_mode=options.test_mode or request.test_mode,
    )
    return replace(configuration, options=options)


def _log_job_parameters(configuration: Configuration) -> None:
    server = configuration.server
    auth = server.auth
    principal = (
        mask_username(auth.username) if isinstance(auth, BasicCredentials) else server.principal
    )
    logger.info(
        "Job parameters: url=%s tenant=%s project=%s test=%s principal=%s proxy=%s "
        "send_email=%s skip_pdf_report=%s test_mode=%s",
        server.url,
        server.tenant_id,
        server.project_id,
        configuration.options.test_id,
        principal,
        server.proxy.host if server.proxy else "-",
        configuration.options.send_email,
        configuration.options.skip_pdf_report,
        configuration.options.test_mode,
    )


def _write_run_artifacts(
    run: LoadTestRun, configuration: Configuration, metadata: RunMetadata
) -> tuple[Path, ...]:
    if run.run_id is None:
        return ()
    written = list(write_report_files(run.report_contents, metadata.output_dir))
    if run.has_report:
        try:
            written.append(
                write_run_result_json(run.run_id, configuration.options, run.summary(), metadata)
            )
        except ArtifactWriteError as exc:
            logger.error("%s", exc)
    if run.results is not None or run.transactions:
        try:
            written.append(
                write_run_summary_workbook(
                    metadata.output_dir / run_summary_file_name(run.run_id),
                    run_id=run.run_id,
                    status=run.status.name,
                    metadata=metadata,
                    results=run.results,
                    transactions=run.transactions,
                )
            )
        except OSError as exc:
            logger.error("Failed to create run summary workbook: %s", exc)
    return tuple(written)
