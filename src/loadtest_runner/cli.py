"""Command line interface entry point."""

from __future__ import annotations

import logging
import signal
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import click

from loadtest_runner.configuration import (
    DEFAULT_CONFIG_FILENAME,
    write_placeholder_configuration,
)
from loadtest_runner.run_execution import (
    CancellationToken,
    RunCancelled,
    RunExecutionError,
    RunRequest,
    check_connection,
    execute_load_test_run,
)

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class CliError(Exception):
    """Custom CLI error."""


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="loadtest-runner")
@click.option("--debug", is_flag=True, default=False, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """Run remote load tests and collect their reports."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format=_LOG_FORMAT)


@cli.command(name="generate-config")
@click.option(
    "--output",
    "output_path",
    required=False,
    default=DEFAULT_CONFIG_FILENAME,
    show_default=True,
    type=click.Path(path_type=str),
    help="Path to the YAML run configuration template to write",
)
def generate_config(output_path: str) -> None:
    """Generate a placeholder YAML run configuration with guidance comments."""
    try:
        resolved_output = write_placeholder_configuration(output_path)
    except (FileExistsError, OSError) as exc:
        raise CliError(str(exc)) from exc
    click.echo(str(resolved_output))


@cli.command(name="test-connection")
@click.option(
    "--config",
    "config_path",
    required=True,
    type=click.Path(path_type=str),
    help="Path to the YAML run configuration file",
)
def test_connection(config_path: str) -> None:
    """Log in and validate tenant and project with the configured server."""
    try:
        check_connection(config_path)
    except RunExecutionError as exc:
        raise CliError(f"Test connection failed: {exc}") from exc
    click.echo("Test connection succeeded!")


@cli.command(name="run")
@click.option(
    "--config",
    "config_path",
    required=True,
    type=click.Path(path_type=str),
    help="Path to the YAML run configuration file",
)
@click.option(
    "--output-dir",
    "output_dir",
    required=False,
    type=click.Path(path_type=str),
    help="Directory for report files; defaults to the working directory",
)
@click.option("--test-id", type=click.IntRange(min=1), help="Override the configured load test id.")
@click.option(
    "--skip-pdf-report",
    is_flag=True,
    default=False,
    help="Do not generate or download reports after the run.",
)
@click.option(
    "--test-mode",
    is_flag=True,
    default=False,
    help="Poll with one second intervals.",
)
@click.pass_context
def run_load_test(  # pylint: disable=too-many-arguments
    ctx: click.Context,
    config_path: str,
    output_dir: str | None,
    test_id: int | None,
    skip_pdf_report: bool,
    test_mode: bool,
) -> None:
    """Start the configured load test and wait for its verdict."""
    request = RunRequest(
        config_path=config_path,
        output_dir=output_dir,
        test_id=test_id,
        skip_pdf_report=skip_pdf_report,
        debug_log=bool(ctx.obj and ctx.obj.get("debug")),
        test_mode=test_mode,
    )
    token = CancellationToken()
    try:
        with _cancel_on_signals(token):
            outcome = execute_load_test_run(request, cancellation=token)
    except RunCancelled as exc:
        raise CliError(str(exc)) from exc
    except RunExecutionError as exc:
        raise CliError(str(exc)) from exc

    run = outcome.run
    click.echo(f"run id: {run.run_id}")
    for path in outcome.written_files:
        click.echo(str(path))
    if not run.succeeded:
        reason = f": {run.failure_reason}" if run.failure_reason else ""
        raise CliError(f"Run {run.run_id} ended with status {run.status.name}{reason}")
    click.echo(f"Run {run.run_id} {run.status.name}")


@contextmanager
def _cancel_on_signals(token: CancellationToken) -> Iterator[None]:
    def _handler(signum: int, _frame: object) -> None:
        logger.warning("Received signal %d; cancelling the run", signum)
        token.cancel()

    handled = (signal.SIGINT, signal.SIGTERM)
    previous = {signum: signal.getsignal(signum) for signum in handled}
    for signum in handled:
        signal.signal(signum, _handler)
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for console_scripts wiring."""
    argv = argv if argv is not None else sys.argv[1:]
    try:
        cli.main(args=list(argv), standalone_mode=False)
    except CliError as exc:
        click.echo(str(exc), err=True)
        return 1
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        click.echo("Aborted.", err=True)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
