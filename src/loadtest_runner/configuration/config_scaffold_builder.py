"""Configuration scaffold generation helpers."""

from __future__ import annotations

from pathlib import Path

DEFAULT_CONFIG_FILENAME = "loadtest.yaml"

_CONFIG_SCAFFOLD_TEMPLATE = """# Run configuration template for loadtest-runner.
# Replace every <REQUIRED> placeholder before running test-connection or run.
# Replace <OPTIONAL> placeholders only when your setup needs them.
# LRC_* environment variables override the matching values at run time.

server:
  url: "<REQUIRED>"
  tenant_id: "<REQUIRED>"
  project_id: "<REQUIRED>"
  send_email: false
  # initiator: "<OPTIONAL>"

auth:
  # Choose exactly one auth mode (username/password or client_id/client_secret).
  username: "<REQUIRED>"
  password: "<REQUIRED>"
  # client_id: "<OPTIONAL>"
  # client_secret: "<OPTIONAL>"

# proxy:
#   host: "<OPTIONAL>"
#   port: "<OPTIONAL>"
#   username: "<OPTIONAL>"
#   password: "<OPTIONAL>"

test:
  test_id: "<REQUIRED>"
  skip_pdf_report: false
  debug_log: false
  test_mode: false

retry:
  max_attempts: 3
  backoff_seconds: 2
  max_backoff_seconds: 30

polling:
  status_interval_seconds: 10
  report_interval_seconds: 5
  timeout_seconds: 21600
"""


def build_placeholder_configuration() -> str:
    """Build a YAML run configuration template with placeholders and inline guidance."""
    return _CONFIG_SCAFFOLD_TEMPLATE


def write_placeholder_configuration(output_path: Path | str) -> Path:
    """Write the placeholder run configuration template to the requested output path.

    Args:
      output_path: Destination file path for the scaffold.

    Returns:
      The resolved destination path.

    Raises:
      FileExistsError: If the destination file already exists.
      OSError: If writing the scaffold fails.
    """
    destination = Path(output_path)
    if destination.exists():
        raise FileExistsError(f"Run configuration file already exists: {destination.resolve()}")
    destination.write_text(build_placeholder_configuration(), encoding="utf-8")
    return destination.resolve()
