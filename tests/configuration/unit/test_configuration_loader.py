"""Configuration loader tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from loadtest_runner.configuration import (
    BasicCredentials,
    OAuthCredentials,
    PollingPolicy,
    RetryPolicy,
)
from loadtest_runner.configuration.loader import (
    ConfigurationError,
    load_configuration,
    read_boolean_flags,
)

BASE_CONFIG = """
server:
  url: "https://lrc.example.com/"
  tenant_id: 652261300
  project_id: 1
auth:
  username: alice
  password: secret
test:
  test_id: 42
"""


def _write_file(path: Path, contents: str) -> Path:
    path.write_text(contents, encoding="utf-8")
    return path


def test_loads_yaml_configuration_with_defaults(tmp_path: Path) -> None:
    config_path = _write_file(tmp_path / "loadtest.yaml", BASE_CONFIG)

    configuration = load_configuration(config_path, environ={})

    assert configuration.path == config_path
    assert configuration.server.url == "https://lrc.example.com"
    assert configuration.server.tenant_id == "652261300"
    assert configuration.server.project_id == 1
    assert configuration.server.auth == BasicCredentials(username="alice", password="secret")
    assert configuration.server.proxy is None
    assert configuration.options.test_id == 42
    assert configuration.options.skip_pdf_report is False
    assert configuration.retry == RetryPolicy()
    assert configuration.polling == PollingPolicy()


def test_loads_oauth_proxy_retry_and_polling_sections(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "loadtest.yaml",
        """
server:
  url: "http://lrc.internal:8080"
  tenant_id: "t-1"
  project_id: 3
  send_email: true
  initiator: ci-pipeline
auth:
  client_id: "oauth2-abc@example.com"
  client_secret: "s3cr3t"
proxy:
  host: proxy.local
  port: 3128
  username: pu
  password: pp
test:
  test_id: 9
  test_mode: true
retry:
  max_attempts: 5
  backoff_seconds: 0.5
polling:
  status_interval_seconds: 30
  timeout_seconds: 600
""",
    )

    configuration = load_configuration(config_path, environ={})

    assert isinstance(configuration.server.auth, OAuthCredentials)
    assert configuration.server.uses_oauth
    assert configuration.server.principal == "oauth2-abc@example.com"
    assert configuration.server.send_email is True
    assert configuration.server.initiator == "ci-pipeline"
    assert configuration.server.proxy is not None
    assert configuration.server.proxy.proxy_url() == "http://pu:pp@proxy.local:3128"
    assert configuration.options.send_email is True
    assert configuration.options.test_mode is True
    assert configuration.retry.max_attempts == 5
    assert configuration.retry.backoff_seconds == 0.5
    assert configuration.polling.status_interval_seconds == 30
    assert configuration.polling.report_interval_seconds == 5
    assert configuration.polling.timeout_seconds == 600


def test_environment_overrides_replace_configured_values(tmp_path: Path) -> None:
    config_path = _write_file(tmp_path / "loadtest.yaml", BASE_CONFIG)

    configuration = load_configuration(
        config_path,
        environ={
            "LRC_URL": "https://other.example.com",
            "LRC_TENANT_ID": "tenant-2",
            "LRC_PROJECT_ID": "7",
            "LRC_USERNAME": "bob",
            "LRC_TEST_ID": "99",
            "LRC_SKIP_PDF_REPORT": "true",
            "LRC_TEST_MODE": "0",
        },
    )

    assert configuration.server.url == "https://other.example.com"
    assert configuration.server.tenant_id == "tenant-2"
    assert configuration.server.project_id == 7
    assert configuration.server.principal == "bob"
    assert configuration.options.test_id == 99
    assert configuration.options.skip_pdf_report is True
    assert configuration.options.test_mode is False


@pytest.mark.parametrize(
    ("value", "expected"),
    [("", False), ("0", False), ("false", False), ("No", False), ("1", True), ("yes", True)],
)
def test_boolean_flags_are_true_unless_blank_zero_false_or_no(value: str, expected: bool) -> None:
    flags = read_boolean_flags({"LRC_DEBUG_LOG": value})

    assert flags["LRC_DEBUG_LOG"] is expected
    assert flags["LRC_SKIP_PDF_REPORT"] is False


def test_errors_when_both_auth_modes_are_configured(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "loadtest.yaml",
        BASE_CONFIG.replace("  password: secret", "  password: secret\n  client_id: oauth2-a@b"),
    )

    with pytest.raises(ConfigurationError, match="Exactly one auth mode"):
        load_configuration(config_path, environ={})


def test_errors_when_no_auth_is_configured(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "loadtest.yaml",
        BASE_CONFIG.replace("  username: alice\n  password: secret\n", "  other: 1\n"),
    )

    with pytest.raises(ConfigurationError, match="Exactly one auth mode"):
        load_configuration(config_path, environ={})


def test_errors_when_oauth_client_id_is_malformed(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "loadtest.yaml",
        BASE_CONFIG.replace(
            "  username: alice\n  password: secret\n",
            "  client_id: client\n  client_secret: x\n",
        ),
    )

    with pytest.raises(ConfigurationError, match="OAuth client id"):
        load_configuration(config_path, environ={})


@pytest.mark.parametrize("url", ["ftp://lrc.example.com", "lrc.example.com", "https://"])
def test_errors_when_url_is_not_http(tmp_path: Path, url: str) -> None:
    config_path = _write_file(tmp_path / "loadtest.yaml", BASE_CONFIG)

    with pytest.raises(ConfigurationError, match="server.url"):
        load_configuration(config_path, environ={"LRC_URL": url})


def test_errors_when_proxy_port_is_out_of_range(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "loadtest.yaml", BASE_CONFIG + "proxy:\n  host: p\n  port: 70000\n"
    )

    with pytest.raises(ConfigurationError, match="proxy.port"):
        load_configuration(config_path, environ={})


def test_disabled_proxy_is_ignored(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "loadtest.yaml", BASE_CONFIG + "proxy:\n  enabled: false\n  host: p\n"
    )

    assert load_configuration(config_path, environ={}).server.proxy is None


@pytest.mark.parametrize(
    ("old", "new", "message"),
    [
        ("  project_id: 1", "  project_id: 0", "server.project_id"),
        ("  test_id: 42", "  test_id: forty-two", "test.test_id"),
        ("  tenant_id: 652261300", "  tenant_id: ''", "server.tenant_id"),
    ],
)
def test_errors_on_invalid_identifiers(tmp_path: Path, old: str, new: str, message: str) -> None:
    config_path = _write_file(tmp_path / "loadtest.yaml", BASE_CONFIG.replace(old, new))

    with pytest.raises(ConfigurationError, match=message):
        load_configuration(config_path, environ={})


@pytest.mark.parametrize(
    ("section", "message"),
    [
        ("retry:\n  request_timeout_seconds: 0\n", "retry.request_timeout_seconds"),
        ("polling:\n  timeout_seconds: 0\n", "polling.timeout_seconds"),
    ],
)
def test_errors_on_zero_timeouts(tmp_path: Path, section: str, message: str) -> None:
    config_path = _write_file(tmp_path / "loadtest.yaml", BASE_CONFIG + section)

    with pytest.raises(ConfigurationError, match=f"{message} must be greater than zero"):
        load_configuration(config_path, environ={})


def test_errors_when_configuration_root_is_not_mapping(tmp_path: Path) -> None:
    config_path = _write_file(tmp_path / "loadtest.yaml", "- just\n- a list\n")

    with pytest.raises(ConfigurationError, match="root must be a mapping"):
        load_configuration(config_path, environ={})


def test_errors_when_file_is_missing(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_configuration(tmp_path / "missing.yaml", environ={})
