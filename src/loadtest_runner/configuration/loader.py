"""Configuration loader service."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .runtime_settings import (
    AuthCredentials,
    BasicCredentials,
    Configuration,
    OAuthCredentials,
    PollingPolicy,
    ProxySettings,
    RetryPolicy,
    ServerConfiguration,
    TestRunOptions,
)

STRING_OVERRIDES = {
    "LRC_URL": ("server", "url"),
    "LRC_TENANT_ID": ("server", "tenant_id"),
    "LRC_PROJECT_ID": ("server", "project_id"),
    "LRC_USERNAME": ("auth", "username"),
    "LRC_PASSWORD": ("auth", "password"),
    "LRC_CLIENT_ID": ("auth", "client_id"),
    "LRC_CLIENT_SECRET": ("auth", "client_secret"),
    "LRC_TEST_ID": ("test", "test_id"),
}
BOOLEAN_FLAGS = ("LRC_SKIP_PDF_REPORT", "LRC_DEBUG_LOG", "LRC_TEST_MODE")

_URL_PATTERN = re.compile(r"^https?://[-a-zA-Z0-9+&@#/%?=~_|!:,.;]*[-a-zA-Z0-9+&@#/%=~_|]$")
_OAUTH_CLIENT_ID_PATTERN = re.compile(r"^oauth2-\S+@\S+$")
_FALSE_FLAG_VALUES = {"0", "false", "no"}


class ConfigurationError(Exception):
    """Raised when the configuration file is invalid."""


def load_configuration(
    config_path: Path | str,
    *,
    environ: Mapping[str, str] | None = None,
) -> Configuration:
    """Load and validate the configuration file, applying LRC_* environment overrides."""
    path = Path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    text = path.read_text(encoding="utf-8")
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as exc:  # pragma: no cover - exercised indirectly
        raise ConfigurationError(f"Failed to parse configuration file: {exc}") from exc

    if parsed is None:
        parsed = {}

    if not isinstance(parsed, Mapping):
        raise ConfigurationError("Configuration root must be a mapping.")

    environment = os.environ if environ is None else environ
    sections = _apply_string_overrides(parsed, environment)
    flags = read_boolean_flags(environment)

    server = _parse_server_section(sections.get("server"), sections.get("auth"))
    server = server.with_proxy(_parse_proxy_section(sections.get("proxy")))
    options = _parse_test_section(sections.get("test"), server=server, flags=flags)
    retry = _parse_retry_section(sections.get("retry"))
    polling = _parse_polling_section(sections.get("polling"))

    return Configuration(
        path=path,
        server=server,
        options=options,
        retry=retry,
        polling=polling,
    )


def read_boolean_flags(environ: Mapping[str, str]) -> dict[str, bool]:
    """Read LRC_* boolean flags; any value except blank, 0, false and no enables a flag."""
    flags = {}
    for name in BOOLEAN_FLAGS:
        value = (environ.get(name) or "").strip()
        flags[name] = bool(value) and value.lower() not in _FALSE_FLAG_VALUES
    return flags


def _apply_string_overrides(
    parsed: Mapping[str, Any], environ: Mapping[str, str]
) -> dict[str, Any]:
    sections: dict[str, Any] = {
        key: dict(value) if isinstance(value, Mapping) else value for key, value in parsed.items()
    }
    for variable, (section_name, field_name) in STRING_OVERRIDES.items():
        value = (environ.get(variable) or "").strip()
        if not value:
            continue
        section = sections.get(section_name)
        if section is None:
            section = sections[section_name] = {}
        if not isinstance(section, dict):
            raise ConfigurationError(f"Configuration section '{section_name}' must be a mapping.")
        section[field_name] = value
    return sections


def _parse_server_section(value: Any, auth_value: Any) -> ServerConfiguration:
    section = _require_mapping(value, "server")
    url = _require_non_empty_string(section.get("url"), "server.url").rstrip("/")
    if not _URL_PATTERN.match(url):
        raise ConfigurationError(f"server.url '{url}' is not a valid http(s) URL.")
    tenant_id = _require_non_empty_string(_as_text(section.get("tenant_id")), "server.tenant_id")
    project_id = _require_positive_int(section.get("project_id"), "server.project_id")
    send_email = _optional_bool(section.get("send_email"), "server.send_email")
    initiator = _optional_string(section.get("initiator"), "server.initiator")
    return ServerConfiguration(
        url=url,
        auth=_parse_auth_section(auth_value),
        tenant_id=tenant_id,
        project_id=project_id,
        send_email=send_email,
        initiator=initiator,
    )


def _parse_auth_section(value: Any) -> AuthCredentials:
    section = _require_mapping(value, "auth")
    has_basic = bool(section.get("username") or section.get("password"))
    has_oauth = bool(section.get("client_id") or section.get("client_secret"))
    if has_basic == has_oauth:
        raise ConfigurationError(
            "Exactly one auth mode (username/password or client_id/client_secret) "
            "must be provided."
        )
    if has_oauth:
        client_id = _require_non_empty_string(section.get("client_id"), "auth.client_id")
        if not _OAUTH_CLIENT_ID_PATTERN.match(client_id):
            raise ConfigurationError(f"auth.client_id '{client_id}' is not a valid OAuth client id.")
        client_secret = _require_non_empty_string(
            section.get("client_secret"), "auth.client_secret"
        )
        return OAuthCredentials(client_id=client_id, client_secret=client_secret)
    username = _require_non_empty_string(section.get("username"), "auth.username")
    password = _require_non_empty_string(section.get("password"), "auth.password")
    return BasicCredentials(username=username, password=password)


def _parse_proxy_section(value: Any) -> ProxySettings | None:
    if value is None:
        return None
    section = _require_mapping(value, "proxy")
    if not _optional_bool(section.get("enabled", True), "proxy.enabled"):
        return None
    host = _require_non_empty_string(section.get("host"), "proxy.host")
    port = section.get("port")
    if port is not None:
        port = _require_int(port, "proxy.port")
        if not 0 <= port <= 65535:
            raise ConfigurationError("proxy.port must be between 0 and 65535.")
    return ProxySettings(
        host=host,
        port=port,
        username=_optional_string(section.get("username"), "proxy.username"),
        password=_optional_string(section.get("password"), "proxy.password"),
    )


def _parse_test_section(
    value: Any, *, server: ServerConfiguration, flags: Mapping[str, bool]
) -> TestRunOptions:
    section = _require_mapping(value, "test")
    return TestRunOptions(
        test_id=_require_positive_int(section.get("test_id"), "test.test_id"),
        send_email=server.send_email,
        skip_pdf_report=_optional_bool(section.get("skip_pdf_report"), "test.skip_pdf_report")
        or flags["LRC_SKIP_PDF_REPORT"],
        debug_log=_optional_bool(section.get("debug_log"), "test.debug_log")
        or flags["LRC_DEBUG_LOG"],
        test_mode=_optional_bool(section.get("test_mode"), "test.test_mode")
        or flags["LRC_TEST_MODE"],
    )


def _parse_retry_section(value: Any) -> RetryPolicy:
    if value is None:
        return RetryPolicy()
    section = _require_mapping(value, "retry")
    defaults = RetryPolicy()
    return RetryPolicy(
        max_attempts=_require_positive_int(
            section.get("max_attempts", defaults.max_attempts), "retry.max_attempts"
        ),
        backoff_seconds=_require_non_negative_number(
            section.get("backoff_seconds", defaults.backoff_seconds), "retry.backoff_seconds"
        ),
        max_backoff_seconds=_require_non_negative_number(
            section.get("max_backoff_seconds", defaults.max_backoff_seconds),
            "retry.max_backoff_seconds",
        ),
        request_timeout_seconds=_require_positive_number(
            section.get("request_timeout_seconds", defaults.request_timeout_seconds),
            "retry.request_timeout_seconds",
        ),
    )


def _parse_polling_section(value: Any) -> PollingPolicy:
    if value is None:
        return PollingPolicy()
    section = _require_mapping(value, "polling")
    defaults = PollingPolicy()
    return PollingPolicy(
        status_interval_seconds=_require_non_negative_number(
            section.get("status_interval_seconds", defaults.status_interval_seconds),
            "polling.status_interval_seconds",
        ),
        report_interval_seconds=_require_non_negative_number(
            section.get("report_interval_seconds", defaults.report_interval_seconds),
            "polling.report_interval_seconds",
        ),
        timeout_seconds=_require_positive_number(
            section.get("timeout_seconds", defaults.timeout_seconds),
            "polling.timeout_seconds",
        ),
    )


def _as_text(value: Any) -> Any:
    # Tenant ids are numeric-looking and YAML reads them as integers.
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


def _require_mapping(value: Any, section_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Configuration section '{section_name}' is required.")
    return value


def _require_non_empty_string(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string.")
    stripped = value.strip()
    if not stripped:
        raise ConfigurationError(f"{field_name} must not be empty.")
    return stripped


def _optional_string(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string.")
    stripped = value.strip()
    return stripped or None


def _optional_bool(value: Any, field_name: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigurationError(f"{field_name} must be true or false.")
    return value


def _require_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{field_name} must be an integer.")
    if isinstance(value, str) and value.strip().isdigit():
        # Environment overrides arrive as strings.
        return int(value.strip())
    if not isinstance(value, int):
        raise ConfigurationError(f"{field_name} must be an integer.")
    return value


def _require_positive_int(value: Any, field_name: str) -> int:
    number = _require_int(value, field_name)
    if number <= 0:
        raise ConfigurationError(f"{field_name} must be greater than zero.")
    return number


def _require_non_negative_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ConfigurationError(f"{field_name} must be a number.")
    if value < 0:
        raise ConfigurationError(f"{field_name} must not be negative.")
    return float(value)


def _require_positive_number(value: Any, field_name: str) -> float:
    number = _require_non_negative_number(value, field_name)
    if number == 0:
        raise ConfigurationError(f"{field_name} must be greater than zero.")
    return number
