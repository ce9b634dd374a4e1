"""Configuration domain exports."""

from .config_scaffold_builder import (
    DEFAULT_CONFIG_FILENAME,
    build_placeholder_configuration,
    write_placeholder_configuration,
)
from .loader import ConfigurationError, load_configuration, read_boolean_flags
from .runtime_settings import (
    BasicCredentials,
    Configuration,
    OAuthCredentials,
    PollingPolicy,
    ProxySettings,
    RetryPolicy,
    ServerConfiguration,
    TestRunOptions,
)

__all__ = [
    "BasicCredentials",
    "Configuration",
    "OAuthCredentials",
    "PollingPolicy",
    "ProxySettings",
    "RetryPolicy",
    "ServerConfiguration",
    "TestRunOptions",
    "ConfigurationError",
    "load_configuration",
    "read_boolean_flags",
    "DEFAULT_CONFIG_FILENAME",
    "build_placeholder_configuration",
    "write_placeholder_configuration",
]
