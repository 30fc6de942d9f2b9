"""Configuration module for pullfetch.

Settings come from an optional YAML file whose values act as defaults for
command line input.

Usage:
    from pullfetch.config import load_config_or_default, fetch_parameters_for

    config = load_config_or_default()
    parameters = fetch_parameters_for(config, "https://github.com/o/r")
"""

from pullfetch.config.loader import (
    ConfigError,
    ConfigNotFoundError,
    ConfigValidationError,
    EnvironmentVariableError,
    config_search_paths,
    discover_config_path,
    fetch_parameters_for,
    load_config,
    load_config_or_default,
    provider_for,
)
from pullfetch.config.schema import (
    Config,
    FetchParameters,
    ProviderConfig,
    ProviderType,
)

__all__ = [
    "Config",
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigValidationError",
    "EnvironmentVariableError",
    "FetchParameters",
    "ProviderConfig",
    "ProviderType",
    "config_search_paths",
    "discover_config_path",
    "fetch_parameters_for",
    "load_config",
    "load_config_or_default",
    "provider_for",
]
