"""Reading pullfetch settings from YAML and merging them with call-time input.

A settings file is optional. ``load_config`` finds it (``--config``, then
``$PULLFETCH_CONFIG``, ``./pullfetch.yaml`` and the XDG config directory),
substitutes ``${VAR}`` references and validates it. ``fetch_parameters_for``
and ``provider_for`` layer command line values over the file's defaults.
"""

from __future__ import annotations

import os
import re
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from pullfetch.config.schema import Config, FetchParameters, ProviderConfig, ProviderType
from pullfetch.paths import get_default_config_path
from pullfetch.scm.auth import AuthenticationError, get_token_from_env

CONFIG_ENV_VAR = "PULLFETCH_CONFIG"
LOCAL_CONFIG_NAME = "pullfetch.yaml"
TOKEN_ENV_VAR = "GITHUB_TOKEN"

_ENV_REFERENCE = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")


class ConfigError(Exception):
    """A settings file could not be used."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)


class ConfigNotFoundError(ConfigError):
    """None of the searched locations holds a settings file."""

    def __init__(self, searched: list[Path]) -> None:
        self.searched = searched
        listing = "".join(f"\n  - {p}" for p in searched)
        super().__init__(f"No config file found. Searched locations:{listing}")


class ConfigValidationError(ConfigError):
    """The settings file does not fit the schema."""

    def __init__(self, error: ValidationError, path: Path | None = None) -> None:
        self.validation_errors = [dict(item) for item in error.errors()]
        problems = "\n".join(
            f"  - {'.'.join(str(part) for part in item['loc'])}: {item['msg']}"
            for item in self.validation_errors
        )
        super().__init__(
            f"Config validation failed ({len(self.validation_errors)} error(s)):\n{problems}",
            path,
        )


class EnvironmentVariableError(ConfigError):
    """A ``${VAR}`` reference names an unset environment variable."""

    def __init__(self, var_name: str, path: Path | None = None) -> None:
        self.var_name = var_name
        super().__init__(f"Environment variable '{var_name}' is not set", path)


def expand_env_vars(value: Any) -> Any:
    """Substitute ``${VAR}`` references in every string of a YAML tree.

    Raises:
        EnvironmentVariableError: If a referenced variable is unset.
    """

    def lookup(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in os.environ:
            raise EnvironmentVariableError(name)
        return os.environ[name]

    if isinstance(value, str):
        return _ENV_REFERENCE.sub(lookup, value)
    if isinstance(value, Mapping):
        return {key: expand_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    return value


def config_search_paths(explicit_path: str | Path | None = None) -> list[Path]:
    """Locations checked for a settings file, in priority order.

    An explicit path is the only candidate when given.
    """
    if explicit_path:
        return [Path(explicit_path).expanduser().resolve()]
    candidates = []
    if env_path := os.environ.get(CONFIG_ENV_VAR):
        candidates.append(Path(env_path).expanduser().resolve())
    candidates.append(Path.cwd() / LOCAL_CONFIG_NAME)
    candidates.append(get_default_config_path())
    return candidates


def discover_config_path(explicit_path: str | Path | None = None) -> Path:
    """Return the first existing settings file.

    Raises:
        ConfigNotFoundError: If no candidate exists.
    """
    candidates = config_search_paths(explicit_path)
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    raise ConfigNotFoundError(candidates)


def _read_mapping(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read config file: {e}", path) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}", path) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a YAML mapping", path)
    return data


def load_config(path: str | Path | None = None) -> Config:
    """Find, read, expand and validate the settings file.

    Raises:
        ConfigNotFoundError: If no settings file exists.
        ConfigError: If the file cannot be read or parsed.
        EnvironmentVariableError: If a ``${VAR}`` reference is unset.
        ConfigValidationError: If the content does not fit the schema.
    """
    config_path = discover_config_path(path)
    try:
        raw = expand_env_vars(_read_mapping(config_path))
        return Config.model_validate(raw)
    except EnvironmentVariableError as e:
        e.path = config_path
        raise
    except ValidationError as e:
        raise ConfigValidationError(e, config_path) from e


def load_config_or_default(path: str | Path | None = None) -> Config:
    """Like :func:`load_config`, but fall back to defaults when nothing is discovered.

    A missing explicit path is still an error.
    """
    try:
        return load_config(path)
    except ConfigNotFoundError:
        if path is not None:
            raise
        return Config(version=1)


def fetch_parameters_for(
    config: Config,
    repo_url: str,
    *,
    overrides: Mapping[str, Any] | None = None,
    log_consumer: Callable[[str], None] | None = None,
) -> FetchParameters:
    """Fetch parameters for one repository: file defaults, then non-None overrides.

    Raises:
        pydantic.ValidationError: If the merged values are invalid.
    """
    data = config.fetch.model_dump()
    data.update({k: v for k, v in (overrides or {}).items() if v is not None})
    data["repo_url"] = repo_url
    data["log_consumer"] = log_consumer
    return FetchParameters.model_validate(data)


def provider_for(config: Config, provider_type: ProviderType | None = None) -> ProviderConfig:
    """Provider settings with an optional type override.

    Without configured credentials, ``$GITHUB_TOKEN`` is used when set.
    """
    provider = config.provider
    if provider_type is not None:
        provider = provider.model_copy(update={"type": provider_type})
    if provider.token or provider.username:
        return provider
    try:
        token = get_token_from_env(TOKEN_ENV_VAR)
    except AuthenticationError:
        return provider
    return provider.model_copy(update={"token": token})
