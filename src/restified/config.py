"""Configuration loading and precedence resolution.

restified keeps no persistent state of its own, so configuration is small:
the :class:`~restified.models.CacheConfig` and
:class:`~restified.models.BuiltinsConfig` sections of a
:class:`~restified.models.RestifiedConfig`.

Precedence (high to low), applied by :func:`resolve_config`:

1. Explicit overrides passed by the caller (CLI flags, test fixtures).
2. Environment variables -- see :data:`ENV_VARIABLES`.
3. Project config -- ``./restified.json``, or the file named by the
   ``config_path`` argument or the ``RESTIFIED_CONFIG`` variable.
4. Model defaults.

Every layer is a partial nested dict; layers are deep-merged and the result
is validated once, so a project file that only sets ``cache.max_size`` keeps
every other default.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import ValidationError

from restified.exceptions import ConfigError
from restified.models import RestifiedConfig

_PROJECT_CONFIG_FILENAME = "restified.json"
CONFIG_PATH_ENV = "RESTIFIED_CONFIG"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})
_NONE_VALUES = frozenset({"", "none", "null"})


# --- Environment parsing ---


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer (got {raw!r})") from exc


def _parse_optional_int(name: str, raw: str) -> Optional[int]:
    if raw.strip().lower() in _NONE_VALUES:
        return None
    return _parse_int(name, raw)


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean such as 'true' or 'false' (got {raw!r})")


def _parse_str(_name: str, raw: str) -> str:
    return raw.strip()


#: Environment variable -> (section, field, parser).
ENV_VARIABLES: dict[str, tuple[str, str, Callable[[str, str], Any]]] = {
    "RESTIFIED_CACHE_MAX_SIZE": ("cache", "max_size", _parse_int),
    "RESTIFIED_CACHE_DEFAULT_TTL_MS": ("cache", "default_ttl_ms", _parse_optional_int),
    "RESTIFIED_CACHE_ENABLE_CLEANUP": ("cache", "enable_cleanup", _parse_bool),
    "RESTIFIED_CACHE_CLEANUP_INTERVAL_MS": ("cache", "cleanup_interval_ms", _parse_int),
    "RESTIFIED_FAKER_LOCALE": ("builtins", "faker_locale", _parse_str),
    "RESTIFIED_FAKER_SEED": ("builtins", "faker_seed", _parse_int),
}


def load_env_config(environ: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    """Collect configuration values from ``RESTIFIED_*`` environment variables.

    Args:
        environ: Mapping to read instead of :data:`os.environ`.

    Returns:
        A partial nested dict containing only the variables that are set.

    Raises:
        ConfigError: If a variable cannot be parsed into its field's type.
    """
    env = os.environ if environ is None else environ
    data: dict[str, Any] = {}
    for name, (section, field, parse) in ENV_VARIABLES.items():
        raw = env.get(name)
        if raw is None:
            continue
        data.setdefault(section, {})[field] = parse(name, raw)
    return data


# --- Project config ---


def _project_config_path(config_path: Union[str, Path, None]) -> tuple[Path, bool]:
    """Return ``(path, explicit)`` for the project config file."""
    if config_path is not None:
        return Path(config_path), True
    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path), True
    return Path.cwd() / _PROJECT_CONFIG_FILENAME, False


def load_project_config(config_path: Union[str, Path, None] = None) -> Optional[dict[str, Any]]:
    """Load project-local configuration.

    Without *config_path* the ``RESTIFIED_CONFIG`` variable is consulted,
    then ``./restified.json``. A missing default file is not an error; a
    missing file that was named explicitly is.

    Returns:
        The parsed JSON object, or ``None`` if there is no project config.

    Raises:
        ConfigError: If an explicitly named file does not exist, or the file
            is not valid JSON, or its top level is not an object.
    """
    path, explicit = _project_config_path(config_path)
    if not path.is_file():
        if explicit:
            raise ConfigError(f"Config file not found: {path}")
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: top level must be an object")
    return data


# --- Precedence resolution ---


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def resolve_config(
    config_path: Union[str, Path, None] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> RestifiedConfig:
    """Resolve the effective configuration.

    Args:
        config_path: Project config file to use instead of the default
            lookup.
        overrides: Highest-precedence partial config, e.g.
            ``{"cache": {"max_size": 10}}``.
        environ: Environment mapping (defaults to :data:`os.environ`).

    Returns:
        The validated :class:`~restified.models.RestifiedConfig`.

    Raises:
        ConfigError: If any layer is malformed or the merged result fails
            validation.
    """
    data: dict[str, Any] = {}

    # 3. Project config
    project = load_project_config(config_path)
    if project is not None:
        data = _deep_merge(data, project)

    # 2. Environment variables
    data = _deep_merge(data, load_env_config(environ))

    # 1. Explicit overrides
    if overrides:
        data = _deep_merge(data, overrides)

    try:
        return RestifiedConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
