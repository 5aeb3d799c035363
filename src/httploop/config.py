"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for httploop:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.httploop/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **User config** -- A single :class:`~httploop.models.ClientConfig` JSON
  file with the user's client defaults.
* **Project config** -- An optional ``./httploop.json`` holding a partial
  set of the same keys.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project-local config, and user config into the
  effective :class:`~httploop.models.ClientConfig`.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import ValidationError

from httploop.exceptions import ConfigError
from httploop.models import ClientConfig

_APP_NAME = "httploop"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "httploop.json"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/httploop/`` (default ``~/.config/httploop/``).
    On macOS/Windows: ``~/.httploop/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/httploop/`` (default ``~/.local/share/httploop/``).
    On macOS/Windows: ``~/.httploop/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- User config ---


def _user_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def _read_json(path: Path, label: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid {label} at {path}: {exc}") from exc


def load_config() -> ClientConfig:
    """Load the user configuration from the config directory.

    Returns:
        The deserialised :class:`~httploop.models.ClientConfig`, or a default
        instance if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _user_config_path()
    if not path.is_file():
        return ClientConfig()
    data = _read_json(path, "config")
    try:
        return ClientConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_config(config: ClientConfig) -> Path:
    """Persist *config* atomically and return the path written."""
    path = _user_config_path()
    _atomic_write(path, json.dumps(config.model_dump(mode="json"), indent=2) + "\n")
    return path


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local overrides from ``./httploop.json``.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    data = _read_json(path, "project config")
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Environment ---


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _parse_timeout(value: str) -> Optional[float]:
    if value.strip().lower() in ("", "none"):
        return None
    return float(value)


_ENV_VARS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "HTTPLOOP_MAX_REDIRECTS": ("max_redirects", int),
    "HTTPLOOP_MAX_MEMORY_SIZE": ("max_memory_size", int),
    "HTTPLOOP_THROW_EXCEPTIONS": ("throw_exceptions", _parse_bool),
    "HTTPLOOP_TIMEOUT": ("timeout", _parse_timeout),
    "HTTPLOOP_USER_AGENT": ("user_agent", str),
    "HTTPLOOP_VERIFY_SSL": ("verify_ssl", _parse_bool),
}


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for var, (key, convert) in _ENV_VARS.items():
        raw = os.environ.get(var)
        if raw is None or raw == "":
            continue
        try:
            overrides[key] = convert(raw)
        except ValueError as exc:
            raise ConfigError(f"Invalid value for {var}: {exc}") from exc
    return overrides


# --- Precedence resolution ---


def resolve_config(overrides: Optional[dict[str, Any]] = None) -> ClientConfig:
    """Resolve the effective client configuration.

    Precedence (high to low):
        1. CLI flags (*overrides*; ``None`` values are ignored)
        2. Environment variables (``HTTPLOOP_MAX_REDIRECTS``,
           ``HTTPLOOP_TIMEOUT``, ...)
        3. Project config (``./httploop.json``)
        4. User config (``~/.config/httploop/config.json``)
        5. Defaults

    Raises:
        ConfigError: If any layer is invalid.
    """
    # 5 + 4. Defaults filled in by the model
    data = load_config().model_dump()

    # 3. Project-local config
    project = load_project_config()
    if project:
        data.update(project)

    # 2. Environment variables
    data.update(_env_overrides())

    # 1. CLI flags
    if overrides:
        data.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return ClientConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
