"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for specmatch:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.specmatch/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_cache_dir`.
* **Global config** -- A single :class:`~specmatch.models.GlobalConfig`
  JSON file storing defaults (check options, extractor and parser settings,
  cache, output format).
* **Project config** -- An optional ``./specmatch.json`` whose keys are
  deep-merged over the global config, so a repository can pin its own
  custom rules or API prefixes.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project-local config, and global config into the
  final effective configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from specmatch.exceptions import ConfigError
from specmatch.models import GlobalConfig

_APP_NAME = "specmatch"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "specmatch.json"

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

    On Linux/BSD: ``$XDG_CONFIG_HOME/specmatch/`` (default ``~/.config/specmatch/``).
    On macOS/Windows: ``~/.specmatch/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds the disk-backed spec cache. Cached data can be safely deleted at
    any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/specmatch/`` (default ``~/.cache/specmatch/``).
    On macOS/Windows: ``~/.specmatch/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems.  On any failure the
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
        fd = None  # prevent double-close in finally
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


# --- Global config ---


def global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def _read_json(path: Path, what: str) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Invalid {what} at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid {what} at {path}: expected a JSON object")
    return data


def _validate(data: dict[str, Any], origin: str) -> GlobalConfig:
    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration ({origin}): {exc}") from exc


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~specmatch.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = global_config_path()
    if not path.is_file():
        return GlobalConfig()
    return _validate(_read_json(path, "global config"), str(path))


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json", by_alias=True)
    _atomic_write(global_config_path(), json.dumps(data, indent=2) + "\n")


def set_config_value(key: str, value: str) -> GlobalConfig:
    """Set one dotted *key* (e.g. ``check.include_warnings``) in the global config.

    *value* is parsed as JSON when possible so ``true``, ``3``, and
    ``["a", "b"]`` keep their types; anything else is stored as a string.

    Returns:
        The saved configuration.

    Raises:
        ConfigError: If the key does not exist or the value fails validation.
    """
    data = load_global_config().model_dump(mode="json", by_alias=True)
    parts = key.split(".")
    node = data
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            raise ConfigError(f"Unknown config key '{key}'")
        node = child
    if parts[-1] not in node:
        raise ConfigError(f"Unknown config key '{key}'")

    try:
        node[parts[-1]] = json.loads(value)
    except json.JSONDecodeError:
        node[parts[-1]] = value

    config = _validate(data, f"{key}={value}")
    save_global_config(config)
    return config


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./specmatch.json``.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    return _read_json(path, "project config")


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# --- Environment ---


def _env_flag(name: str) -> Optional[bool]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid boolean for {name}: {raw!r}")


def _env_overrides() -> dict[str, Any]:
    """Collect ``SPECMATCH_*`` environment overrides as a partial config dict."""
    overrides: dict[str, Any] = {}

    rules = os.environ.get("SPECMATCH_RULES")
    if rules is not None:
        names = [r.strip() for r in rules.split(",") if r.strip()]
        overrides.setdefault("check", {})["custom_rules"] = names

    include_warnings = _env_flag("SPECMATCH_INCLUDE_WARNINGS")
    if include_warnings is not None:
        overrides.setdefault("check", {})["include_warnings"] = include_warnings

    strict = _env_flag("SPECMATCH_STRICT_METHODS")
    if strict is not None:
        overrides.setdefault("extractor", {})["strict_method_detection"] = strict

    no_cache = _env_flag("SPECMATCH_NO_CACHE")
    if no_cache is not None:
        overrides.setdefault("cache", {})["enabled"] = not no_cache

    return overrides


# --- Precedence resolution ---


def resolve_config(
    cli_format: Optional[str] = None,
    cli_overrides: Optional[dict[str, Any]] = None,
) -> GlobalConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_format`` and the partial ``cli_overrides`` dict)
        2. Environment variables (``SPECMATCH_RULES``,
           ``SPECMATCH_INCLUDE_WARNINGS``, ``SPECMATCH_STRICT_METHODS``,
           ``SPECMATCH_NO_CACHE``)
        3. Project config (``./specmatch.json``)
        4. User config (``~/.config/specmatch/config.json``)
        5. Defaults

    Raises:
        ConfigError: If any layer is invalid.
    """
    # 5 + 4. Global config fills in defaults automatically.
    data = load_global_config().model_dump(mode="json", by_alias=True)

    # 3. Project-local config
    project = load_project_config()
    if project is not None:
        data = _deep_merge(data, project)

    # 2. Environment
    data = _deep_merge(data, _env_overrides())

    # 1. CLI
    if cli_overrides:
        data = _deep_merge(data, cli_overrides)
    if cli_format is not None:
        data = _deep_merge(data, {"output": {"format": cli_format}})

    return _validate(data, "merged")
