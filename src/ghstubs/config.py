"""Configuration management with XDG paths, atomic writes, and precedence resolution.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.ghstubs/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Settings file** -- a single :class:`~ghstubs.models.ClientSettings`
  JSON file, read by :func:`load_settings` and written atomically by
  :func:`save_settings`.
* **Precedence resolution** -- :func:`resolve_settings` merges CLI flags,
  environment variables and the settings file into the effective
  settings handed to :func:`~ghstubs.factory.init_client`.
* **Credential resolution** -- :func:`resolve_credential` reads the
  ambient auth token from an env var, a file, or an interactive prompt.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ghstubs.exceptions import ConfigError
from ghstubs.models import ClientSettings

_APP_NAME = "ghstubs"
_CONFIG_FILENAME = "config.json"

_TRUE_VALUES = {"1", "true", "yes", "on"}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
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

    On Linux/BSD: ``$XDG_CONFIG_HOME/ghstubs/`` (default ``~/.config/ghstubs/``).
    On macOS/Windows: ``~/.ghstubs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds the HTTP response cache; its content can be deleted at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/ghstubs/`` (default ``~/.cache/ghstubs/``).
    On macOS/Windows: ``~/.ghstubs/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary."""
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_http_cache_dir(settings: ClientSettings) -> Path:
    """Return the directory backing the disk response cache for *settings*."""
    if settings.cache.directory:
        return Path(settings.cache.directory).expanduser()
    return get_cache_dir() / "http"


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file lives in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems.
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


# --- Settings file ---


def _settings_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_settings() -> ClientSettings:
    """Load the settings file from the config directory.

    Returns:
        The deserialised :class:`~ghstubs.models.ClientSettings`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    path = _settings_path()
    if not path.is_file():
        return ClientSettings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return ClientSettings.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ConfigError(f"Invalid settings at {path}: {exc}") from exc


def save_settings(settings: ClientSettings) -> None:
    """Persist *settings* atomically to the config directory."""
    data = settings.model_dump(mode="json")
    _atomic_write(_settings_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_settings(
    cli_base_url: Optional[str] = None,
    cli_debug: Optional[bool] = None,
) -> ClientSettings:
    """Resolve the effective client settings.

    Precedence (high to low):
        1. CLI flags (``cli_base_url``, ``cli_debug``)
        2. Environment variables (``GHSTUBS_BASE_URL``, ``GHSTUBS_DEBUG``,
           ``GHSTUBS_CACHE_DIR``, ``GHSTUBS_TOKEN_SOURCE``)
        3. Settings file (``~/.config/ghstubs/config.json``)
        4. Defaults

    Returns:
        A new :class:`~ghstubs.models.ClientSettings`; the loaded file
        model is never mutated.
    """
    settings = load_settings()
    updates: dict[str, object] = {}
    cache_updates: dict[str, object] = {}

    env_base_url = os.environ.get("GHSTUBS_BASE_URL")
    if env_base_url:
        updates["base_url"] = env_base_url
    env_debug = os.environ.get("GHSTUBS_DEBUG")
    if env_debug:
        updates["debug"] = env_debug.strip().lower() in _TRUE_VALUES
    env_cache_dir = os.environ.get("GHSTUBS_CACHE_DIR")
    if env_cache_dir:
        cache_updates["directory"] = env_cache_dir
    env_token_source = os.environ.get("GHSTUBS_TOKEN_SOURCE")
    if env_token_source:
        updates["token_source"] = env_token_source

    if cli_base_url is not None:
        updates["base_url"] = cli_base_url
    if cli_debug is not None:
        updates["debug"] = cli_debug

    if cache_updates:
        updates["cache"] = settings.cache.model_copy(update=cache_updates)
    return settings.model_copy(update=updates)


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts interactively (requires a TTY)

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("GitHub token: ")

    raise ConfigError(f"Unknown credential source format: {source}")
