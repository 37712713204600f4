"""Configuration folder, prompt cache, and atomic writes.

This module handles everything oauth2cli persists:

* **Directory layout** -- the config folder is ``~/.config/oauth2/`` (or
  under ``$XDG_CONFIG_HOME``) on every platform and can be overridden with
  ``--config`` or ``$OAUTH2_CONFIG``. Crash logs follow XDG on Linux/BSD and
  live in ``~/.oauth2/logs/`` on macOS and Windows. See
  :func:`get_config_dir` and :func:`get_data_dir`.
* **Prompt cache** -- ``authorize.json`` keeps the non-secret answers of
  the ``authorize`` prompts (:class:`~oauth2cli.models.AuthorizeCache`)
  so they become the defaults of the next run. Tokens and secrets are
  never written.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent a half-written cache on crash.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from oauth2cli.exceptions import ConfigError
from oauth2cli.models import AuthorizeCache

_APP_NAME = "oauth2"
_CONFIG_ENV_VAR = "OAUTH2_CONFIG"
AUTHORIZE_CACHE_FILENAME = "authorize.json"


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


def get_config_dir(override: Optional[str] = None) -> Path:
    """Return the configuration folder, creating it if necessary.

    Precedence (high to low):
        1. *override* (the ``--config`` flag)
        2. ``$OAUTH2_CONFIG``
        3. ``$XDG_CONFIG_HOME/oauth2/`` (default ``~/.config/oauth2/``) on
           every platform.

    ``~`` is expanded in the first two.

    Returns:
        Absolute path to the configuration folder (guaranteed to exist).

    Raises:
        ConfigError: If the folder cannot be created.
    """
    explicit = override or os.environ.get(_CONFIG_ENV_VAR, "")
    if explicit:
        path = Path(explicit).expanduser()
    else:
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigError(f"Cannot create config folder {path}: {exc}") from exc
    return path.resolve()


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/oauth2/`` (default ``~/.local/share/oauth2/``).
    On macOS/Windows: ``~/.oauth2/logs/``.
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
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Prompt cache ---


def authorize_cache_path(config_dir: Path) -> Path:
    """Path to the ``authorize`` prompt cache inside *config_dir*."""
    return config_dir / AUTHORIZE_CACHE_FILENAME


def load_authorize_cache(config_dir: Path) -> AuthorizeCache:
    """Load the prompt cache from *config_dir*.

    A missing file is a cache miss, not an error.

    Returns:
        The cached values, or an empty :class:`~oauth2cli.models.AuthorizeCache`.

    Raises:
        ConfigError: If the file exists but is not valid JSON or does not
            match the expected shape.
    """
    path = authorize_cache_path(config_dir)
    if not path.is_file():
        return AuthorizeCache()
    try:
        text = path.read_text(encoding="utf-8")
        return AuthorizeCache.model_validate(json.loads(text))
    except (OSError, json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"can't decode '{path}' cache: {exc}") from exc


def save_authorize_cache(config_dir: Path, cache: AuthorizeCache) -> None:
    """Persist the prompt cache atomically.

    Raises:
        ConfigError: If the file cannot be written.
    """
    path = authorize_cache_path(config_dir)
    data = cache.model_dump(mode="json")
    try:
        _atomic_write(path, json.dumps(data, indent=2) + "\n")
    except OSError as exc:
        raise ConfigError(f"can't write '{path}' cache: {exc}") from exc
