"""Process-local cache in front of ``~/.vbookbridge/config.json``.

Every command reads its settings through ``get_config``; ``config set``/``unset`` drop the
entry after writing the file so the next read sees the change.
"""

from __future__ import annotations

import threading
from pathlib import Path

from vbookbridge.config.loader import get_config_path, load_config
from vbookbridge.config.schema import Config

_lock = threading.RLock()
_cache: dict[str, Config] = {}


def _cache_key(config_path: Path | None = None) -> str:
    return str(Path(config_path or get_config_path()).expanduser().resolve())


def get_config(*, config_path: Path | None = None, force_reload: bool = False) -> Config:
    """Return the cached Config for ``config_path`` (default file), loading it on first use.

    Raises ValueError when the file exists but cannot be parsed or validated.
    """
    key = _cache_key(config_path)
    with _lock:
        if force_reload or key not in _cache:
            _cache[key] = load_config(Path(key))
        return _cache[key]


def clear_config_cache(*, config_path: Path | None = None) -> None:
    """Forget one file's cached Config, or every entry when no path is given."""
    with _lock:
        if config_path is None:
            _cache.clear()
            return
        _cache.pop(_cache_key(config_path), None)
