"""Process-wide config access, loaded once per config file."""

from __future__ import annotations

import threading
from pathlib import Path

from deskhost.config.loader import get_config_path, load_config
from deskhost.config.schema import Config


class _ConfigCache:
    def __init__(self):
        self._guard = threading.RLock()
        self._by_path: dict[Path, Config] = {}

    def fetch(self, path: Path, reload: bool = False) -> Config:
        with self._guard:
            config = None if reload else self._by_path.get(path)
            if config is None:
                config = load_config(path)
                self._by_path[path] = config
            return config

    def drop(self, path: Path | None = None) -> None:
        with self._guard:
            if path is None:
                self._by_path.clear()
            else:
                self._by_path.pop(path, None)


_config_cache = _ConfigCache()


def _normalize(config_path: Path | None) -> Path:
    return Path(config_path or get_config_path()).expanduser().resolve()


def get_config(*, config_path: Path | None = None, force_reload: bool = False) -> Config:
    """Config for `config_path` (default ~/.deskhost/config.json); `force_reload` re-reads the file."""
    return _config_cache.fetch(_normalize(config_path), reload=force_reload)


def clear_config_cache(*, config_path: Path | None = None) -> None:
    """Forget one cached config, or all of them when no path is given."""
    _config_cache.drop(_normalize(config_path) if config_path is not None else None)
