"""Read and write ~/.deskhost/config.json (camelCase on disk, snake_case in the model)."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Callable

from loguru import logger

from deskhost.config.schema import Config

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def get_config_path() -> Path:
    return get_data_dir(create=False) / "config.json"


def get_data_dir(create: bool = True) -> Path:
    """~/.deskhost, holding config, logs and caches."""
    path = Path.home() / ".deskhost"
    if create:
        path.mkdir(parents=True, exist_ok=True)
    return path


def load_config(config_path: Path | None = None) -> Config:
    """
    Load the config file, falling back to defaults (plus DESKHOST_ env overrides) when absent.

    Raises:
        ValueError: the file exists but is not valid JSON or does not fit the schema.
    """
    path = config_path or get_config_path()
    if not path.exists():
        return Config()
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        return Config.model_validate(convert_keys(_migrate_config(raw)))
    except ValueError as e:
        raise ValueError(f"Failed to load config from {path}: {e}. Fix or delete the file.") from e


def save_config(config: Config, config_path: Path | None = None) -> None:
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(convert_to_camel(config.model_dump()), indent=2) + "\n", encoding="utf-8")
    logger.debug("Config saved to {}", path)
    # access imports this module
    from deskhost.config.access import clear_config_cache

    clear_config_cache(config_path=path)


def _migrate_config(data: dict[str, Any]) -> dict[str, Any]:
    """Rewrite keys written by older releases."""
    plugins = data.get("plugins")
    if not isinstance(plugins, dict):
        return data
    if "mockInstall" in plugins:
        legacy = bool(plugins.pop("mockInstall"))
        plugins.setdefault("debug", legacy)
    invoke = plugins.get("invokeCommand")
    if isinstance(invoke, str):
        plugins["invokeCommand"] = invoke.split()
    return data


def _rename_keys(data: Any, rename: Callable[[str], str]) -> Any:
    if isinstance(data, dict):
        return {rename(key): _rename_keys(value, rename) for key, value in data.items()}
    if isinstance(data, list):
        return [_rename_keys(item, rename) for item in data]
    return data


def convert_keys(data: Any) -> Any:
    """camelCase keys -> snake_case, recursively."""
    return _rename_keys(data, camel_to_snake)


def convert_to_camel(data: Any) -> Any:
    """snake_case keys -> camelCase, recursively."""
    return _rename_keys(data, snake_to_camel)


def camel_to_snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)
