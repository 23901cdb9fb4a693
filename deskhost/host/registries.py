"""Registries that plugin contributions are applied to: views, widgets, addons and friends."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

from loguru import logger

from deskhost.plugins.core.types import Project


class ViewRegistry:
    def __init__(self, bus: Any = None):
        self.bus = bus
        self._views: dict[str, dict[str, Any]] = {}
        self._current_id: str | None = None

    async def add(self, view: dict[str, Any], project: Project) -> None:
        entry = dict(view)
        entry["projectId"] = project.id
        self._views[str(view["id"])] = entry
        if self.bus is not None:
            self.bus.publish("view.added", entry)

    def remove(self, view_id: str) -> None:
        removed = self._views.pop(view_id, None)
        if removed is not None and self.bus is not None:
            self.bus.publish("view.removed", {"id": view_id})

    def list(self) -> list[dict[str, Any]]:
        return list(self._views.values())

    def get_current(self) -> dict[str, Any] | None:
        return self._views.get(self._current_id) if self._current_id else None

    def open(self, view_id: str) -> None:
        self._current_id = view_id
        if self.bus is not None:
            self.bus.publish("view.opened", {"id": view_id})


class WidgetRegistry:
    def __init__(self, bus: Any = None):
        self.bus = bus
        self._definitions: dict[str, dict[str, Any]] = {}
        self.loaded_for: str | None = None

    async def register_definition(self, definition: dict[str, Any], project: Project) -> None:
        self._definitions[str(definition["id"])] = {**definition, "projectId": project.id}

    def definitions(self) -> list[dict[str, Any]]:
        return list(self._definitions.values())

    def reset(self) -> None:
        self._definitions.clear()
        self.loaded_for = None

    def load(self) -> None:
        project_ids = {d.get("projectId") for d in self._definitions.values()}
        self.loaded_for = next(iter(project_ids), None) if len(project_ids) == 1 else None
        logger.debug("Widgets loaded: {} definitions", len(self._definitions))
        if self.bus is not None:
            self.bus.publish("widgets.loaded", {"count": len(self._definitions)})


class ClientAddonRegistry:
    def __init__(self):
        self._addons: list[dict[str, Any]] = []

    def add(self, addon: dict[str, Any]) -> None:
        self._addons.append(addon)

    def list(self) -> list[dict[str, Any]]:
        return list(self._addons)

    def clear(self) -> None:
        self._addons.clear()


class SuggestionRegistry:
    def __init__(self):
        self._suggestions: dict[str, dict[str, Any]] = {}

    def add(self, suggestion: dict[str, Any]) -> None:
        key = str(suggestion.get("id") or len(self._suggestions))
        self._suggestions[key] = suggestion

    def list(self) -> list[dict[str, Any]]:
        return list(self._suggestions.values())

    def clear(self) -> None:
        self._suggestions.clear()


class SharedDataStore:
    """Project-scoped key/value data with change watchers."""

    def __init__(self):
        self._data: dict[tuple[str, str], Any] = {}
        self._watchers: dict[str, list[tuple[str, Callable[[Any], Any]]]] = {}

    def get(self, project_id: str, key: str) -> Any:
        return self._data.get((project_id, key))

    def set(self, project_id: str, key: str, value: Any) -> None:
        self._data[(project_id, key)] = value
        for watched_key, handler in list(self._watchers.get(project_id, [])):
            if watched_key == key:
                handler(value)

    def watch(self, project_id: str, key: str, handler: Callable[[Any], Any]) -> None:
        self._watchers.setdefault(project_id, []).append((key, handler))

    def un_watch_all(self, project_id: str) -> None:
        self._watchers.pop(project_id, None)


class IpcRegistry:
    def __init__(self):
        self._handlers: list[Callable[..., Any]] = []

    def on(self, handler: Callable[..., Any]) -> None:
        self._handlers.append(handler)

    def off(self, handler: Callable[..., Any]) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def send(self, payload: Any) -> None:
        for handler in list(self._handlers):
            handler(payload)

    def __len__(self) -> int:
        return len(self._handlers)


class LocaleRegistry:
    """Merges `locales/<lang>.json` bundles shipped next to plugin packages."""

    def __init__(self):
        self.messages: dict[str, dict[str, Any]] = {}

    def load_folder(self, folder: str) -> None:
        locales_dir = Path(folder) / "locales"
        if not locales_dir.is_dir():
            return
        for path in sorted(locales_dir.glob("*.json")):
            data = json.loads(path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                _deep_merge(self.messages.setdefault(path.stem, {}), data)
        logger.debug("Locales loaded from {}", locales_dir)


def _deep_merge(target: dict[str, Any], source: dict[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = value
