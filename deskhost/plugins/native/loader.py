"""Filesystem module loader for plugin UI/API modules."""

from __future__ import annotations

import importlib
import importlib.util
import os
import sys
from pathlib import Path
from typing import Any

from loguru import logger

IMPORT_PREFIX = "py:"
ENTRY_NAMES = ("register", "plugin")


class FilesystemModuleLoader:
    """
    Resolve and execute plugin modules.

    Module paths take three forms:
    - `<package-id>/<sub>` resolved inside `<base_dir>/<modules_dir>/<package-id>/`
    - a relative or absolute file path, resolved against `base_dir`
    - `py:<dotted.name>` for modules importable from the host environment
    A path resolves to `<path>.py`, `<path>/__init__.py` or `<path>` itself.
    """

    def __init__(self, modules_dir: str = "node_modules"):
        self.modules_dir = modules_dir
        self._cache: dict[str, Any] = {}

    def resolve(self, module_path: str, base_dir: str) -> str | None:
        if module_path.startswith(IMPORT_PREFIX):
            name = module_path[len(IMPORT_PREFIX):]
            try:
                spec = importlib.util.find_spec(name)
            except (ImportError, ValueError):
                return None
            return module_path if spec is not None else None
        for candidate in self._candidates(module_path, base_dir):
            if candidate.is_file():
                return str(candidate.resolve())
        return None

    def load(self, module_path: str, base_dir: str, allow_missing: bool = False, force: bool = False) -> Any:
        """Load a module once per resolved path; `force` re-executes plugin files from disk."""
        resolved = self.resolve(module_path, base_dir)
        if resolved is None:
            if allow_missing:
                return None
            raise ModuleNotFoundError(f"cannot resolve module {module_path} from {base_dir}")
        cached = self._cache.get(resolved)
        if cached is not None and (not force or resolved.startswith(IMPORT_PREFIX)):
            return cached
        if resolved.startswith(IMPORT_PREFIX):
            # host modules are never hot reloaded
            module = importlib.import_module(resolved[len(IMPORT_PREFIX):])
        else:
            if cached is not None:
                sys.modules.pop(getattr(cached, "__name__", ""), None)
            module = self._exec_file(Path(resolved))
        self._cache[resolved] = module
        return module

    def invalidate_cache(self, module_path: str, base_dir: str) -> None:
        resolved = self.resolve(module_path, base_dir)
        if resolved is None:
            return
        module = self._cache.pop(resolved, None)
        if module is not None:
            sys.modules.pop(getattr(module, "__name__", ""), None)
            logger.debug("Module cache cleared for {}", module_path)

    def package_dir(self, package_id: str, base_dir: str) -> Path:
        return Path(base_dir) / self.modules_dir / Path(*package_id.split("/"))

    def _candidates(self, module_path: str, base_dir: str) -> list[Path]:
        if os.path.isabs(module_path) or module_path.startswith("."):
            root = Path(base_dir) / module_path
        else:
            root = Path(base_dir) / self.modules_dir / Path(*module_path.split("/"))
        return [
            root.with_name(root.name + ".py"),
            root / "__init__.py",
            root,
        ]

    def _exec_file(self, module_file: Path) -> Any:
        module_name = f"deskhost_plugin_{abs(hash(str(module_file)))}"
        is_package = module_file.name == "__init__.py"
        spec = importlib.util.spec_from_file_location(
            module_name,
            module_file,
            submodule_search_locations=[str(module_file.parent)] if is_package else None,
        )
        if spec is None or spec.loader is None:
            raise ImportError(f"failed to load spec for {module_file}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise
        return module


def module_entry(module: Any) -> Any:
    """Return the callable a plugin module exports, or the module itself when none is found."""
    for name in ENTRY_NAMES:
        target = getattr(module, name, None)
        if target is not None:
            return target
    return module
