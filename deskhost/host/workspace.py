"""Current working workspace and manifest file access."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from loguru import logger

from deskhost.utils.exceptions import ManifestError


class WorkspaceCwd:
    """The workspace lifecycle operations act on."""

    def __init__(self, path: str | None = None):
        self._path = os.path.abspath(os.path.expanduser(path or os.getcwd()))

    def get(self) -> str:
        return self._path

    def set(self, path: str) -> None:
        resolved = os.path.abspath(os.path.expanduser(path))
        if resolved != self._path:
            logger.debug("Workspace changed to {}", resolved)
        self._path = resolved


class JsonManifestStore:
    """Reads and writes `<directory>/<filename>` JSON manifests."""

    def __init__(self, filename: str = "package.json"):
        self.filename = filename

    def manifest_path(self, directory: str) -> Path:
        return Path(directory) / self.filename

    def read_manifest(self, directory: str) -> dict[str, Any]:
        path = self.manifest_path(directory)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ManifestError(str(path), "file not found") from e
        except (OSError, json.JSONDecodeError) as e:
            raise ManifestError(str(path), str(e)) from e
        if not isinstance(data, dict):
            raise ManifestError(str(path), "manifest must be a JSON object")
        return data

    def write_manifest(self, directory: str, data: dict[str, Any]) -> None:
        path = self.manifest_path(directory)
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
