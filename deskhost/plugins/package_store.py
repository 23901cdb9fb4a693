"""Per-workspace cache of the resolved manifest."""

from __future__ import annotations

import os
from typing import Any

from loguru import logger

from deskhost.plugins.core.contracts import ManifestStore
from deskhost.plugins.core.types import PackageEntry

CUSTOM_FIELD = "deskPlugins"
BUNDLE_FIELD = "deskBundle"


class PackageStore:
    """Workspace path -> PackageEntry. Written by discovery, read by the API reset."""

    def __init__(self, manifests: ManifestStore):
        self._manifests = manifests
        self._entries: dict[str, PackageEntry] = {}

    def resolve(self, workspace: str) -> PackageEntry:
        """Read the workspace manifest, following a custom `resolveFrom` root, and cache it."""
        manifest = self._manifests.read_manifest(workspace)
        context_dir = workspace
        resolve_from = _custom_section(manifest).get("resolveFrom")
        if isinstance(resolve_from, str) and resolve_from.strip():
            context_dir = os.path.normpath(os.path.join(workspace, resolve_from.strip()))
            logger.debug("Manifest for {} resolved from {}", workspace, context_dir)
            manifest = self._manifests.read_manifest(context_dir)
        entry = PackageEntry(manifest=manifest, context_dir=context_dir)
        self._entries[workspace] = entry
        return entry

    def get(self, workspace: str) -> PackageEntry | None:
        return self._entries.get(workspace)

    def invalidate(self, workspace: str) -> None:
        self._entries.pop(workspace, None)

    def local_ui_files(self, workspace: str) -> list[str]:
        """Workspace-local UI module paths declared under deskPlugins.ui."""
        entry = self._entries.get(workspace)
        if entry is None:
            return []
        files = _custom_section(entry.manifest).get("ui")
        if not isinstance(files, list):
            return []
        return [str(f) for f in files if isinstance(f, str) and f.strip()]


def _custom_section(manifest: dict[str, Any]) -> dict[str, Any]:
    section = manifest.get(CUSTOM_FIELD)
    return section if isinstance(section, dict) else {}


def bundle_section(manifest: dict[str, Any]) -> dict[str, Any] | None:
    section = manifest.get(BUNDLE_FIELD)
    return section if isinstance(section, dict) else None
