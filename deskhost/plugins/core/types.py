"""Types shared by plugin discovery, runtime and lifecycle."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PluginKind(str, Enum):
    """Where a plugin entry came from."""

    DECLARED = "declared"  # listed in dependencies/devDependencies
    BUNDLE = "bundle"  # legacy build bundle pseudo-plugin
    BUNDLE_MEMBER = "bundle-member"  # synthetic entry for a bundled sub-plugin


@dataclass(slots=True, frozen=True)
class Plugin:
    """Immutable plugin snapshot produced by discovery. Identity is (id, base_dir)."""

    id: str
    version_range: str
    official: bool
    installed: bool
    website: str | None
    base_dir: str
    hidden: bool = False
    kind: PluginKind = PluginKind.DECLARED

    @property
    def key(self) -> tuple[str, str]:
        return (self.id, self.base_dir)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "versionRange": self.version_range,
            "official": self.official,
            "installed": self.installed,
            "website": self.website,
            "baseDir": self.base_dir,
            "hidden": self.hidden,
            "kind": self.kind.value,
        }


class InstallStep(str, Enum):
    INSTALL = "install"
    CONFIG = "config"
    DIFF = "diff"
    UNINSTALL = "uninstall"


@dataclass(slots=True)
class InstallationState:
    """Process-wide install state machine: idle -> install -> config -> diff -> idle."""

    plugin_id: str | None = None
    step: InstallStep | None = None

    @property
    def idle(self) -> bool:
        return self.step is None

    def begin(self, plugin_id: str, step: InstallStep) -> None:
        self.plugin_id = plugin_id
        self.step = step

    def clear(self) -> None:
        self.plugin_id = None
        self.step = None


@dataclass(slots=True)
class Project:
    """Project known to the project registry."""

    id: str
    name: str
    path: str
    type: str = "vue"

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "path": self.path, "type": self.type}


@dataclass(slots=True)
class VersionInfo:
    """Installed/wanted versions of a dependency."""

    current: str | None = None
    wanted: str | None = None
    local_path: str | None = None

    @property
    def outdated(self) -> bool:
        return self.current != self.wanted


@dataclass(slots=True)
class ActionResult:
    """Outcome of dispatching one action id; results and errors are position-aligned."""

    id: str
    params: Any
    results: list[Any] = field(default_factory=list)
    errors: list[BaseException | None] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "params": self.params,
            "results": list(self.results),
            "errors": [None if err is None else {"type": type(err).__name__, "message": str(err)} for err in self.errors],
        }


@dataclass(slots=True)
class PackageEntry:
    """Cached manifest for a workspace and the directory it was resolved from."""

    manifest: dict[str, Any]
    context_dir: str
