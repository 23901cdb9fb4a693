"""Core plugin types and collaborator contracts."""

from .contracts import PluginHost
from .types import (
    ActionResult,
    InstallationState,
    InstallStep,
    PackageEntry,
    Plugin,
    PluginKind,
    Project,
    VersionInfo,
)

__all__ = [
    "ActionResult",
    "InstallationState",
    "InstallStep",
    "PackageEntry",
    "Plugin",
    "PluginHost",
    "PluginKind",
    "Project",
    "VersionInfo",
]
