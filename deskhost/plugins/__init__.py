"""Plugin discovery, runtime and lifecycle."""

from .api import WorkspaceExtensionContext
from .core.contracts import PluginHost
from .core.types import ActionResult, InstallationState, InstallStep, Plugin, PluginKind, Project
from .manager import PluginManager, get_plugin_manager, reset_plugin_manager

__all__ = [
    "ActionResult",
    "InstallationState",
    "InstallStep",
    "Plugin",
    "PluginHost",
    "PluginKind",
    "PluginManager",
    "Project",
    "WorkspaceExtensionContext",
    "get_plugin_manager",
    "reset_plugin_manager",
]
