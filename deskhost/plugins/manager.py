"""Workspace manager owning plugin store, runtime instances and install state."""

from __future__ import annotations

import asyncio
import os
import threading
from collections import OrderedDict
from typing import TYPE_CHECKING, Any

from loguru import logger

from deskhost.config.schema import PluginsConfig
from deskhost.plugins.api import WorkspaceExtensionContext
from deskhost.plugins.core.contracts import PluginHost, ProjectRegistry, ProjectRegistryProvider
from deskhost.plugins.core.types import ActionResult, InstallationState, Plugin, PluginKind
from deskhost.plugins.discovery import PluginDiscovery
from deskhost.plugins.lifecycle import PluginLifecycle
from deskhost.plugins.naming import BUNDLE_LOGO, logo_url
from deskhost.plugins.package_store import PackageStore
from deskhost.plugins.progress import ProgressChannel
from deskhost.plugins.runtime import PluginRuntime

if TYPE_CHECKING:
    from deskhost.commands.registry import CommandRegistry

_singleton_lock = threading.Lock()
_singleton: "PluginManager | None" = None

INSTALLATION_ID = "plugin-install"


class PluginManager:
    """
    One instance per process. Holds every piece of mutable plugin state:

    - `plugins`: workspace -> discovered plugin list (hidden entries included)
    - `packages`: workspace -> resolved manifest
    - `instances`: workspace -> live extension context
    - `reset_locks`: workspace -> lock serializing API resets
    - `installation`: the install state machine
    - `progress`: progress entries and per-workspace operation lanes

    The project registry is bound after construction because it depends back
    on this manager.
    """

    def __init__(
        self,
        host: PluginHost,
        *,
        config: PluginsConfig | None = None,
        commands: CommandRegistry | None = None,
        projects: ProjectRegistryProvider | None = None,
    ):
        self.host = host
        self.config = config or PluginsConfig()
        self.commands = commands
        self.plugins: dict[str, list[Plugin]] = {}
        self.packages = PackageStore(host.manifests)
        self.instances: dict[str, WorkspaceExtensionContext] = {}
        self.reset_locks: dict[str, asyncio.Lock] = {}
        self.installation = InstallationState()
        self.progress = ProgressChannel(host.bus)
        self.discovery = PluginDiscovery(self)
        self.runtime = PluginRuntime(self)
        self.lifecycle = PluginLifecycle(self)
        self._projects_provider = projects
        self._logo_cache: OrderedDict[str, str] = OrderedDict()

    def bind_projects(self, provider: ProjectRegistryProvider) -> None:
        self._projects_provider = provider

    @property
    def projects(self) -> ProjectRegistry:
        if self._projects_provider is None:
            raise RuntimeError("project registry is not bound to the plugin manager")
        return self._projects_provider()

    def modules_root(self, workspace: str) -> str:
        """Directory whose dependency tree holds the workspace's plugins."""
        entry = self.packages.get(workspace)
        return entry.context_dir if entry is not None else workspace

    def current_workspace(self, workspace: str | None = None) -> str:
        return os.path.abspath(workspace) if workspace else self.host.cwd.get()

    # Discovery

    async def list(
        self,
        workspace: str | None = None,
        *,
        reset_api: bool = True,
        light: bool = False,
        auto_load: bool = True,
    ) -> list[Plugin]:
        return await self.discovery.list(
            self.current_workspace(workspace),
            reset_api=reset_api,
            light=light,
            auto_load=auto_load,
        )

    def find_one(self, plugin_id: str, workspace: str | None = None) -> Plugin | None:
        return self.discovery.find_one(plugin_id, self.current_workspace(workspace))

    # Runtime

    def get_api(self, workspace: str | None = None) -> WorkspaceExtensionContext | None:
        return self.runtime.get_api(self.current_workspace(workspace))

    async def reset_api(self, workspace: str | None = None, *, light: bool = False) -> bool:
        return await self.runtime.reset(self.current_workspace(workspace), light=light)

    async def call_hook(self, hook_id: str, args: list[Any], workspace: str | None = None) -> None:
        await self.runtime.call_hook(hook_id, args, self.current_workspace(workspace))

    async def call_action(self, action_id: str, params: Any = None, workspace: str | None = None) -> ActionResult:
        return await self.runtime.call_action(action_id, params, self.current_workspace(workspace))

    # Lifecycle

    async def install(self, plugin_id: str) -> dict[str, Any]:
        return await self.lifecycle.install(plugin_id)

    async def install_local(self, folder: str) -> dict[str, Any]:
        return await self.lifecycle.install_local(folder)

    async def uninstall(self, plugin_id: str) -> dict[str, Any]:
        return await self.lifecycle.uninstall(plugin_id)

    async def update(self, plugin_id: str, full: bool = True) -> Plugin | None:
        return await self.lifecycle.update(plugin_id, full=full)

    async def update_all(self) -> list[Plugin]:
        return await self.lifecycle.update_all()

    async def invoke(self, plugin_id: str) -> dict[str, Any]:
        return await self.lifecycle.invoke(plugin_id)

    def finish_install(self) -> dict[str, Any]:
        return self.lifecycle.finish_install()

    def get_installation(self) -> dict[str, Any]:
        step = self.installation.step
        return {
            "id": INSTALLATION_ID,
            "pluginId": self.installation.plugin_id,
            "step": step.value if step else None,
            "prompts": self.host.prompts.list(),
        }

    # Assets

    def get_logo(self, plugin: Plugin) -> str | None:
        """Logo URL for a plugin; only hits are cached."""
        if plugin.kind == PluginKind.BUNDLE:
            return BUNDLE_LOGO
        cached = self._logo_cache.get(plugin.id)
        if cached is not None:
            self._logo_cache.move_to_end(plugin.id)
            return cached
        folder = self.host.paths.get_installed_path(plugin.id, self.modules_root(plugin.base_dir))
        if not folder or not os.path.isfile(os.path.join(folder, "logo.png")):
            return None
        url = logo_url(plugin.id)
        self._logo_cache[plugin.id] = url
        while len(self._logo_cache) > self.config.logo_cache_size:
            self._logo_cache.popitem(last=False)
        return url


def get_plugin_manager(
    host: PluginHost | None = None,
    *,
    config: PluginsConfig | None = None,
    commands: CommandRegistry | None = None,
) -> PluginManager:
    """Get or create the process-global plugin manager wired with default collaborators."""
    global _singleton
    with _singleton_lock:
        if _singleton is None:
            _singleton = _create_default_manager(host, config=config, commands=commands)
    return _singleton


def reset_plugin_manager() -> None:
    """Drop the process-global manager (tests and CLI re-entry)."""
    global _singleton
    with _singleton_lock:
        _singleton = None


def _create_default_manager(
    host: PluginHost | None,
    *,
    config: PluginsConfig | None,
    commands: CommandRegistry | None,
) -> PluginManager:
    from deskhost.bus import EventBus
    from deskhost.commands.registry import get_command_registry
    from deskhost.config.access import get_config
    from deskhost.host import ProjectRegistry as DefaultProjectRegistry, create_default_host
    from deskhost.plugins.native.loader import FilesystemModuleLoader

    app_config = get_config()
    plugins_cfg = config or app_config.plugins
    if host is None:
        bus = commands.bus if commands is not None and commands.bus is not None else EventBus()
        loader = FilesystemModuleLoader(modules_dir=plugins_cfg.modules_dir)
        host = create_default_host(config=app_config, bus=bus, loader=loader)
    if commands is None:
        commands = get_command_registry(bus=host.bus)
    manager = PluginManager(host, config=plugins_cfg, commands=commands)
    projects = DefaultProjectRegistry()
    manager.bind_projects(lambda: projects)
    logger.debug("Plugin manager created for {}", host.cwd.get())
    return manager
