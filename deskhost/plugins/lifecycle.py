"""Install / uninstall / update / invoke state machine."""

from __future__ import annotations

import asyncio
import inspect
import json
import os
import shutil
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

from deskhost.plugins.core.types import InstallStep, Plugin, PluginKind
from deskhost.plugins.naming import is_official_plugin
from deskhost.plugins.progress import SetProgress
from deskhost.utils.exceptions import NotFoundError, OperationInProgressError, RuntimeUnavailableError

if TYPE_CHECKING:
    from deskhost.plugins.manager import PluginManager

PROGRESS_INSTALL = "plugin-installation"
PROGRESS_UPDATE = "plugin-update"
PROGRESS_UPDATE_ALL = "plugins-update"
LOCAL_RANGE_PREFIX = "file:"


class PluginLifecycle:
    """
    Lifecycle operations for the current workspace.

    Operations of one workspace share a progress lane, so at most one runs at a
    time. Install and uninstall also need the installation state to be idle:
    idle -> install -> config -> (invoke) -> diff -> idle, or idle -> uninstall -> idle.
    """

    def __init__(self, manager: PluginManager):
        self._manager = manager

    async def install(self, plugin_id: str) -> dict[str, Any]:
        manager = self._manager
        host = manager.host
        workspace = host.cwd.get()
        self._require_idle("install")

        async def _run(set_progress: SetProgress) -> dict[str, Any]:
            set_progress(status="plugin-install", args=[plugin_id])
            manager.installation.begin(plugin_id, InstallStep.INSTALL)
            try:
                if manager.config.debug and is_official_plugin(plugin_id):
                    self.mock_install(plugin_id, workspace)
                else:
                    await host.package_manager.install(workspace, plugin_id)
            except Exception:
                manager.installation.clear()
                raise
            await self.init_prompts(plugin_id, workspace)
            manager.installation.step = InstallStep.CONFIG
            host.notifier.notify(
                "Plugin installed",
                f"Plugin {plugin_id} installed, next step is configuration",
            )
            return manager.get_installation()

        return await manager.progress.wrap(PROGRESS_INSTALL, _run, lane=workspace)

    async def install_local(self, folder: str) -> dict[str, Any]:
        """Install a plugin from a local folder into the current project."""
        manager = self._manager
        host = manager.host
        self._require_idle("install")
        project = manager.projects.get_current()
        if project is None:
            raise NotFoundError("project", "current")
        source = os.path.abspath(os.path.expanduser(folder))
        host.cwd.set(project.path)
        workspace = host.cwd.get()

        async def _run(set_progress: SetProgress) -> dict[str, Any]:
            plugin_id = str(host.manifests.read_manifest(source).get("name") or "").strip()
            if not plugin_id:
                raise ValueError(f"Local plugin at {source} has no package name")
            set_progress(status="plugin-install", args=[plugin_id])
            manager.installation.begin(plugin_id, InstallStep.INSTALL)
            try:
                manifest = host.manifests.read_manifest(workspace)
                dev_deps = manifest.setdefault("devDependencies", {})
                dev_deps[plugin_id] = f"{LOCAL_RANGE_PREFIX}{source}"
                host.manifests.write_manifest(workspace, manifest)
                dest = self._package_dir(plugin_id, workspace)
                logger.info("Copying local plugin {} to {}", source, dest)
                await asyncio.to_thread(shutil.copytree, source, dest, dirs_exist_ok=True)
            except Exception:
                manager.installation.clear()
                raise
            await self.init_prompts(plugin_id, workspace)
            manager.installation.step = InstallStep.CONFIG
            host.notifier.notify(
                "Plugin installed",
                f"Plugin {plugin_id} installed, next step is configuration",
            )
            return manager.get_installation()

        return await manager.progress.wrap(PROGRESS_INSTALL, _run, lane=workspace)

    async def uninstall(self, plugin_id: str) -> dict[str, Any]:
        manager = self._manager
        host = manager.host
        workspace = host.cwd.get()
        self._require_idle("uninstall")

        async def _run(set_progress: SetProgress) -> dict[str, Any]:
            set_progress(status="plugin-uninstall", args=[plugin_id])
            manager.installation.begin(plugin_id, InstallStep.UNINSTALL)
            try:
                if manager.config.debug and is_official_plugin(plugin_id):
                    self.mock_uninstall(plugin_id, workspace)
                else:
                    await host.package_manager.uninstall(workspace, plugin_id)
            finally:
                manager.installation.clear()
            host.notifier.notify("Plugin uninstalled", f"Plugin {plugin_id} uninstalled")
            return manager.get_installation()

        return await manager.progress.wrap(PROGRESS_INSTALL, _run, lane=workspace)

    async def invoke(self, plugin_id: str) -> dict[str, Any]:
        """Run the plugin's generator with the collected answers, then reload its API module."""
        manager = self._manager
        host = manager.host
        workspace = host.cwd.get()
        state = manager.installation
        if state.step not in (None, InstallStep.CONFIG):
            raise OperationInProgressError("invoke", f"{state.step.value} {state.plugin_id}")
        if manager.runtime.get_api(workspace) is None:
            raise RuntimeUnavailableError(workspace)
        modules_root = manager.modules_root(workspace)

        async def _run(set_progress: SetProgress) -> dict[str, Any]:
            set_progress(status="plugin-invoke", args=[plugin_id])
            host.loader.invalidate_cache(manager.config.build_config_module, modules_root)
            state.plugin_id = plugin_id
            if host.loader.resolve(f"{plugin_id}/generator", modules_root):
                argv = [
                    *manager.config.invoke_command,
                    plugin_id,
                    "--inline-options",
                    json.dumps(host.prompts.get_answers()),
                ]

                def _on_output(line: str) -> None:
                    set_progress(info=line)
                    host.logs.add(line, type="info", tag=plugin_id)

                await host.runner.run(argv, workspace, on_output=_on_output)
            context = manager.runtime.get_api(workspace)
            if context is None:
                raise RuntimeUnavailableError(workspace)
            await manager.runtime.run_plugin_api(plugin_id, f"{plugin_id}/ui", context, modules_root)
            state.step = InstallStep.DIFF
            host.notifier.notify("Plugin invoked successfully", f"Plugin {plugin_id} invoked successfully")
            return manager.get_installation()

        return await manager.progress.wrap(PROGRESS_INSTALL, _run, lane=workspace)

    def finish_install(self) -> dict[str, Any]:
        self._manager.installation.clear()
        return self._manager.get_installation()

    async def update(self, plugin_id: str, full: bool = True) -> Plugin | None:
        """Update one plugin; local `file:` packages are resynced from disk instead of the package manager."""
        manager = self._manager
        host = manager.host
        workspace = host.cwd.get()

        async def _run(set_progress: SetProgress) -> Plugin | None:
            set_progress(status="plugin-update", args=[plugin_id])
            tracking = manager.installation.idle
            if tracking:
                manager.installation.plugin_id = plugin_id
            try:
                plugin = manager.discovery.find_one(plugin_id, workspace)
                if plugin is None:
                    raise NotFoundError("plugin", plugin_id)
                version = await host.versions.get_version(plugin, manager.modules_root(workspace))
                if version.local_path:
                    await self.update_local_package(plugin_id, workspace, version.local_path, full=full)
                else:
                    await host.package_manager.update(workspace, [plugin_id])
                host.logs.add(
                    f"Plugin {plugin_id} updated from {version.current} to {version.wanted}",
                    type="info",
                    tag=plugin_id,
                )
                host.notifier.notify("Plugin updated", f"Plugin {plugin_id} was successfully updated")
                host.versions.invalidate(plugin_id)
                await manager.discovery.list(workspace, reset_api=False, auto_load=False)
                await manager.runtime.reset(workspace)
            finally:
                if tracking:
                    manager.installation.plugin_id = None
            return manager.discovery.find_one(plugin_id, workspace)

        return await manager.progress.wrap(PROGRESS_UPDATE, _run, lane=workspace)

    async def update_local_package(self, plugin_id: str, workspace: str, local_path: str, full: bool = True) -> None:
        """Copy a locally linked package into the dependency tree, skipping VCS metadata."""
        source = Path(self._manager.modules_root(workspace)) / local_path
        dest = self._package_dir(plugin_id, workspace)
        if full:
            await asyncio.to_thread(shutil.rmtree, dest, ignore_errors=True)
            ignore = shutil.ignore_patterns(".git")
        else:
            ignore = shutil.ignore_patterns(".git", self._manager.config.modules_dir)
        logger.debug("Syncing local package {} -> {} (full={})", source, dest, full)
        await asyncio.to_thread(shutil.copytree, source, dest, ignore=ignore, dirs_exist_ok=True)

    async def update_all(self) -> list[Plugin]:
        manager = self._manager
        host = manager.host
        workspace = host.cwd.get()

        async def _run(set_progress: SetProgress) -> list[Plugin]:
            plugins = await manager.discovery.list(workspace, reset_api=False)
            outdated: list[Plugin] = []
            for plugin in plugins:
                if plugin.kind != PluginKind.DECLARED or plugin.version_range.startswith(LOCAL_RANGE_PREFIX):
                    continue
                version = await host.versions.get_version(plugin, manager.modules_root(workspace))
                if version.outdated:
                    outdated.append(plugin)

            if not outdated:
                host.notifier.notify(
                    "No updates available",
                    "No plugin to update in the version ranges declared in the manifest",
                )
                return []

            set_progress(status="plugins-update", args=[len(outdated)])
            await host.package_manager.update(workspace, [p.id for p in outdated])
            for plugin in outdated:
                host.versions.invalidate(plugin.id)
            host.notifier.notify("Plugins updated", f"{len(outdated)} plugin(s) were successfully updated")
            await manager.runtime.reset(workspace)
            return outdated

        return await manager.progress.wrap(PROGRESS_UPDATE_ALL, _run, lane=workspace)

    async def init_prompts(self, plugin_id: str, workspace: str) -> None:
        """Load the plugin's prompt set (a list, or a function returning one) and start collection."""
        host = self._manager.host
        await host.prompts.reset()
        try:
            module = host.loader.load(f"{plugin_id}/prompts", self._manager.modules_root(workspace), allow_missing=True)
            data = getattr(module, "prompts", None) if module is not None else None
            if callable(data):
                data = data()
                if inspect.isawaitable(data):
                    data = await data
            if data is None:
                logger.info("No prompts found for {}", plugin_id)
            for prompt in data or []:
                host.prompts.add(prompt)
        except Exception as e:
            logger.warning("No prompts found for {}: {}", plugin_id, e)
        await host.prompts.start()

    def mock_install(self, plugin_id: str, workspace: str) -> None:
        manifests = self._manager.host.manifests
        manifest = manifests.read_manifest(workspace)
        manifest.setdefault("devDependencies", {})[plugin_id] = "*"
        manifests.write_manifest(workspace, manifest)

    def mock_uninstall(self, plugin_id: str, workspace: str) -> None:
        manifests = self._manager.host.manifests
        manifest = manifests.read_manifest(workspace)
        manifest.get("devDependencies", {}).pop(plugin_id, None)
        manifests.write_manifest(workspace, manifest)

    def _require_idle(self, operation: str) -> None:
        state = self._manager.installation
        if not state.idle:
            raise OperationInProgressError(operation, f"{state.step.value} {state.plugin_id}")

    def _package_dir(self, plugin_id: str, workspace: str) -> Path:
        return Path(self._manager.modules_root(workspace)) / self._manager.config.modules_dir / Path(*plugin_id.split("/"))
