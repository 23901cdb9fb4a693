"""Plugin API runtime: reset protocol, module invocation and hook/action dispatch."""

from __future__ import annotations

import asyncio
import inspect
import os
from typing import TYPE_CHECKING, Any, Callable

from loguru import logger

from deskhost.bus import events
from deskhost.plugins.api import WorkspaceExtensionContext
from deskhost.plugins.core.types import ActionResult
from deskhost.plugins.naming import BUILTIN_PLUGIN_ID
from deskhost.plugins.native.loader import module_entry
from deskhost.utils.exceptions import PluginError, RuntimeUnavailableError

if TYPE_CHECKING:
    from deskhost.plugins.manager import PluginManager

BUILTIN_MODULE = "py:deskhost.builtin.ui"


def _entry_callable(module: Any) -> Callable[[Any], Any] | None:
    target = module_entry(module)
    if inspect.isclass(target):
        target = target()
    register = getattr(target, "register", None)
    if callable(register):
        return register
    if callable(target):
        return target
    return None


def _local_module_path(ui_file: str) -> str:
    if os.path.isabs(ui_file) or ui_file.startswith("."):
        return ui_file
    return f"./{ui_file}"


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class PluginRuntime:
    """Owns the per-workspace extension contexts held by the manager."""

    def __init__(self, manager: PluginManager):
        self._manager = manager

    def get_api(self, workspace: str) -> WorkspaceExtensionContext | None:
        return self._manager.instances.get(workspace)

    async def reset(self, workspace: str, *, light: bool = False) -> bool:
        """
        Tear down the workspace's extension context and rebuild it from its plugins.

        Returns False, leaving no context registered, when the workspace has no
        project or the project type is not supported.

        Resets of one workspace run one at a time.
        """
        lock = self._manager.reset_locks.setdefault(workspace, asyncio.Lock())
        async with lock:
            return await self._reset(workspace, light=light)

    async def _reset(self, workspace: str, *, light: bool) -> bool:
        manager = self._manager
        host = manager.host
        logger.debug("Plugin API reloading... ({})", workspace)

        previous = manager.instances.pop(workspace, None)
        previous_project_id: str | None = None
        if previous is not None:
            previous_project_id = previous.project.id
            for view in previous.views:
                host.views.remove(str(view["id"]))
            for handler in list(previous.ipc_handlers):
                host.ipc.off(handler)
        if not light:
            if previous_project_id:
                host.shared_data.un_watch_all(previous_project_id)
            host.client_addons.clear()
            host.suggestions.clear()
            host.widgets.reset()

        # The project registry depends back on this runtime; resolve it on the next loop tick.
        await asyncio.sleep(0)
        projects = manager.projects
        project = projects.find_by_path(workspace)
        if project is None:
            logger.debug("No project for {}, plugin API not loaded", workspace)
            return False
        if projects.get_type(project) not in manager.config.compatible_project_types:
            logger.debug("Project {} has unsupported type {}", project.id, projects.get_type(project))
            return False

        context = WorkspaceExtensionContext(
            cwd=workspace,
            plugins=list(manager.plugins.get(workspace, [])),
            project=project,
            host=host,
            light=light,
            commands=manager.commands,
            action_caller=lambda action_id, params: self.call_action(action_id, params, workspace),
        )
        manager.instances[workspace] = context

        package = manager.packages.get(workspace)
        modules_root = package.context_dir if package is not None else workspace
        await self.run_plugin_api(BUILTIN_PLUGIN_ID, BUILTIN_MODULE, context, modules_root)
        for plugin in context.plugins:
            await self.run_plugin_api(plugin.id, f"{plugin.id}/ui", context, modules_root)
        for ui_file in manager.packages.local_ui_files(workspace):
            await self.run_plugin_api(modules_root, _local_module_path(ui_file), context, modules_root)

        for addon in context.client_addons:
            host.client_addons.add(addon)
        for view in context.views:
            await host.views.add(view, project)
        for definition in context.widget_defs:
            await host.widgets.register_definition(definition, project)

        if light:
            return True

        if previous_project_id != project.id:
            await self.call_hook("projectOpen", [project, projects.get_last()], workspace)
        else:
            await self.call_hook("pluginReload", [project], workspace)
            current_view = host.views.get_current()
            if current_view:
                host.views.open(str(current_view["id"]))
        host.widgets.load()
        logger.info("Plugin API loaded for {} ({} plugins)", workspace, len(context.plugins))
        return True

    async def run_plugin_api(
        self,
        plugin_id: str,
        module_path: str,
        context: WorkspaceExtensionContext,
        base_dir: str,
    ) -> bool:
        """Load one plugin module and run it against the context. Returns True if it ran cleanly."""
        host = self._manager.host
        ran = False
        module = None
        try:
            module = host.loader.load(module_path, base_dir, allow_missing=True, force=True)
        except Exception as e:
            self._plugin_failed(plugin_id, module_path, f"cannot load {module_path}: {e}")

        if module is not None:
            context.plugin_id = plugin_id
            try:
                fn = _entry_callable(module)
                if fn is None:
                    self._plugin_failed(plugin_id, module_path, f"{module_path} has no function exported")
                else:
                    await _maybe_await(fn(context))
                    ran = True
                    logger.debug("Plugin API loaded for {} ({})", module_path, base_dir)
            except Exception as e:
                self._plugin_failed(plugin_id, module_path, f"error while running {module_path}: {e}")
            finally:
                context.plugin_id = None

        try:
            folder = plugin_id if os.path.isdir(plugin_id) else host.paths.get_installed_path(plugin_id, base_dir)
            if folder:
                host.locales.load_folder(folder)
        except Exception as e:
            logger.debug("Locales skipped for {}: {}", plugin_id, e)
        return ran

    def _plugin_failed(self, plugin_id: str, module_path: str, reason: str) -> None:
        """Record a plugin module failure in the console log and on the bus; it never propagates."""
        host = self._manager.host
        error = PluginError(plugin_id, reason, module_path=module_path)
        logger.error("{}", error)
        host.logs.add(error.message, type="error", tag=plugin_id)
        host.bus.publish(events.PLUGIN_ERROR, error.to_dict())

    async def call_hook(self, hook_id: str, args: list[Any], workspace: str) -> None:
        """Run every handler of a hook in registration order; a failing handler does not stop the rest."""
        context = self.get_api(workspace)
        if context is None:
            return
        handlers = context.hooks.get(hook_id)
        if handlers is None:
            logger.info("Unknown hook {} ({})", hook_id, workspace)
            return
        logger.debug("Hook {}: {} handlers", hook_id, len(handlers))
        for handler in list(handlers):
            try:
                await _maybe_await(handler(*args))
            except Exception as e:
                logger.error("Hook {} handler failed: {}", hook_id, e)
                self._manager.host.logs.add(f"Hook {hook_id} handler failed: {e}", type="error")

    async def call_action(self, action_id: str, params: Any, workspace: str) -> ActionResult:
        context = self.get_api(workspace)
        if context is None:
            raise RuntimeUnavailableError(workspace)
        bus = self._manager.host.bus
        bus.publish(events.PLUGIN_ACTION_CALLED, {"id": action_id, "params": params})
        logger.debug("Plugin action called: {}", action_id)
        outcome = ActionResult(id=action_id, params=params)
        for handler in list(context.actions.get(action_id, [])):
            try:
                value = await _maybe_await(handler(params))
            except Exception as e:
                logger.warning("Plugin action {} handler failed: {}", action_id, e)
                outcome.results.append(None)
                outcome.errors.append(e)
            else:
                outcome.results.append(value)
                outcome.errors.append(None)
        bus.publish(events.PLUGIN_ACTION_RESOLVED, outcome.to_dict())
        logger.debug("Plugin action resolved: {} ({} handlers)", action_id, len(outcome.results))
        return outcome
