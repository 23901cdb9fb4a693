"""Extension surface handed to every plugin module of a workspace."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable

from loguru import logger

from deskhost.commands.models import Command, CommandType
from deskhost.plugins.core.contracts import PluginHost
from deskhost.plugins.core.types import ActionResult, Plugin, Project

if TYPE_CHECKING:
    from deskhost.commands.registry import CommandRegistry

KNOWN_HOOKS = (
    "projectOpen",
    "pluginReload",
    "configRead",
    "configWrite",
    "taskRun",
    "taskExit",
    "taskOpen",
    "viewOpen",
)

ActionCaller = Callable[[str, Any], Awaitable[ActionResult]]


class WorkspaceExtensionContext:
    """
    Live registrations of all loaded plugins for one workspace.

    Created by the API reset, discarded wholesale before the next one replaces it.
    Contributions made while a plugin module runs are tagged with `plugin_id`.
    """

    def __init__(
        self,
        *,
        cwd: str,
        plugins: list[Plugin],
        project: Project,
        host: PluginHost,
        light: bool = False,
        commands: CommandRegistry | None = None,
        action_caller: ActionCaller | None = None,
    ):
        self.cwd = cwd
        self.plugins = plugins
        self.project = project
        self.light = light
        self.plugin_id: str | None = None
        self.hooks: dict[str, list[Callable[..., Any]]] = {name: [] for name in KNOWN_HOOKS}
        self.actions: dict[str, list[Callable[..., Any]]] = {}
        self.views: list[dict[str, Any]] = []
        self.widget_defs: list[dict[str, Any]] = []
        self.client_addons: list[dict[str, Any]] = []
        self.ipc_handlers: list[Callable[..., Any]] = []
        self._host = host
        self._commands = commands
        self._action_caller = action_caller

    # Hooks

    def on(self, hook_id: str, handler: Callable[..., Any]) -> None:
        name = str(hook_id).strip()
        if name not in self.hooks:
            raise ValueError(f"unknown hook: {hook_id}")
        if not callable(handler):
            raise ValueError("hook handler must be callable")
        self.hooks[name].append(handler)

    def on_project_open(self, handler: Callable[..., Any]) -> None:
        self.on("projectOpen", handler)

    def on_plugin_reload(self, handler: Callable[..., Any]) -> None:
        self.on("pluginReload", handler)

    def on_view_open(self, handler: Callable[..., Any]) -> None:
        self.on("viewOpen", handler)

    # Actions

    def on_action(self, action_id: str, handler: Callable[..., Any]) -> None:
        name = str(action_id).strip()
        if not name:
            raise ValueError("action id is required")
        if not callable(handler):
            raise ValueError("action handler must be callable")
        self.actions.setdefault(name, []).append(handler)

    async def call_action(self, action_id: str, params: Any = None) -> ActionResult:
        """Dispatch an action through the workspace runtime, as the UI would."""
        if self._action_caller is None:
            raise RuntimeError("action dispatch is not available in this context")
        return await self._action_caller(action_id, params)

    # Contributions applied to external registries after every module ran

    def add_view(self, options: dict[str, Any]) -> None:
        view_id = str(options.get("id") or "").strip()
        if not view_id:
            raise ValueError("view id is required")
        view = dict(options)
        view["pluginId"] = self.plugin_id
        self.views.append(view)

    def register_widget(self, definition: dict[str, Any]) -> None:
        widget_id = str(definition.get("id") or "").strip()
        if not widget_id:
            raise ValueError("widget id is required")
        widget = dict(definition)
        widget["pluginId"] = self.plugin_id
        widget["id"] = f"{self.plugin_id}.{widget_id}" if self.plugin_id else widget_id
        self.widget_defs.append(widget)

    def add_client_addon(self, options: dict[str, Any]) -> None:
        addon_id = str(options.get("id") or "").strip()
        if not addon_id:
            raise ValueError("client addon id is required")
        addon = dict(options)
        addon["pluginId"] = self.plugin_id
        self.client_addons.append(addon)

    # Immediate side registrations

    def ipc_on(self, handler: Callable[..., Any]) -> None:
        self.ipc_handlers.append(handler)
        self._host.ipc.on(handler)

    def ipc_off(self, handler: Callable[..., Any]) -> None:
        if handler in self.ipc_handlers:
            self.ipc_handlers.remove(handler)
        self._host.ipc.off(handler)

    def add_suggestion(self, options: dict[str, Any]) -> None:
        suggestion = dict(options)
        suggestion["pluginId"] = self.plugin_id
        self._host.suggestions.add(suggestion)

    def add_command(
        self,
        command_id: str,
        label: str,
        *,
        type: CommandType | str = CommandType.ACTION,
        handler: Callable[[], Any] | None = None,
        icon: str | None = None,
        description: str | None = None,
        hidden: bool = False,
    ) -> Command | None:
        """Contribute a command to the command palette. Returns None when no registry is attached."""
        if self._commands is None:
            logger.debug("Command {} ignored: no command registry", command_id)
            return None
        command = Command(
            id=command_id,
            type=CommandType(type),
            label=label,
            icon=icon,
            description=description,
            hidden=hidden,
            handler=handler,
            plugin_id=self.plugin_id,
        )
        return self._commands.add(command)

    # Queries

    def has_plugin(self, plugin_id: str) -> bool:
        return any(p.id == plugin_id for p in self.plugins)

    def get_project(self) -> Project:
        return self.project
