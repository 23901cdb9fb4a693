"""RPC handlers for plugin methods."""

from __future__ import annotations

from typing import Any, Callable

RpcResult = tuple[bool, Any | None, dict[str, Any] | None]


def _plugin_id(params: dict[str, Any]) -> str:
    return str(params.get("id") or "").strip()


def _workspace(params: dict[str, Any]) -> str | None:
    value = params.get("workspace") or params.get("file")
    return str(value) if value else None


async def try_handle_plugins_method(
    *,
    method: str,
    params: dict[str, Any],
    app_state: dict[str, Any],
    rpc_error: Callable[[str, str, dict[str, Any] | None], dict[str, Any]],
) -> RpcResult | None:
    """Handle plugins.* RPC methods. Return None if method is unrelated."""
    if not method.startswith("plugins."):
        return None
    manager = app_state.get("plugin_manager")
    if manager is None:
        if method == "plugins.list":
            return True, {"plugins": []}, None
        return False, None, rpc_error("UNAVAILABLE", "plugin manager unavailable", None)

    if method == "plugins.list":
        plugins = await manager.list(
            _workspace(params),
            reset_api=bool(params.get("resetApi", True)),
            light=bool(params.get("light", False)),
        )
        return True, {"plugins": [p.to_dict() for p in plugins]}, None

    if method == "plugins.info":
        plugin_id = _plugin_id(params)
        if not plugin_id:
            return False, None, rpc_error("INVALID_REQUEST", "plugins.info requires id", None)
        plugin = manager.find_one(plugin_id, _workspace(params))
        if plugin is None:
            return False, None, rpc_error("NOT_FOUND", f"plugin not found: {plugin_id}", None)
        return True, plugin.to_dict(), None

    if method == "plugins.logo":
        plugin_id = _plugin_id(params)
        plugin = manager.find_one(plugin_id, _workspace(params)) if plugin_id else None
        if plugin is None:
            return False, None, rpc_error("NOT_FOUND", f"plugin not found: {plugin_id}", None)
        return True, {"id": plugin_id, "logo": manager.get_logo(plugin)}, None

    if method == "plugins.installation":
        return True, manager.get_installation(), None

    if method in ("plugins.install", "plugins.uninstall", "plugins.invoke"):
        plugin_id = _plugin_id(params)
        if not plugin_id:
            return False, None, rpc_error("INVALID_REQUEST", f"{method} requires id", None)
        operation = getattr(manager, method.split(".", 1)[1])
        return True, await operation(plugin_id), None

    if method == "plugins.installLocal":
        path = str(params.get("path") or "").strip()
        if not path:
            return False, None, rpc_error("INVALID_REQUEST", "plugins.installLocal requires path", None)
        return True, await manager.install_local(path), None

    if method == "plugins.finishInstall":
        return True, manager.finish_install(), None

    if method == "plugins.update":
        plugin_id = _plugin_id(params)
        if not plugin_id:
            return False, None, rpc_error("INVALID_REQUEST", "plugins.update requires id", None)
        plugin = await manager.update(plugin_id, full=bool(params.get("full", True)))
        return True, plugin.to_dict() if plugin else None, None

    if method == "plugins.updateAll":
        plugins = await manager.update_all()
        return True, {"plugins": [p.to_dict() for p in plugins]}, None

    if method == "plugins.resetApi":
        ok = await manager.reset_api(_workspace(params), light=bool(params.get("light", False)))
        return True, {"ok": ok}, None

    if method == "plugins.action.call":
        action_id = str(params.get("action") or params.get("id") or "").strip()
        if not action_id:
            return False, None, rpc_error("INVALID_REQUEST", "plugins.action.call requires action id", None)
        result = await manager.call_action(action_id, params.get("params"), _workspace(params))
        return True, result.to_dict(), None

    return None
