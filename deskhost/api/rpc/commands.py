"""RPC handlers for command palette methods."""

from __future__ import annotations

from typing import Any, Callable

RpcResult = tuple[bool, Any | None, dict[str, Any] | None]


async def try_handle_commands_method(
    *,
    method: str,
    params: dict[str, Any],
    app_state: dict[str, Any],
    rpc_error: Callable[[str, str, dict[str, Any] | None], dict[str, Any]],
) -> RpcResult | None:
    """Handle commands.* RPC methods. Return None if method is unrelated."""
    if not method.startswith("commands."):
        return None
    registry = app_state.get("command_registry")
    if registry is None:
        return False, None, rpc_error("UNAVAILABLE", "command registry unavailable", None)

    if method == "commands.search":
        text = str(params.get("text") or "")
        return True, {"commands": [registry.describe(c) for c in registry.search(text)]}, None

    if method == "commands.get":
        command_id = str(params.get("id") or "")
        command = registry.get(command_id)
        if command is None:
            return False, None, rpc_error("NOT_FOUND", f"command not found: {command_id}", None)
        return True, registry.describe(command), None

    if method == "commands.run":
        command_id = str(params.get("id") or "")
        if not command_id:
            return False, None, rpc_error("INVALID_REQUEST", "commands.run requires id", None)
        command = await registry.run(command_id, client_id=params.get("clientId"))
        return True, registry.describe(command) if command else None, None

    return None
