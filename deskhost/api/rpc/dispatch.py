"""Route an RPC call to its handler behind the error boundary."""

from __future__ import annotations

from typing import Any

from loguru import logger

from deskhost.api.rpc.commands import try_handle_commands_method
from deskhost.api.rpc.error_boundary import (
    RpcResult,
    deskhost_error_result,
    unhandled_exception_result,
    unknown_method_result,
)
from deskhost.api.rpc.plugins import try_handle_plugins_method
from deskhost.utils.exceptions import DeskhostError

_HANDLERS = (try_handle_plugins_method, try_handle_commands_method)


def rpc_error(code: str, message: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
    return {"code": code, "message": message, "data": data}


async def dispatch_rpc(method: str, params: dict[str, Any] | None, *, app_state: dict[str, Any]) -> RpcResult:
    """Run the first handler that claims `method`."""
    payload = params if isinstance(params, dict) else {}
    try:
        for handler in _HANDLERS:
            result = await handler(method=method, params=payload, app_state=app_state, rpc_error=rpc_error)
            if result is not None:
                return result
    except DeskhostError as exc:
        return deskhost_error_result(method=method, exc=exc, log_warning=logger.warning, rpc_error=rpc_error)
    except Exception as exc:
        return unhandled_exception_result(method=method, exc=exc, log_exception=logger.exception, rpc_error=rpc_error)
    return unknown_method_result(method=method, rpc_error=rpc_error)
