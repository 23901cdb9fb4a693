"""Common RPC error-boundary helpers for method dispatch."""

from __future__ import annotations

from typing import Any, Callable

from deskhost.utils.exceptions import (
    DeskhostError,
    classify_exception,
    sanitize_error_message,
)

RpcResult = tuple[bool, Any | None, dict[str, Any] | None]
RpcErrorFactory = Callable[[str, str, dict[str, Any] | None], dict[str, Any]]


def unknown_method_result(*, method: str, rpc_error: RpcErrorFactory) -> RpcResult:
    """Build standardized unknown-method response."""
    return False, None, rpc_error("INVALID_REQUEST", f"unknown method: {method}", None)


def deskhost_error_result(
    *,
    method: str,
    exc: DeskhostError,
    log_warning: Callable[..., None],
    rpc_error: RpcErrorFactory,
) -> RpcResult:
    """Map DeskhostError to RPC error payloads, keeping its code and details."""
    log_warning("RPC method {} failed with {}: {}", method, exc.code, exc.message)
    data = dict(exc.details)
    data["category"] = exc.category.value
    return False, None, rpc_error(exc.code, sanitize_error_message(exc.message), data)


def unhandled_exception_result(
    *,
    method: str,
    exc: Exception,
    log_exception: Callable[..., None],
    rpc_error: RpcErrorFactory,
) -> RpcResult:
    """Map unexpected exceptions to standardized INTERNAL_ERROR responses."""
    code, category = classify_exception(exc)
    sanitized = sanitize_error_message(str(exc))
    log_exception("RPC method {} failed with [{}]: {}", method, code, sanitized)
    return False, None, rpc_error("INTERNAL_ERROR", sanitized, {"error_code": code, "category": category.value})
