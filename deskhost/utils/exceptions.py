"""
Exception hierarchy and error helpers for deskhost.

Provides:
- Custom exception classes with error codes
- Error categorization (not found, validation, external, precondition)
- Safe error message formatting for transport payloads
"""

from __future__ import annotations

import asyncio
import json
import re
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categories for classification."""
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    PLUGIN = "plugin"
    EXTERNAL = "external"
    PRECONDITION = "precondition"
    CONFLICT = "conflict"
    TIMEOUT = "timeout"
    FATAL = "fatal"


class DeskhostError(Exception):
    """Base exception for all deskhost errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        category: ErrorCategory = ErrorCategory.FATAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class NotFoundError(DeskhostError):
    """Resource not found error."""

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            code="NOT_FOUND",
            category=ErrorCategory.NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ManifestError(DeskhostError):
    """Workspace manifest missing or unreadable."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"Cannot read workspace manifest {path}: {reason}",
            code="MANIFEST_UNREADABLE",
            category=ErrorCategory.VALIDATION,
            details={"path": path},
        )


class PluginError(DeskhostError):
    """A plugin module failed to load or run."""

    def __init__(self, plugin_id: str, message: str, module_path: str | None = None):
        details: dict[str, Any] = {"plugin_id": plugin_id}
        if module_path:
            details["module_path"] = module_path
        super().__init__(
            f"Plugin '{plugin_id}' error: {message}",
            code="PLUGIN_ERROR",
            category=ErrorCategory.PLUGIN,
            details=details,
        )


class OperationInProgressError(DeskhostError):
    """A lifecycle operation was started while another one is still running."""

    def __init__(self, operation: str, active: str | None = None):
        message = f"Cannot start '{operation}'"
        message += f": '{active}' is in progress" if active else ": another operation is in progress"
        super().__init__(
            message,
            code="OPERATION_IN_PROGRESS",
            category=ErrorCategory.CONFLICT,
            details={"operation": operation, "active": active},
        )


class ExternalProcessError(DeskhostError):
    """Package manager or scaffolding command exited with a failure."""

    def __init__(self, argv: list[str], exit_code: int, output: str = ""):
        super().__init__(
            f"Command '{' '.join(argv)}' exited with code {exit_code}",
            code="EXTERNAL_PROCESS_FAILED",
            category=ErrorCategory.EXTERNAL,
            details={"argv": list(argv), "exit_code": exit_code, "output": output[-4000:]},
        )
        self.exit_code = exit_code
        self.output = output


class RuntimeUnavailableError(DeskhostError):
    """No extension context exists for the workspace."""

    def __init__(self, workspace: str):
        super().__init__(
            f"No plugin runtime for workspace {workspace}; open a compatible project first",
            code="RUNTIME_UNAVAILABLE",
            category=ErrorCategory.PRECONDITION,
            details={"workspace": workspace},
        )


_SENSITIVE_PATTERNS = [
    re.compile(r"(api[_-]?key|token|secret|password|auth)[=:]\s*['\"]?([^\s'\"]+)['\"]?", re.IGNORECASE),
    re.compile(r"bearer\s+[a-zA-Z0-9\-._~+/]+=*", re.IGNORECASE),
    re.compile(r"npm_[a-zA-Z0-9]{36}"),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove credentials (registry tokens, auth headers) from error messages."""
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def classify_exception(exc: Exception) -> tuple[str, ErrorCategory]:
    """Classify an exception and return (error_code, category)."""
    if isinstance(exc, DeskhostError):
        return exc.code, exc.category

    if isinstance(exc, FileNotFoundError):
        return "FILE_NOT_FOUND", ErrorCategory.NOT_FOUND

    if isinstance(exc, asyncio.TimeoutError):
        return "TIMEOUT", ErrorCategory.TIMEOUT

    if isinstance(exc, json.JSONDecodeError):
        return "JSON_PARSE_ERROR", ErrorCategory.VALIDATION

    if isinstance(exc, (ValueError, KeyError, TypeError)):
        return "INVALID_VALUE", ErrorCategory.VALIDATION

    return "INTERNAL_ERROR", ErrorCategory.FATAL
