"""
Exception hierarchy and error handling utilities for vbookbridge.

Provides:
- Custom exception classes with error codes, one per failure family of a test/install run
- Error categorization (configuration, validation, transport, protocol, ...)
- Safe error message formatting (no tokens or payload blobs leaked into output)
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categories for classification."""
    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    RESOLUTION = "resolution"
    BRIDGE = "bridge"
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    PROTOCOL = "protocol"
    BUSY = "busy"
    REMOTE = "remote"
    FATAL = "fatal"


class VbookBridgeError(Exception):
    """Base exception for all vbookbridge errors."""

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


class ConfigurationError(VbookBridgeError):
    """Missing script, invalid project root or broken project descriptor."""

    def __init__(self, message: str, path: str | None = None):
        details = {"path": path} if path else {}
        super().__init__(message, code="CONFIGURATION_ERROR", category=ErrorCategory.CONFIGURATION, details=details)


class ValidationError(VbookBridgeError):
    """Input validation error (e.g. a malformed target address)."""

    def __init__(self, message: str, field: str | None = None, value: str | None = None):
        details: dict[str, Any] = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = value
        super().__init__(message, code="VALIDATION_ERROR", category=ErrorCategory.VALIDATION, details=details)


class ResolutionError(VbookBridgeError):
    """No usable local IPv4 address to advertise as callback."""

    def __init__(self, message: str, target_host: str | None = None):
        details = {"target_host": target_host} if target_host else {}
        super().__init__(message, code="RESOLUTION_ERROR", category=ErrorCategory.RESOLUTION, details=details)


class BridgeError(VbookBridgeError):
    """Local file bridge failed to bind or start."""

    def __init__(self, message: str, port: int | None = None):
        details = {"port": port} if port is not None else {}
        super().__init__(message, code="BRIDGE_ERROR", category=ErrorCategory.BRIDGE, details=details)


class TransportError(VbookBridgeError):
    """Connection to the runtime app was refused, reset or failed mid-read."""

    def __init__(self, operation: str, target: str, message: str):
        super().__init__(
            f"{operation} to {target} failed: {message}",
            code="TRANSPORT_ERROR",
            category=ErrorCategory.TRANSPORT,
            details={"operation": operation, "target": target},
        )


class TimeoutError(VbookBridgeError):
    """Operation timeout error."""

    def __init__(self, operation: str, timeout_seconds: float):
        super().__init__(
            f"Operation '{operation}' timed out after {timeout_seconds}s",
            code="TIMEOUT",
            category=ErrorCategory.TIMEOUT,
            details={"operation": operation, "timeout_seconds": timeout_seconds},
        )


class ProtocolError(VbookBridgeError):
    """The runtime app's reply could not be decoded; ``raw`` keeps the reply text."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message, code="PROTOCOL_ERROR", category=ErrorCategory.PROTOCOL, details={"raw_length": len(raw)})
        self.raw = raw


class BusyError(VbookBridgeError):
    """A run for the same project is already in flight."""

    def __init__(self, project_id: str):
        super().__init__(
            f"A test/install run is already in progress for {project_id}",
            code="BUSY",
            category=ErrorCategory.BUSY,
            details={"project_id": project_id},
        )


class InstallError(VbookBridgeError):
    """The runtime app reported a failed install."""

    def __init__(self, message: str, status: Any = None):
        super().__init__(message, code="INSTALL_ERROR", category=ErrorCategory.REMOTE, details={"status": status})


_SENSITIVE_PATTERNS = [
    re.compile(r"(api[_-]?key|token|secret|password|auth)[=:]\s*['\"]?([^\s'\"]+)['\"]?", re.IGNORECASE),
    re.compile(r"bearer\s+[a-zA-Z0-9\-._~+/]+=*", re.IGNORECASE),
    re.compile(r"[a-zA-Z0-9+/]{64,}={0,2}"),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove sensitive information (and long base64 blobs) from error messages."""
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized
