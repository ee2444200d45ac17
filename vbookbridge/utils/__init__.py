"""Utility functions for vbookbridge."""

from vbookbridge.utils.exceptions import (
    VbookBridgeError,
    ConfigurationError,
    ValidationError,
    ResolutionError,
    BridgeError,
    TransportError,
    TimeoutError,
    ProtocolError,
    BusyError,
    InstallError,
    ErrorCategory,
    sanitize_error_message,
)

__all__ = [
    "VbookBridgeError",
    "ConfigurationError",
    "ValidationError",
    "ResolutionError",
    "BridgeError",
    "TransportError",
    "TimeoutError",
    "ProtocolError",
    "BusyError",
    "InstallError",
    "ErrorCategory",
    "sanitize_error_message",
]
