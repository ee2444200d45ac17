"""Network helpers for CLI commands."""

from __future__ import annotations

import errno
import socket


def is_port_in_use(host: str, port: int) -> bool:
    """Return True if the port is already bound (e.g. by a bridge left over from another run)."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind((host, port))
            return False
        except OSError as e:
            if e.errno == errno.EADDRINUSE:
                return True
            raise


def bridge_port_status(host: str, port: int) -> str:
    """Availability of the file bridge port: free, in use, or why it cannot be bound."""
    try:
        return "in use" if is_port_in_use(host, port) else "free"
    except OSError as e:
        return f"unavailable ({e.strerror or e})"
