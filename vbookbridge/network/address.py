"""Target address parsing and normalization.

Accepted operator input::

    192.168.1.7            -> http://192.168.1.7:8080
    192.168.1.7:9000       -> http://192.168.1.7:9000
    https://10.0.0.5       -> https://10.0.0.5:8080
    http://10.0.0.5:9090   -> http://10.0.0.5:9090
    vbook.local:8090       -> http://vbook.local:8090
"""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass

from vbookbridge.utils.exceptions import ValidationError

DEFAULT_PORT = 8080
BRIDGE_PORT_OFFSET = 10

_ADDRESS_RE = re.compile(
    r"^(?:(?P<scheme>[A-Za-z][A-Za-z0-9+.-]*)://)?"
    r"(?P<host>[A-Za-z0-9](?:[A-Za-z0-9.-]*[A-Za-z0-9])?)"
    r"(?::(?P<port>\d{1,5}))?/?$"
)
_DOTTED_NUMERIC_RE = re.compile(r"^[\d.]+$")
_SUPPORTED_SCHEMES = ("http", "https")


@dataclass(frozen=True, slots=True)
class TargetAddress:
    """Network address of the runtime app."""

    scheme: str
    host: str
    port: int

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    @property
    def is_ipv4(self) -> bool:
        return is_ipv4_literal(self.host)

    def bridge_port(self, offset: int = BRIDGE_PORT_OFFSET) -> int:
        """Port the local file bridge listens on; both ends derive it without a handshake."""
        port = self.port - offset
        if not 1 <= port <= 65535:
            raise ValidationError(
                f"Target port {self.port} leaves no room for the file bridge (port - {offset})",
                field="port",
                value=str(self.port),
            )
        return port

    def host_prefix(self, octets: int) -> str | None:
        """First ``octets`` dotted octets of an IPv4 host, with trailing dot (``"192.168."``)."""
        if not self.is_ipv4 or octets <= 0:
            return None
        parts = self.host.split(".")[: min(octets, 4)]
        return ".".join(parts) + "."

    def __str__(self) -> str:
        return self.url


def is_ipv4_literal(value: str) -> bool:
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        return False
    return True


def parse_target_address(raw: str | None, *, default_port: int = DEFAULT_PORT) -> TargetAddress:
    """Validate operator input and return the canonical TargetAddress.

    Raises ValidationError for anything that is not an IPv4 literal or hostname with an
    optional http(s) scheme and optional port.
    """
    text = (raw or "").strip()
    if not text:
        raise ValidationError("Address cannot be empty", field="address", value=raw or "")

    match = _ADDRESS_RE.match(text)
    if not match:
        raise ValidationError(
            f"Invalid address: {text} (expected IP, IP:PORT, http://IP, http://IP:PORT or a hostname)",
            field="address",
            value=text,
        )

    scheme = (match.group("scheme") or "http").lower()
    if scheme not in _SUPPORTED_SCHEMES:
        raise ValidationError(
            f"Unsupported scheme: {scheme} (only http and https are supported)",
            field="address",
            value=text,
        )

    host = match.group("host").lower()
    if _DOTTED_NUMERIC_RE.match(host) and not is_ipv4_literal(host):
        raise ValidationError(f"Invalid IPv4 address: {host}", field="address", value=text)

    port_text = match.group("port")
    port = int(port_text) if port_text else default_port
    if not 1 <= port <= 65535:
        raise ValidationError(f"Port out of range: {port}", field="port", value=text)

    return TargetAddress(scheme=scheme, host=host, port=port)


def normalize_address(raw: str | None, *, default_port: int = DEFAULT_PORT) -> str:
    """Return the canonical ``scheme://host:port`` form of operator input."""
    return parse_target_address(raw, default_port=default_port).url


def is_valid_address(raw: str | None) -> bool:
    try:
        parse_target_address(raw)
    except ValidationError:
        return False
    return True
