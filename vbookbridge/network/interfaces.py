"""Local interface enumeration and callback address selection.

The runtime app has to dial back into the local file bridge, so the advertised address
must be reachable from its network. Candidates are scored: private/LAN addresses first,
then addresses sharing leading octets with the target host. Weights are tunable; only
the relative ordering matters.
"""

from __future__ import annotations

import ipaddress
import socket
from dataclasses import dataclass
from typing import Iterable

import psutil
from loguru import logger

from vbookbridge.network.address import TargetAddress
from vbookbridge.utils.exceptions import ResolutionError

PRIVATE_NETWORKS = (
    ipaddress.IPv4Network("10.0.0.0/8"),
    ipaddress.IPv4Network("172.16.0.0/12"),
    ipaddress.IPv4Network("192.168.0.0/16"),
)


@dataclass(frozen=True, slots=True)
class InterfaceCandidate:
    """A raw IPv4 address bound to a named local interface."""

    interface: str
    ip: str


@dataclass(frozen=True, slots=True)
class NetworkInterfaceAddress:
    """A scored callback candidate."""

    interface: str
    ip: str
    is_private: bool
    prefix_match: bool
    score: int


def is_private_ipv4(ip: str) -> bool:
    addr = ipaddress.IPv4Address(ip)
    return any(addr in net for net in PRIVATE_NETWORKS)


def enumerate_ipv4_addresses(skip_patterns: Iterable[str] = ()) -> list[InterfaceCandidate]:
    """Return non-loopback IPv4 addresses of local interfaces, in enumeration order."""
    patterns = [p.lower() for p in skip_patterns if p]
    rows: list[InterfaceCandidate] = []
    for name, addrs in psutil.net_if_addrs().items():
        lowered = name.lower()
        if any(p in lowered for p in patterns):
            logger.debug(f"Skipping virtual interface {name}")
            continue
        for addr in addrs:
            if addr.family != socket.AF_INET or not addr.address:
                continue
            try:
                ip = ipaddress.IPv4Address(addr.address)
            except ValueError:
                continue
            if ip.is_loopback:
                continue
            rows.append(InterfaceCandidate(interface=name, ip=str(ip)))
    return rows


def score_candidates(
    target: TargetAddress,
    candidates: Iterable[InterfaceCandidate],
    *,
    prefix_octets: int = 2,
    private_weight: int = 10,
    prefix_weight: int = 5,
) -> list[NetworkInterfaceAddress]:
    """Score every candidate against the target host; input order is preserved."""
    prefix = target.host_prefix(prefix_octets)
    scored: list[NetworkInterfaceAddress] = []
    for cand in candidates:
        if ipaddress.IPv4Address(cand.ip).is_loopback:
            continue
        private = is_private_ipv4(cand.ip)
        matches = bool(prefix) and cand.ip.startswith(prefix)
        score = (private_weight if private else 0) + (prefix_weight if matches else 0)
        scored.append(
            NetworkInterfaceAddress(
                interface=cand.interface,
                ip=cand.ip,
                is_private=private,
                prefix_match=matches,
                score=score,
            )
        )
    return scored


def pick_best(scored: list[NetworkInterfaceAddress]) -> NetworkInterfaceAddress:
    """Highest score wins; on a tie the earlier row stays."""
    best = scored[0]
    for row in scored[1:]:
        if row.score > best.score:
            best = row
    return best


def select_callback_address(
    target: TargetAddress,
    candidates: Iterable[InterfaceCandidate],
    *,
    prefix_octets: int = 2,
    private_weight: int = 10,
    prefix_weight: int = 5,
) -> NetworkInterfaceAddress:
    """Pick the highest-scoring candidate; ties go to the first one enumerated."""
    scored = score_candidates(
        target,
        candidates,
        prefix_octets=prefix_octets,
        private_weight=private_weight,
        prefix_weight=prefix_weight,
    )
    if not scored:
        raise ResolutionError("No suitable network interface found (no non-loopback IPv4 address)", target.host)
    best = pick_best(scored)
    logger.debug(f"Selected callback address {best.ip} on {best.interface} (score {best.score})")
    return best


def callback_url(ip: str, port: int) -> str:
    return f"http://{ip}:{port}"
