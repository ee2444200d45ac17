"""Target address normalization and local interface selection."""

from .address import TargetAddress, is_valid_address, normalize_address, parse_target_address
from .interfaces import (
    InterfaceCandidate,
    NetworkInterfaceAddress,
    callback_url,
    enumerate_ipv4_addresses,
    pick_best,
    score_candidates,
    select_callback_address,
)

__all__ = [
    "TargetAddress",
    "is_valid_address",
    "normalize_address",
    "parse_target_address",
    "InterfaceCandidate",
    "NetworkInterfaceAddress",
    "callback_url",
    "enumerate_ipv4_addresses",
    "pick_best",
    "score_candidates",
    "select_callback_address",
]
