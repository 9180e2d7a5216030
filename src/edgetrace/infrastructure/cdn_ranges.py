"""CIDR membership tests for known edge network ranges."""

import ipaddress
from typing import Iterable, List, Optional, Union

from edgetrace.constants import DEFAULT_CDN_IP_RANGES

Network = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


def parse_ranges(cidrs: Iterable[str]) -> List[Network]:
    """Parse CIDR strings into network objects.

    Raises:
        ValueError: If a CIDR string is malformed
    """
    return [ipaddress.ip_network(cidr.strip(), strict=False) for cidr in cidrs]


def is_in_range(ip: Optional[str], ranges: Iterable[Union[str, Network]]) -> bool:
    """Check whether an IP falls in any of the given ranges.

    Args:
        ip: IP address string (None and malformed values never match)
        ranges: CIDR strings or parsed networks

    Returns:
        True on the first matching range
    """
    if not ip:
        return False
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return False

    for network in ranges:
        if isinstance(network, str):
            network = ipaddress.ip_network(network, strict=False)
        if addr.version == network.version and addr in network:
            return True
    return False


class CdnRangeMatcher:
    """Tests IPs against a fixed set of edge network CIDR blocks.

    Ranges are parsed once at construction.
    """

    def __init__(self, cidrs: Optional[Iterable[str]] = None):
        self.networks = parse_ranges(DEFAULT_CDN_IP_RANGES if cidrs is None else cidrs)

    def is_in_range(self, ip: Optional[str]) -> bool:
        return is_in_range(ip, self.networks)

    def matching_range(self, ip: Optional[str]) -> Optional[str]:
        """Return the first range containing the IP, for explanations."""
        for network in self.networks:
            if is_in_range(ip, (network,)):
                return str(network)
        return None

    def __len__(self) -> int:
        return len(self.networks)
