"""
Hostname to IP resolution cache.

One cache is created per analysis run and injected into the server
classifier, so lookups never leak across runs. Entries are never evicted:
a run is short-lived and bounded by the number of distinct hostnames it
encounters.
"""

import asyncio
import ipaddress
import logging
from typing import Any, Optional, Sequence

import dns.asyncresolver
import dns.exception

logger = logging.getLogger(__name__)


def ip_literal(hostname: str) -> Optional[str]:
    """Return the hostname itself when it already is an IP address."""
    candidate = hostname.strip("[]")
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return None


class HostnameIpCache:
    """
    Memoizes hostname -> IP lookups for the duration of a run.

    Concurrent callers asking for the same hostname share a single in-flight
    lookup, so each hostname costs at most one DNS query per run. Failed
    lookups are remembered as absent.
    """

    def __init__(
        self,
        resolver: Any = None,
        record_types: Sequence[str] = ("A", "AAAA"),
        lifetime: float = 5.0,
    ):
        """
        Initialize the cache.

        Args:
            resolver: Object with an async ``resolve(name, rdtype)`` method.
                Defaults to a dnspython async resolver using system settings.
            record_types: Record types tried in order until one answers
            lifetime: Total seconds allowed per DNS query
        """
        self._resolver = resolver
        self.record_types = tuple(record_types)
        self.lifetime = lifetime
        self._addresses: dict[str, Optional[str]] = {}
        self._pending: dict[str, asyncio.Task] = {}
        self.lookups = 0

    async def resolve(self, hostname: Optional[str]) -> Optional[str]:
        """
        Resolve a hostname, consulting the cache first.

        Args:
            hostname: Hostname to resolve

        Returns:
            IP address string, or None if it cannot be resolved
        """
        if not hostname:
            return None

        key = hostname.lower().rstrip(".")
        literal = ip_literal(key)
        if literal:
            return literal

        if key in self._addresses:
            return self._addresses[key]

        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(self._lookup(key))
            self._pending[key] = task

        # Shielded so one cancelled caller does not cancel a shared lookup
        return await asyncio.shield(task)

    def get(self, hostname: str) -> Optional[str]:
        """Return a cached address without resolving."""
        return self._addresses.get(hostname.lower().rstrip("."))

    def __contains__(self, hostname: str) -> bool:
        return hostname.lower().rstrip(".") in self._addresses

    def __len__(self) -> int:
        return len(self._addresses)

    async def _lookup(self, hostname: str) -> Optional[str]:
        self.lookups += 1
        try:
            address = await self._query(hostname)
        finally:
            self._pending.pop(hostname, None)

        self._addresses[hostname] = address
        if address:
            logger.debug(f"Resolved {hostname} -> {address}")
        else:
            logger.debug(f"Could not resolve {hostname}")
        return address

    async def _query(self, hostname: str) -> Optional[str]:
        try:
            resolver = self._get_resolver()
        except dns.exception.DNSException as e:
            logger.warning(f"DNS resolver unavailable: {e}")
            return None

        for rdtype in self.record_types:
            try:
                answer = await resolver.resolve(hostname, rdtype)
            except dns.exception.DNSException as e:
                logger.debug(f"{rdtype} lookup failed for {hostname}: {e}")
                continue

            for rdata in answer:
                return str(rdata.address)

        return None

    def _get_resolver(self) -> Any:
        if self._resolver is None:
            resolver = dns.asyncresolver.Resolver()
            resolver.lifetime = self.lifetime
            self._resolver = resolver
        return self._resolver
