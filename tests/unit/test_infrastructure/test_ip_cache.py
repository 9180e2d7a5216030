"""Unit tests for HostnameIpCache."""

import asyncio

import pytest

pytest_plugins = ('pytest_asyncio',)

from edgetrace.infrastructure.ip_cache import HostnameIpCache, ip_literal

from fakes import FakeResolver


class TestIpLiteral:
    """Tests for IP literal detection."""

    def test_ipv4(self):
        assert ip_literal("23.192.0.1") == "23.192.0.1"

    def test_bracketed_ipv6(self):
        assert ip_literal("[2001:db8::1]") == "2001:db8::1"

    def test_hostname(self):
        assert ip_literal("www.example.com") is None


class TestHostnameIpCache:
    """Tests for HostnameIpCache."""

    @pytest.fixture
    def resolver(self):
        """Create a resolver with a small artificial delay."""
        return FakeResolver({"www.example.com": "23.200.1.1"}, delay=0.01)

    @pytest.mark.asyncio
    async def test_resolve(self, resolver):
        """Test that a resolved address is returned and cached."""
        cache = HostnameIpCache(resolver=resolver)

        assert await cache.resolve("www.example.com") == "23.200.1.1"
        assert "www.example.com" in cache
        assert cache.get("WWW.EXAMPLE.COM") == "23.200.1.1"
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_one_lookup_per_hostname(self, resolver):
        """Test that repeated lookups hit the cache."""
        cache = HostnameIpCache(resolver=resolver)

        for _ in range(3):
            await cache.resolve("www.example.com")
        await cache.resolve("WWW.Example.com.")

        assert cache.lookups == 1
        assert resolver.queries == [("www.example.com", "A")]

    @pytest.mark.asyncio
    async def test_concurrent_lookups_shared(self, resolver):
        """Test that concurrent callers share one in-flight lookup."""
        cache = HostnameIpCache(resolver=resolver)

        results = await asyncio.gather(*(cache.resolve("www.example.com") for _ in range(10)))

        assert results == ["23.200.1.1"] * 10
        assert cache.lookups == 1
        assert len(resolver.queries) == 1

    @pytest.mark.asyncio
    async def test_failed_lookup_cached(self, resolver):
        """Test that unresolvable hostnames are remembered as absent."""
        cache = HostnameIpCache(resolver=resolver)

        assert await cache.resolve("missing.example.com") is None
        assert await cache.resolve("missing.example.com") is None

        assert cache.lookups == 1
        # A then AAAA on the first and only lookup
        assert resolver.queries == [
            ("missing.example.com", "A"),
            ("missing.example.com", "AAAA"),
        ]
        assert "missing.example.com" in cache

    @pytest.mark.asyncio
    async def test_ip_literal_not_resolved(self, resolver):
        """Test that IP hosts skip DNS."""
        cache = HostnameIpCache(resolver=resolver)

        assert await cache.resolve("104.64.0.1") == "104.64.0.1"
        assert resolver.queries == []
        assert cache.lookups == 0

    @pytest.mark.asyncio
    async def test_empty_hostname(self, resolver):
        """Test that empty hostnames resolve to nothing."""
        cache = HostnameIpCache(resolver=resolver)

        assert await cache.resolve("") is None
        assert await cache.resolve(None) is None
        assert resolver.queries == []

    @pytest.mark.asyncio
    async def test_caches_are_independent(self, resolver):
        """Test that a new cache starts empty."""
        first = HostnameIpCache(resolver=resolver)
        await first.resolve("www.example.com")

        second = HostnameIpCache(resolver=resolver)
        assert "www.example.com" not in second
        await second.resolve("www.example.com")

        assert len(resolver.queries) == 2
