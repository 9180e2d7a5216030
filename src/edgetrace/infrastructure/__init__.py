"""
Infrastructure Package.

Provides browser session management, hostname resolution caching and edge
network range matching for redirect chain analysis.
"""

from .browser_session import (
    BrowserSession,
    BrowserSessionFactory,
    SessionFactory,
    SessionStats,
)
from .cdn_ranges import (
    CdnRangeMatcher,
    is_in_range,
    parse_ranges,
)
from .ip_cache import (
    HostnameIpCache,
    ip_literal,
)

__all__ = [
    # Browser sessions
    "BrowserSession",
    "BrowserSessionFactory",
    "SessionFactory",
    "SessionStats",
    # CDN ranges
    "CdnRangeMatcher",
    "is_in_range",
    "parse_ranges",
    # IP cache
    "HostnameIpCache",
    "ip_literal",
]
