"""
Server classifier for redirect chain hops.

Decides which serving tier (edge CDN or origin application server) produced
a single navigation response, using only response metadata. The decision is
an ordered rule table: each rule either returns a verdict or passes, and the
first verdict wins. Rules are ordered from the most specific, lowest false
positive signals (explicit cache status, vendor debug headers) to the most
generic ones (hostname conventions, IP ranges).

An explicit cache miss means the edge forwarded the request to origin, so
the vendor debug header and IP range rules do not claim such a hop for the edge.
For the cache-status rule itself, a miss only overrides a hit on redirects.
Server tokens and Server-Timing hits name the edge explicitly and are not
vetoed.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Mapping, NamedTuple, Optional, Sequence
from urllib.parse import urlparse

from edgetrace.config import ClassifierConfig, default_classifier_config
from edgetrace.infrastructure.cdn_ranges import CdnRangeMatcher
from edgetrace.infrastructure.ip_cache import HostnameIpCache
from edgetrace.models import ServerType

logger = logging.getLogger(__name__)


def _contains_any(value: str, markers: Sequence[str]) -> bool:
    upper = value.upper()
    return any(marker.upper() in upper for marker in markers)


def parse_server_timing(value: str) -> list[tuple[str, dict[str, str]]]:
    """Parse a Server-Timing header into (name, params) entries.

    Example:
        'cdn-cache; desc=HIT, edge; dur=1' ->
        [('cdn-cache', {'desc': 'HIT'}), ('edge', {'dur': '1'})]
    """
    entries = []
    for raw_entry in value.split(","):
        parts = [part.strip() for part in raw_entry.split(";")]
        if not parts or not parts[0]:
            continue
        params = {}
        for part in parts[1:]:
            if "=" in part:
                key, _, param_value = part.partition("=")
                params[key.strip().lower()] = param_value.strip().strip('"')
            elif part:
                params[part.lower()] = ""
        entries.append((parts[0].lower(), params))
    return entries


@dataclass(frozen=True)
class HeaderSignals:
    """Normalized view of one hop's response metadata."""

    headers: Mapping[str, str]  # lowercase names
    hostname: str
    status_code: int
    cache_status: tuple  # values of the cache-status headers present
    cache_hit: bool
    cache_miss: bool

    @classmethod
    def from_response(
        cls,
        headers: Mapping[str, str],
        url: str,
        status_code: int,
        config: ClassifierConfig,
    ) -> "HeaderSignals":
        lowered = {str(name).lower(): str(value) for name, value in (headers or {}).items()}

        cache_status = tuple(
            lowered[name.lower()]
            for name in config.cache_status_headers
            if lowered.get(name.lower())
        )
        cache_hit = any(_contains_any(v, config.cache_hit_markers) for v in cache_status)
        cache_miss = any(_contains_any(v, config.cache_miss_markers) for v in cache_status)

        try:
            hostname = (urlparse(url).hostname or "").lower()
        except ValueError:
            hostname = ""

        return cls(
            headers=lowered,
            hostname=hostname,
            status_code=status_code,
            cache_status=cache_status,
            cache_hit=cache_hit,
            cache_miss=cache_miss,
        )

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status_code < 400

    def has(self, name: str) -> bool:
        return name.lower() in self.headers

    def get(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)


class Verdict(NamedTuple):
    """Classification outcome and the rule that produced it."""
    server_type: ServerType
    rule: Optional[str]


RuleEvaluator = Callable[[HeaderSignals, "ServerClassifier"], Awaitable[Optional[ServerType]]]


@dataclass(frozen=True)
class ClassificationRule:
    """A named step of the decision chain."""
    name: str
    description: str
    evaluate: RuleEvaluator


# =============================================================================
# Rules
# =============================================================================

async def cache_status_rule(signals: HeaderSignals, classifier: "ServerClassifier") -> Optional[ServerType]:
    if not signals.cache_hit:
        return None
    if signals.is_redirect and signals.cache_miss:
        return None
    return ServerType.CDN


async def vendor_debug_rule(signals: HeaderSignals, classifier: "ServerClassifier") -> Optional[ServerType]:
    if signals.cache_miss:
        return None
    if any(signals.has(name) for name in classifier.config.vendor_debug_headers):
        return ServerType.CDN
    return None


async def server_header_rule(signals: HeaderSignals, classifier: "ServerClassifier") -> Optional[ServerType]:
    server = signals.get("server").lower()
    if not server:
        return None

    config = classifier.config
    if any(token.lower() in server for token in config.cdn_server_tokens):
        return ServerType.CDN
    if any(token.lower() in server for token in config.origin_server_tokens):
        return ServerType.ORIGIN
    return None


async def hostname_convention_rule(signals: HeaderSignals, classifier: "ServerClassifier") -> Optional[ServerType]:
    config = classifier.config
    if not signals.hostname:
        return None
    if not any(sub.lower() in signals.hostname for sub in config.recognized_hostnames):
        return None

    if any(signals.has(name) for name in config.origin_marker_headers):
        return ServerType.ORIGIN

    for name in config.origin_path_headers:
        if any(marker in signals.get(name) for marker in config.origin_path_markers):
            return ServerType.ORIGIN

    # Weak fallback: origin responses on these sites carry cache-control
    # but never a cache-status header
    if not signals.cache_status and signals.has("cache-control"):
        return ServerType.ORIGIN
    return None


async def server_timing_rule(signals: HeaderSignals, classifier: "ServerClassifier") -> Optional[ServerType]:
    value = signals.get("server-timing")
    if not value:
        return None

    config = classifier.config
    entry_names = {name.lower() for name in config.server_timing_cdn_entries}
    for name, params in parse_server_timing(value):
        if name in entry_names and _contains_any(params.get("desc", ""), config.cache_hit_markers):
            return ServerType.CDN
    return None


async def ip_range_rule(signals: HeaderSignals, classifier: "ServerClassifier") -> Optional[ServerType]:
    if signals.cache_miss or not signals.hostname:
        return None
    ip = await classifier.ip_cache.resolve(signals.hostname)
    if ip and classifier.range_matcher.is_in_range(ip):
        return ServerType.CDN
    return None


RULES: tuple = (
    ClassificationRule(
        name="cache_status",
        description="Cache-status header reports an edge cache hit",
        evaluate=cache_status_rule,
    ),
    ClassificationRule(
        name="vendor_debug_headers",
        description="Edge vendor debug headers are present",
        evaluate=vendor_debug_rule,
    ),
    ClassificationRule(
        name="server_header",
        description="Server header names an edge vendor or origin stack",
        evaluate=server_header_rule,
    ),
    ClassificationRule(
        name="hostname_convention",
        description="Recognized hostname carries origin dispatcher markers",
        evaluate=hostname_convention_rule,
    ),
    ClassificationRule(
        name="server_timing",
        description="Server-Timing reports an edge cache hit",
        evaluate=server_timing_rule,
    ),
    ClassificationRule(
        name="ip_range",
        description="Hostname resolves into a known edge network range",
        evaluate=ip_range_rule,
    ),
)


class ServerClassifier:
    """Classifies hops as CDN, ORIGIN or UNKNOWN.

    Pure apart from populating the injected IP cache.
    """

    def __init__(
        self,
        config: Optional[ClassifierConfig] = None,
        ip_cache: Optional[HostnameIpCache] = None,
        range_matcher: Optional[CdnRangeMatcher] = None,
        rules: Sequence[ClassificationRule] = RULES,
    ):
        """Initialize classifier.

        Args:
            config: Signal vocabularies and ranges
            ip_cache: Run-scoped hostname resolution cache
            range_matcher: Matcher for edge network ranges; built from
                config.cdn_ip_ranges when omitted
            rules: Ordered rule table
        """
        self.config = config or default_classifier_config
        self.ip_cache = ip_cache if ip_cache is not None else HostnameIpCache()
        self.range_matcher = range_matcher or CdnRangeMatcher(self.config.cdn_ip_ranges)
        self.rules = tuple(rules)

    @property
    def rule_names(self) -> list[str]:
        return [rule.name for rule in self.rules]

    async def explain(self, headers: Mapping[str, str], url: str, status_code: int) -> Verdict:
        """Classify a hop and report which rule decided.

        Args:
            headers: Response headers (any case)
            url: URL of the response
            status_code: HTTP status of the response

        Returns:
            Verdict with server type and deciding rule name (None for the
            UNKNOWN default)
        """
        signals = HeaderSignals.from_response(headers, url, status_code, self.config)

        for rule in self.rules:
            server_type = await rule.evaluate(signals, self)
            if server_type is not None:
                logger.debug(f"{url} [{status_code}] -> {server_type.value} ({rule.name})")
                return Verdict(server_type, rule.name)

        logger.debug(f"{url} [{status_code}] -> unknown")
        return Verdict(ServerType.UNKNOWN, None)

    async def classify(self, headers: Mapping[str, str], url: str, status_code: int) -> ServerType:
        """Classify a hop.

        Returns:
            ServerType verdict
        """
        verdict = await self.explain(headers, url, status_code)
        return verdict.server_type
