# src/edgetrace/constants.py
"""Centralized constants for the redirect chain analyzer.

This module contains the default signal vocabularies used by the server
classifier and the run defaults. For user-configurable values, see config.py
and ClassifierConfig / AnalyzerConfig.
"""

# =============================================================================
# Edge network defaults
# =============================================================================

# Known edge network ranges (Akamai)
DEFAULT_CDN_IP_RANGES = (
    "23.192.0.0/11",
    "104.64.0.0/10",
    "184.24.0.0/13",
)

# Headers reporting whether the edge served from cache or went to origin
DEFAULT_CACHE_STATUS_HEADERS = (
    "x-cache",
    "x-cache-remote",
    "x-cache-status",
    "cf-cache-status",
)

# Substrings in a cache-status value (matched case-insensitively)
DEFAULT_CACHE_HIT_MARKERS = ("HIT",)
DEFAULT_CACHE_MISS_MARKERS = ("MISS",)

# Vendor debug headers, mostly surfaced by the Pragma debug request header
DEFAULT_VENDOR_DEBUG_HEADERS = (
    "x-akamai-request-id",
    "x-akamai-staging",
    "x-akamai-session-info",
    "x-check-cacheable",
    "x-cache-key",
    "x-true-cache-key",
    "akamai-grn",
)

# Server header tokens (lowercase substrings)
DEFAULT_CDN_SERVER_TOKENS = ("akamai", "ghost")
DEFAULT_ORIGIN_SERVER_TOKENS = ("apache",)

# =============================================================================
# Origin (AEM) conventions
# =============================================================================

# Hostname substrings whose sites follow the dispatcher/AEM conventions
DEFAULT_RECOGNIZED_HOSTNAMES = ("bmw", "mini")

# Headers only the origin dispatcher/instance emits
DEFAULT_ORIGIN_MARKER_HEADERS = ("x-dispatcher", "x-aem-instance")

# Headers that may carry origin asset paths, and the paths themselves
DEFAULT_ORIGIN_PATH_HEADERS = ("link", "baqend-tags")
DEFAULT_ORIGIN_PATH_MARKERS = ("/etc.clientlibs",)

# Server-Timing entry names used by edges to report cache state
DEFAULT_SERVER_TIMING_CDN_ENTRIES = ("cdn-cache",)

# =============================================================================
# Browser session defaults
# =============================================================================

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Asks cooperating Akamai edges to expose cache state and request ids
AKAMAI_PRAGMA_DEBUG_VALUE = (
    "akamai-x-cache-on, akamai-x-get-cache-key, "
    "akamai-x-get-request-id, akamai-x-get-true-cache-key"
)

# =============================================================================
# Run defaults
# =============================================================================

DEFAULT_CONCURRENCY_LIMIT = 5
DEFAULT_INTER_BATCH_DELAY_MS = 2000
DEFAULT_NAVIGATION_TIMEOUT_MS = 45000

# Slack on top of the browser's own navigation timeout before we give up
DEFAULT_TIMEOUT_GRACE_SECONDS = 5.0

# Chains with at least this many redirects are reported as long
DEFAULT_LONG_CHAIN_THRESHOLD = 3

# Maximum length of a normalized failure message
MAX_FAILURE_MESSAGE_LENGTH = 300

# Maximum long chains kept in a run summary
MAX_LONG_CHAINS_IN_SUMMARY = 50
