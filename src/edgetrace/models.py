"""Data models for redirect chain analysis."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ServerType(Enum):
    """Serving tier that produced a response."""
    CDN = "cdn"
    ORIGIN = "origin"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        """Human readable name used by reports."""
        return _SERVER_LABELS[self]


_SERVER_LABELS = {
    ServerType.CDN: "Akamai",
    ServerType.ORIGIN: "Apache (AEM)",
    ServerType.UNKNOWN: "Unknown",
}


class FailureKind(Enum):
    """Why a navigation did not complete."""
    TIMEOUT = "TimeoutError"
    TOO_MANY_REDIRECTS = "TooManyRedirectsError"
    TRANSPORT = "TransportError"
    UNKNOWN = "UnknownError"


class NavigationState(Enum):
    """Lifecycle of a single navigation."""
    STARTED = "started"
    NAVIGATING = "navigating"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (
            NavigationState.COMPLETED,
            NavigationState.TIMED_OUT,
            NavigationState.FAILED,
        )


@dataclass(frozen=True)
class Hop:
    """One navigation response in a redirect chain."""

    url: str
    status_code: int
    server_type: ServerType
    elapsed_seconds: float
    matched_rule: Optional[str] = None  # Classification rule behind server_type

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status_code < 400

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "status_code": self.status_code,
            "server_type": self.server_type.value,
            "server": self.server_type.label,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "matched_rule": self.matched_rule,
        }


@dataclass(frozen=True)
class ErrorDescriptor:
    """Normalized description of a navigation failure."""

    kind: FailureKind
    message: str

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of analyzing one seed URL.

    Source and target server types are derived from the hop sequence, so
    they always agree with the first and last hop.
    """

    original_url: str
    final_url: Optional[str] = None
    final_status_code: Optional[int] = None
    hops: tuple = field(default_factory=tuple)  # tuple[Hop, ...] in arrival order
    total_elapsed_seconds: float = 0.0
    failure: Optional[ErrorDescriptor] = None
    state: NavigationState = NavigationState.COMPLETED

    @property
    def source_server_type(self) -> Optional[ServerType]:
        """Server type of the first hop, if any hop was observed."""
        return self.hops[0].server_type if self.hops else None

    @property
    def target_server_type(self) -> Optional[ServerType]:
        """Server type of the last hop, if any hop was observed."""
        return self.hops[-1].server_type if self.hops else None

    @property
    def hop_count(self) -> int:
        return len(self.hops)

    @property
    def was_redirected(self) -> bool:
        return len(self.hops) > 1

    @property
    def succeeded(self) -> bool:
        return self.failure is None

    def to_dict(self) -> dict:
        """Convert to a JSON-ready dictionary for reporting collaborators."""
        source = self.source_server_type
        target = self.target_server_type
        return {
            "original_url": self.original_url,
            "final_url": self.final_url,
            "final_status_code": self.final_status_code,
            "source_server_type": source.value if source else None,
            "target_server_type": target.value if target else None,
            "hops": [hop.to_dict() for hop in self.hops],
            "total_elapsed_seconds": round(self.total_elapsed_seconds, 3),
            "state": self.state.value,
            "failure": self.failure.to_dict() if self.failure else None,
        }


# ============================================================================
# Run Summary Models
# ============================================================================

@dataclass
class LongChain:
    """A redirect chain at or above the long chain threshold."""
    source_url: str
    final_url: Optional[str]
    hop_count: int
    servers: list = field(default_factory=list)  # server type values per hop


@dataclass
class RunSummary:
    """Aggregate statistics for one analysis run."""

    total_urls: int = 0
    completed: int = 0
    timed_out: int = 0
    failed: int = 0

    # Failures by kind value (e.g. "TimeoutError")
    failures_by_kind: dict = field(default_factory=dict)

    # Chain statistics
    redirected_urls: int = 0
    total_hops: int = 0
    avg_hops_per_url: float = 0.0
    max_chain_length: int = 0
    chains_1_hop: int = 0
    chains_2_hops: int = 0
    chains_3_plus_hops: int = 0
    long_chains: list = field(default_factory=list)

    # "cdn->origin" style source/target transitions
    server_transitions: dict = field(default_factory=dict)

    # Hops per server type value
    hops_by_server_type: dict = field(default_factory=dict)

    recommendations: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_urls": self.total_urls,
            "completed": self.completed,
            "timed_out": self.timed_out,
            "failed": self.failed,
            "failures_by_kind": dict(self.failures_by_kind),
            "redirected_urls": self.redirected_urls,
            "total_hops": self.total_hops,
            "avg_hops_per_url": self.avg_hops_per_url,
            "max_chain_length": self.max_chain_length,
            "chains_by_length": {
                "1_hop": self.chains_1_hop,
                "2_hops": self.chains_2_hops,
                "3_plus_hops": self.chains_3_plus_hops,
            },
            "long_chains": [
                {
                    "source": chain.source_url,
                    "final": chain.final_url,
                    "hops": chain.hop_count,
                    "servers": list(chain.servers),
                }
                for chain in self.long_chains
            ],
            "server_transitions": dict(self.server_transitions),
            "hops_by_server_type": dict(self.hops_by_server_type),
            "recommendations": list(self.recommendations),
        }
