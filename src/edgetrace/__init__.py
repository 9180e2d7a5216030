"""Redirect chain capture and edge/origin server classification."""

__version__ = "0.1.0"

from edgetrace.classifier import (
    ServerClassifier,
    ClassificationRule,
    HeaderSignals,
    Verdict,
    RULES,
)
from edgetrace.navigation import NavigationController
from edgetrace.scheduler import BatchScheduler
from edgetrace.aggregator import ResultAggregator, summarize_results
from edgetrace.runner import (
    RedirectChainAnalyzer,
    RunReport,
    analyze_urls,
    analyze_urls_sync,
)
from edgetrace.models import (
    AnalysisResult,
    ErrorDescriptor,
    FailureKind,
    Hop,
    NavigationState,
    RunSummary,
    ServerType,
)
from edgetrace.errors import BrowserUnavailableError, EdgetraceError
from edgetrace.config import AnalyzerConfig, ClassifierConfig, settings
from edgetrace.browser_config import BrowserConfig

from edgetrace.infrastructure import (
    BrowserSessionFactory,
    CdnRangeMatcher,
    HostnameIpCache,
)

__all__ = [
    # Core
    "ServerClassifier",
    "ClassificationRule",
    "HeaderSignals",
    "Verdict",
    "RULES",
    "NavigationController",
    "BatchScheduler",
    "ResultAggregator",
    "summarize_results",
    "RedirectChainAnalyzer",
    "RunReport",
    "analyze_urls",
    "analyze_urls_sync",
    # Models
    "AnalysisResult",
    "ErrorDescriptor",
    "FailureKind",
    "Hop",
    "NavigationState",
    "RunSummary",
    "ServerType",
    # Errors
    "BrowserUnavailableError",
    "EdgetraceError",
    # Configuration
    "AnalyzerConfig",
    "ClassifierConfig",
    "BrowserConfig",
    "settings",
    # Infrastructure
    "BrowserSessionFactory",
    "CdnRangeMatcher",
    "HostnameIpCache",
]
