"""
Run orchestration for redirect chain analysis.

Wires the per-run objects together: a fresh IP cache, the classifier, the
navigation controller and the batch scheduler, all inside one browser
lifetime.

    async with RedirectChainAnalyzer() as analyzer:
        report = await analyzer.run(["https://example.com"])
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from edgetrace.aggregator import results_to_dicts, summarize_results
from edgetrace.browser_config import BrowserConfig
from edgetrace.classifier import ServerClassifier
from edgetrace.config import AnalyzerConfig, ClassifierConfig, settings
from edgetrace.infrastructure.browser_session import BrowserSessionFactory
from edgetrace.infrastructure.cdn_ranges import CdnRangeMatcher
from edgetrace.infrastructure.ip_cache import HostnameIpCache
from edgetrace.logging_config import setup_logging
from edgetrace.models import AnalysisResult, RunSummary
from edgetrace.navigation import NavigationController
from edgetrace.scheduler import BatchCallback, BatchScheduler

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    """Everything a run hands to reporting collaborators."""
    results: List[AnalysisResult] = field(default_factory=list)
    summary: RunSummary = field(default_factory=RunSummary)

    def to_dict(self) -> dict:
        return {
            "results": results_to_dicts(self.results),
            "summary": self.summary.to_dict(),
        }


class RedirectChainAnalyzer:
    """Analyzes redirect chains for a list of URLs in one browser lifetime."""

    def __init__(
        self,
        config: Optional[AnalyzerConfig] = None,
        classifier_config: Optional[ClassifierConfig] = None,
        browser_config: Optional[BrowserConfig] = None,
        session_factory: Optional[BrowserSessionFactory] = None,
        on_batch_complete: Optional[BatchCallback] = None,
        resolver: Any = None,
    ):
        """
        Initialize the analyzer.

        Args:
            config: Run configuration
            classifier_config: Classifier signal vocabularies and ranges
            browser_config: Browser session configuration
            session_factory: Pre-built session factory (mostly for tests)
            on_batch_complete: Progress callback passed to the scheduler
            resolver: DNS resolver for the per-run IP cache (system resolver
                when omitted)
        """
        self.config = config or AnalyzerConfig()
        self.classifier_config = classifier_config or ClassifierConfig()
        self.browser_config = browser_config or BrowserConfig()
        self.session_factory = session_factory or BrowserSessionFactory(
            self.browser_config,
            timeout_ms=self.config.navigation_timeout_ms,
        )
        self.on_batch_complete = on_batch_complete
        self.resolver = resolver

    @classmethod
    def from_env(cls, configure_logging: bool = True) -> "RedirectChainAnalyzer":
        """Build an analyzer from environment variables and the .env file.

        The classifier configuration is read from the JSON file named by
        EDGETRACE_CLASSIFIER_CONFIG when set, otherwise from
        EDGETRACE_CLASSIFIER_* variables.

        Args:
            configure_logging: Also set up logging at the configured level
        """
        config = AnalyzerConfig.from_env()
        if settings.CLASSIFIER_CONFIG_FILE:
            classifier_config = ClassifierConfig.from_file(settings.CLASSIFIER_CONFIG_FILE)
        else:
            classifier_config = ClassifierConfig.from_env()

        if configure_logging:
            setup_logging(config, settings.LOG_FILE)

        return cls(config=config, classifier_config=classifier_config)

    async def __aenter__(self) -> "RedirectChainAnalyzer":
        await self.session_factory.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.session_factory.stop()

    def build_classifier(self) -> ServerClassifier:
        """Create a classifier with a fresh, run-scoped IP cache."""
        return ServerClassifier(
            config=self.classifier_config,
            ip_cache=HostnameIpCache(resolver=self.resolver),
            range_matcher=CdnRangeMatcher(self.classifier_config.cdn_ip_ranges),
        )

    async def run(self, urls: Sequence[str]) -> RunReport:
        """
        Analyze URLs and summarize the run.

        Args:
            urls: Seed URLs, already validated

        Returns:
            RunReport with ordered results and summary
        """
        controller = NavigationController(
            self.build_classifier(),
            config=self.config,
            wait_until=self.browser_config.wait_until,
        )
        scheduler = BatchScheduler(
            controller,
            self.session_factory,
            concurrency_limit=self.config.concurrency_limit,
            inter_batch_delay_ms=self.config.inter_batch_delay_ms,
            timeout_ms=self.config.navigation_timeout_ms,
            on_batch_complete=self.on_batch_complete,
        )

        results = await scheduler.run(urls)
        summary = summarize_results(results, self.config.long_chain_threshold)

        logger.info(
            f"Run finished: {summary.completed} completed, {summary.timed_out} timed out, "
            f"{summary.failed} failed"
        )
        return RunReport(results=results, summary=summary)


async def analyze_urls(
    urls: Sequence[str],
    config: Optional[AnalyzerConfig] = None,
    classifier_config: Optional[ClassifierConfig] = None,
    browser_config: Optional[BrowserConfig] = None,
) -> RunReport:
    """Launch a browser, analyze URLs and shut the browser down.

    Raises:
        BrowserUnavailableError: If the browser cannot be started
    """
    async with RedirectChainAnalyzer(config, classifier_config, browser_config) as analyzer:
        return await analyzer.run(urls)


def analyze_urls_sync(
    urls: Sequence[str],
    config: Optional[AnalyzerConfig] = None,
    classifier_config: Optional[ClassifierConfig] = None,
    browser_config: Optional[BrowserConfig] = None,
) -> RunReport:
    """
    Synchronous wrapper around analyze_urls.

    Convenience function for non-async contexts.
    """
    return asyncio.run(analyze_urls(urls, config, classifier_config, browser_config))
