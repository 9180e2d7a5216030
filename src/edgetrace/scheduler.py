"""
Batch scheduler for redirect chain analysis.

Splits the URL list into fixed-size windows. All navigations of a window run
concurrently and the whole window settles before the next one starts, with a
cooldown between windows to stay below upstream rate limits. The window size
bounds peak resource usage to one browser session per in-flight URL.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from edgetrace.aggregator import ResultAggregator
from edgetrace.constants import (
    DEFAULT_CONCURRENCY_LIMIT,
    DEFAULT_INTER_BATCH_DELAY_MS,
    DEFAULT_NAVIGATION_TIMEOUT_MS,
)
from edgetrace.errors import BrowserUnavailableError, describe_failure
from edgetrace.infrastructure.browser_session import SessionFactory
from edgetrace.logging_config import log_context
from edgetrace.models import AnalysisResult, FailureKind, NavigationState
from edgetrace.navigation import NavigationController

logger = logging.getLogger(__name__)

BatchCallback = Callable[[int, int, List[AnalysisResult]], None]


def partition(urls: Sequence[str], size: int) -> List[List[str]]:
    """Split URLs into consecutive windows of at most ``size`` entries."""
    if size < 1:
        raise ValueError(f"Window size must be at least 1, got {size}")
    return [list(urls[i:i + size]) for i in range(0, len(urls), size)]


class BatchScheduler:
    """
    Runs navigations in sequential, internally concurrent windows.

    Usage:
        scheduler = BatchScheduler(controller, factory, concurrency_limit=5)
        results = await scheduler.run(urls)
    """

    def __init__(
        self,
        controller: NavigationController,
        session_factory: SessionFactory,
        concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT,
        inter_batch_delay_ms: int = DEFAULT_INTER_BATCH_DELAY_MS,
        timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_batch_complete: Optional[BatchCallback] = None,
    ):
        """
        Initialize scheduler.

        Args:
            controller: Navigation controller run for every URL
            session_factory: Source of isolated browser sessions
            concurrency_limit: Maximum URLs in flight per window
            inter_batch_delay_ms: Cooldown between windows
            timeout_ms: Per-navigation timeout
            sleep: Coroutine used for the cooldown
            on_batch_complete: Called with (batch_number, total_batches,
                batch_results) after each window settles
        """
        if concurrency_limit < 1:
            raise ValueError(f"concurrency_limit must be at least 1, got {concurrency_limit}")
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")

        self.controller = controller
        self.session_factory = session_factory
        self.concurrency_limit = concurrency_limit
        self.inter_batch_delay_ms = inter_batch_delay_ms
        self.timeout_ms = timeout_ms
        self._sleep = sleep
        self._on_batch_complete = on_batch_complete
        self.batches_run = 0

    async def run(self, urls: Sequence[str]) -> List[AnalysisResult]:
        """
        Analyze all URLs.

        Args:
            urls: Seed URLs, already validated

        Returns:
            One AnalysisResult per URL, in input order

        Raises:
            BrowserUnavailableError: If the browser cannot serve sessions
        """
        windows = partition(urls, self.concurrency_limit)
        total_batches = len(windows)
        aggregator = ResultAggregator(expected=len(urls))

        logger.info(
            f"Total URLs to process: {len(urls)} "
            f"(batch size = {self.concurrency_limit}, delay = {self.inter_batch_delay_ms}ms)"
        )

        offset = 0
        for batch_number, window in enumerate(windows, start=1):
            logger.info(f"Processing batch {batch_number}/{total_batches} ({len(window)} URLs)...")

            with log_context(batch=f"{batch_number}/{total_batches}"):
                batch_results = await self._run_window(window)
            aggregator.extend(offset, batch_results)
            offset += len(window)
            self.batches_run += 1

            if self._on_batch_complete:
                self._on_batch_complete(batch_number, total_batches, batch_results)

            if batch_number < total_batches and self.inter_batch_delay_ms > 0:
                logger.info(f"Waiting {self.inter_batch_delay_ms}ms...")
                await self._sleep(self.inter_batch_delay_ms / 1000)

        logger.info("All batches complete")
        return aggregator.results()

    async def _run_window(self, window: List[str]) -> List[AnalysisResult]:
        """Run one window and wait for every navigation to settle."""
        outcomes = await asyncio.gather(
            *(self.controller.analyze(self.session_factory, url, self.timeout_ms) for url in window),
            return_exceptions=True,
        )

        results: List[AnalysisResult] = []
        fatal: Optional[BaseException] = None
        for url, outcome in zip(window, outcomes):
            if isinstance(outcome, AnalysisResult):
                results.append(outcome)
                continue

            if isinstance(outcome, BrowserUnavailableError) and fatal is None:
                fatal = outcome
            elif isinstance(outcome, asyncio.CancelledError):
                raise outcome
            else:
                logger.error(f"Unexpected error analyzing {url}: {outcome}")

            failure = describe_failure(outcome, self.timeout_ms)
            results.append(AnalysisResult(
                original_url=url,
                failure=failure,
                state=(
                    NavigationState.TIMED_OUT
                    if failure.kind == FailureKind.TIMEOUT
                    else NavigationState.FAILED
                ),
            ))

        if fatal is not None:
            raise fatal
        return results
