"""
Navigation controller for redirect chain capture.

Drives one isolated browser session per seed URL, records every main-frame
navigation response as a hop, and turns the outcome into an AnalysisResult.
Failures never escape: timeouts, redirect loops and transport errors are
attached to the result together with whatever hops were observed.
"""

import asyncio
import logging
import time
from typing import Any, List, NamedTuple, Optional, Tuple

from edgetrace.classifier import ServerClassifier
from edgetrace.config import AnalyzerConfig
from edgetrace.errors import BrowserUnavailableError, describe_failure
from edgetrace.infrastructure.browser_session import SessionFactory
from edgetrace.logging_config import log_context
from edgetrace.models import (
    AnalysisResult,
    ErrorDescriptor,
    FailureKind,
    Hop,
    NavigationState,
    ServerType,
)

logger = logging.getLogger(__name__)


def dedupe_consecutive(hops: List[Hop]) -> List[Hop]:
    """Keep only the first hop of each run of hops to the same URL."""
    deduped: List[Hop] = []
    for hop in hops:
        if deduped and deduped[-1].url == hop.url:
            continue
        deduped.append(hop)
    return deduped


class _PendingHop(NamedTuple):
    task: asyncio.Task
    url: str
    status_code: int
    elapsed: float


class HopRecorder:
    """
    Collects navigation responses from a page in arrival order.

    The response listener runs synchronously, so arrival order, URL, status
    and elapsed time are fixed the moment a response is seen. Header retrieval
    and classification run as tasks that are awaited by ``collect()``.
    """

    def __init__(self, classifier: ServerClassifier, start_time: float):
        """
        Args:
            classifier: Server classifier applied to every hop
            start_time: ``time.monotonic()`` reading taken when navigation began
        """
        self._classifier = classifier
        self._start_time = start_time
        self._pending: List[_PendingHop] = []
        self._accepting = True

    def on_response(self, response: Any) -> None:
        """Page 'response' event handler."""
        if not self._accepting:
            return

        try:
            request = response.request
            if not request.is_navigation_request():
                return
            if request.frame.parent_frame is not None:
                return  # iframe navigation
            url = response.url
            status = response.status
        except Exception:
            return  # e.g. service worker responses have no frame

        elapsed = time.monotonic() - self._start_time
        task = asyncio.ensure_future(self._build_hop(response, url, status, elapsed))
        self._pending.append(_PendingHop(task, url, status, elapsed))

    async def _build_hop(self, response: Any, url: str, status: int, elapsed: float) -> Hop:
        try:
            headers = await response.all_headers()
        except Exception as e:
            logger.debug(f"Falling back to provisional headers for {url}: {e}")
            headers = dict(response.headers)

        try:
            verdict = await self._classifier.explain(headers, url, status)
        except Exception as e:
            logger.warning(f"Classification failed for {url}: {e}")
            return Hop(url=url, status_code=status, server_type=ServerType.UNKNOWN,
                       elapsed_seconds=elapsed)

        return Hop(
            url=url,
            status_code=status,
            server_type=verdict.server_type,
            elapsed_seconds=elapsed,
            matched_rule=verdict.rule,
        )

    def stop(self) -> None:
        """Ignore responses arriving from now on."""
        self._accepting = False

    def cancel(self) -> None:
        self.stop()
        for entry in self._pending:
            entry.task.cancel()

    @property
    def observed(self) -> int:
        return len(self._pending)

    async def collect(self, timeout: Optional[float] = None) -> Tuple[List[Hop], bool]:
        """
        Wait for pending hops and return them in arrival order.

        Hops still unclassified when ``timeout`` expires are cancelled and
        reported as UNKNOWN with the URL and status seen on arrival.

        Returns:
            (hops, incomplete) where ``incomplete`` is True if any hop had to
            be cancelled
        """
        if not self._pending:
            return [], False

        try:
            done, unfinished = await asyncio.wait(
                [entry.task for entry in self._pending], timeout=timeout
            )
        except asyncio.CancelledError:
            self.cancel()
            raise
        for task in unfinished:
            task.cancel()

        hops: List[Hop] = []
        for entry in self._pending:
            task = entry.task
            if task in done and not task.cancelled() and task.exception() is None:
                hops.append(task.result())
            else:
                hops.append(Hop(
                    url=entry.url,
                    status_code=entry.status_code,
                    server_type=ServerType.UNKNOWN,
                    elapsed_seconds=entry.elapsed,
                ))
        return hops, bool(unfinished)


class NavigationController:
    """
    Analyzes the redirect chain of one URL per call.

    State machine: STARTED -> NAVIGATING -> COMPLETED | TIMED_OUT | FAILED
    """

    def __init__(
        self,
        classifier: ServerClassifier,
        config: Optional[AnalyzerConfig] = None,
        wait_until: str = "domcontentloaded",
    ):
        """
        Initialize the controller.

        Args:
            classifier: Server classifier applied to every hop
            config: Run configuration (timeouts, de-duplication)
            wait_until: Navigation completion signal; DOM content is enough
                since subresources are irrelevant to redirect capture
        """
        self.classifier = classifier
        self.config = config or AnalyzerConfig()
        self.wait_until = wait_until

    async def analyze(
        self,
        session_factory: SessionFactory,
        url: str,
        timeout_ms: Optional[int] = None,
    ) -> AnalysisResult:
        """
        Navigate to a URL and capture its redirect chain.

        Args:
            session_factory: Source of isolated browser sessions
            url: Seed URL
            timeout_ms: Navigation timeout in milliseconds (defaults to the
                configured one)

        Returns:
            AnalysisResult; failures are reported in ``failure``

        Raises:
            BrowserUnavailableError: If no browser session can be provided
            ValueError: If timeout_ms is not positive
        """
        with log_context(url=url):
            return await self._analyze(session_factory, url, timeout_ms)

    async def _analyze(
        self,
        session_factory: SessionFactory,
        url: str,
        timeout_ms: Optional[int],
    ) -> AnalysisResult:
        if timeout_ms is None:
            timeout_ms = self.config.navigation_timeout_ms
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")

        start_time = time.monotonic()
        deadline = start_time + timeout_ms / 1000 + self.config.timeout_grace_seconds
        state = NavigationState.STARTED
        hops: List[Hop] = []
        final_url: Optional[str] = None
        failure: Optional[ErrorDescriptor] = None

        logger.info(f"Analyzing: {url}")

        try:
            async with session_factory.open_session() as session:
                page = session.page
                recorder = HopRecorder(self.classifier, start_time)
                page.on("response", recorder.on_response)

                state = NavigationState.NAVIGATING
                try:
                    await self._navigate(page, url, timeout_ms)
                    final_url = page.url
                    state = NavigationState.COMPLETED
                except BrowserUnavailableError:
                    raise
                except Exception as e:
                    failure = describe_failure(e, timeout_ms)
                except BaseException:
                    recorder.cancel()
                    raise
                finally:
                    recorder.stop()
                    self._detach(page, recorder)

                # Header retrieval gets whatever is left of the navigation
                # budget, and at least the grace period
                budget = max(deadline - time.monotonic(), self.config.timeout_grace_seconds)
                hops, incomplete = await recorder.collect(timeout=budget)
                if incomplete:
                    logger.warning(
                        f"Header collection for {url} exceeded {budget:.2f}s; "
                        f"unfinished hops reported as unknown"
                    )
                    if failure is None:
                        failure = describe_failure(asyncio.TimeoutError(), timeout_ms)
        except BrowserUnavailableError:
            raise
        except Exception as e:
            # Session could not be opened or closed cleanly
            if failure is None:
                failure = describe_failure(e, timeout_ms)

        # Taken before de-duplication, which keeps the first hop of a run
        final_status_code = hops[-1].status_code if hops else None
        if self.config.dedupe_consecutive_hops:
            hops = dedupe_consecutive(hops)

        if failure is not None:
            state = (
                NavigationState.TIMED_OUT
                if failure.kind == FailureKind.TIMEOUT
                else NavigationState.FAILED
            )
            final_url = hops[-1].url if hops else None

        total_elapsed = time.monotonic() - start_time
        result = AnalysisResult(
            original_url=url,
            final_url=final_url,
            final_status_code=final_status_code,
            hops=tuple(hops),
            total_elapsed_seconds=total_elapsed,
            failure=failure,
            state=state,
        )

        if failure:
            logger.warning(
                f"Navigation {state.value} for {url}: {failure.kind.value}: "
                f"{failure.message} ({len(hops)} hops captured)"
            )
        else:
            logger.info(
                f"Analysis complete: {url} -> {final_url} "
                f"({len(hops)} hops, time={total_elapsed:.2f}s)"
            )

        return result

    async def _navigate(self, page: Any, url: str, timeout_ms: int) -> None:
        """Navigate, bounded by both the engine timeout and an outer guard."""
        guard_seconds = timeout_ms / 1000 + self.config.timeout_grace_seconds
        await asyncio.wait_for(
            page.goto(url, wait_until=self.wait_until, timeout=timeout_ms),
            timeout=guard_seconds,
        )

    @staticmethod
    def _detach(page: Any, recorder: HopRecorder) -> None:
        try:
            page.remove_listener("response", recorder.on_response)
        except Exception as e:
            logger.debug(f"Could not detach response listener: {e}")
