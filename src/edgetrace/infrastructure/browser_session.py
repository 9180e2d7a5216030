"""
Browser Session Management.

This module owns the browser engine for one analysis run and hands out
isolated sessions (a fresh browser context plus one page) per analyzed URL.

Every session gets fresh cookie/cache state, the configured user agent and
the optional vendor debug request headers. Sessions are scoped resources:
``open_session()`` closes the context on every exit path.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncContextManager, AsyncIterator, Optional, Protocol

from playwright.async_api import async_playwright

from edgetrace.browser_config import BrowserConfig
from edgetrace.constants import DEFAULT_NAVIGATION_TIMEOUT_MS
from edgetrace.errors import BrowserUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class BrowserSession:
    """An isolated browser context and its single page."""
    session_id: int
    context: Any
    page: Any


class SessionFactory(Protocol):
    """Anything that can hand out scoped browser sessions."""

    def open_session(self) -> AsyncContextManager[BrowserSession]:
        ...


@dataclass
class SessionStats:
    """Current status of the session factory."""
    started: bool
    sessions_opened: int
    sessions_closed: int
    in_use: int
    close_errors: int
    uptime_seconds: float


class BrowserSessionFactory:
    """
    Launches one browser per run and opens isolated sessions on demand.

    Usage:
        async with BrowserSessionFactory(config) as factory:
            async with factory.open_session() as session:
                await session.page.goto(url)

    Features:
    - Session isolation (new browser context per URL)
    - Guaranteed release of every session
    - Graceful shutdown
    """

    def __init__(
        self,
        config: Optional[BrowserConfig] = None,
        timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS,
    ):
        """
        Initialize the session factory.

        Args:
            config: Browser configuration
            timeout_ms: Default timeout applied to every session
        """
        self.config = config or BrowserConfig()
        self.timeout_ms = timeout_ms

        self._playwright = None
        self._browser = None
        self._started = False
        self._start_time: datetime | None = None
        self._next_session_id = 0
        self._sessions_opened = 0
        self._sessions_closed = 0
        self._close_errors = 0

    async def __aenter__(self) -> "BrowserSessionFactory":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    async def start(self) -> None:
        """
        Launch the browser engine.

        Raises:
            BrowserUnavailableError: If the engine cannot be started
        """
        if self._started:
            return

        browser_type = self.config.browser_type
        logger.info(f"Launching {browser_type} browser (headless={self.config.headless})")

        try:
            self._playwright = await async_playwright().start()
            launcher = getattr(self._playwright, browser_type)

            launch_options: dict[str, Any] = {"headless": self.config.headless}
            if self.config.launch_args:
                launch_options["args"] = self.config.launch_args

            self._browser = await launcher.launch(**launch_options)
        except Exception as e:
            await self._shutdown_engine()
            raise BrowserUnavailableError(
                f"Could not start {browser_type} browser: {e}",
                browser_type=browser_type,
            ) from e

        self._start_time = datetime.now()
        self._started = True
        logger.info("Browser launched successfully")

    async def stop(self) -> None:
        """
        Shutdown the browser gracefully.
        """
        if not self._started:
            return

        await self._shutdown_engine()
        self._started = False
        logger.info(
            f"Browser closed ({self._sessions_opened} sessions opened, "
            f"{self._sessions_closed} closed)"
        )

    async def _shutdown_engine(self) -> None:
        if self._browser:
            try:
                await self._browser.close()
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")
            self._browser = None

        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping playwright: {e}")
            self._playwright = None

    async def _create_context(self) -> Any:
        """Create a new, isolated browser context."""
        context_options: dict[str, Any] = {
            "user_agent": self.config.user_agent,
            "ignore_https_errors": self.config.ignore_https_errors,
        }

        extra_headers = self.config.request_headers()
        if extra_headers:
            context_options["extra_http_headers"] = extra_headers

        if self.config.locale:
            context_options["locale"] = self.config.locale

        context = await self._browser.new_context(**context_options)
        context.set_default_timeout(self.timeout_ms)
        return context

    @asynccontextmanager
    async def open_session(self) -> AsyncIterator[BrowserSession]:
        """
        Open an isolated session, closing it on exit.

        Yields:
            BrowserSession with a fresh context and page

        Raises:
            BrowserUnavailableError: If the factory was not started
        """
        if not self._started:
            raise BrowserUnavailableError(
                "Browser not started. Call start() first.",
                browser_type=self.config.browser_type,
            )

        session_id = self._next_session_id
        self._next_session_id += 1

        context = await self._create_context()
        self._sessions_opened += 1

        try:
            page = await context.new_page()
            logger.debug(f"Opened browser session {session_id}")
            yield BrowserSession(session_id=session_id, context=context, page=page)
        finally:
            try:
                await context.close()
            except Exception as e:
                self._close_errors += 1
                logger.warning(f"Error closing session {session_id}: {e}")
            self._sessions_closed += 1
            logger.debug(f"Closed browser session {session_id}")

    def get_status(self) -> SessionStats:
        """Get current factory status."""
        uptime = 0.0
        if self._start_time:
            uptime = (datetime.now() - self._start_time).total_seconds()

        return SessionStats(
            started=self._started,
            sessions_opened=self._sessions_opened,
            sessions_closed=self._sessions_closed,
            in_use=self._sessions_opened - self._sessions_closed,
            close_errors=self._close_errors,
            uptime_seconds=uptime,
        )

    @property
    def is_started(self) -> bool:
        """Whether the browser has been launched."""
        return self._started
