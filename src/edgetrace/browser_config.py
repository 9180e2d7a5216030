"""
Browser configuration for redirect chain capture.

This module provides a validated Pydantic configuration model for the browser
sessions opened per analyzed URL, and pre-configured instances for common
use cases.
"""
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from edgetrace.config import settings
from edgetrace.constants import AKAMAI_PRAGMA_DEBUG_VALUE


class BrowserConfig(BaseModel):
    """
    Configuration for the Playwright browser used by BrowserSessionFactory.

    All fields are validated by Pydantic to ensure type safety and valid values.
    """

    headless: bool = Field(
        default=True,
        description="Run browser in headless mode (no visible UI)"
    )

    browser_type: Literal["chromium", "firefox", "webkit"] = Field(
        default="chromium",
        description="Browser engine to use for navigation"
    )

    user_agent: str = Field(
        default_factory=lambda: settings.USER_AGENT,
        description="Fixed user agent sent by every session"
    )

    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = Field(
        default="domcontentloaded",
        description="When to consider navigation complete"
    )

    send_debug_headers: bool = Field(
        default=True,
        description="Send vendor debug request headers so cooperating edges expose cache state"
    )

    debug_request_headers: Dict[str, str] = Field(
        default_factory=lambda: {"Pragma": AKAMAI_PRAGMA_DEBUG_VALUE},
        description="Extra request headers sent when send_debug_headers is enabled"
    )

    ignore_https_errors: bool = Field(
        default=False,
        description="Continue through invalid certificates instead of failing the navigation"
    )

    launch_args: List[str] = Field(
        default_factory=list,
        description="Additional browser launch arguments (e.g., '--disable-http2')"
    )

    locale: Optional[str] = Field(
        default=None,
        description="Browser locale for new sessions (e.g., 'en-US')"
    )

    class Config:
        """Pydantic model configuration."""
        frozen = False
        validate_assignment = True

    def request_headers(self) -> Dict[str, str]:
        """Extra HTTP headers to attach to every session."""
        if not self.send_debug_headers:
            return {}
        return dict(self.debug_request_headers)


# --- Pre-configured Instances for Common Use Cases ---

DEFAULT_CONFIG = BrowserConfig()
"""
Default configuration: headless Chromium with edge debug headers.

Best for classifying Akamai-fronted sites, where the debug headers expose
cache hit/miss details on every hop.
"""

PLAIN_CONFIG = BrowserConfig(
    send_debug_headers=False,
)
"""
Configuration without vendor debug headers.

Observes responses exactly as an ordinary visitor would receive them.
"""
