"""Failure taxonomy for navigations and fatal run errors."""

import asyncio
from typing import Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from edgetrace.constants import MAX_FAILURE_MESSAGE_LENGTH
from edgetrace.models import ErrorDescriptor, FailureKind


class EdgetraceError(Exception):
    """Base class for errors raised by this package."""


class BrowserUnavailableError(EdgetraceError):
    """Raised when the browser engine cannot be started.

    This is the only failure that aborts a whole run, since no navigation
    can proceed without a browser.
    """

    def __init__(self, message: str, browser_type: Optional[str] = None):
        self.message = message
        self.browser_type = browser_type
        super().__init__(message)


# Engine error codes that mean the redirect-loop guard tripped
TOO_MANY_REDIRECTS_MARKERS = (
    "ERR_TOO_MANY_REDIRECTS",
    "NS_ERROR_REDIRECT_LOOP",
    "too many redirects",
)

# Engine error codes for DNS, connection and TLS failures
TRANSPORT_MARKERS = (
    "ERR_NAME_NOT_RESOLVED",
    "ERR_NAME_RESOLUTION_FAILED",
    "ERR_CONNECTION_REFUSED",
    "ERR_CONNECTION_RESET",
    "ERR_CONNECTION_CLOSED",
    "ERR_CONNECTION_FAILED",
    "ERR_CONNECTION_TIMED_OUT",
    "ERR_ADDRESS_UNREACHABLE",
    "ERR_INTERNET_DISCONNECTED",
    "ERR_EMPTY_RESPONSE",
    "ERR_SSL_",
    "ERR_CERT_",
    "NS_ERROR_UNKNOWN_HOST",
    "NS_ERROR_CONNECTION_REFUSED",
    "NS_ERROR_NET_RESET",
    "NS_ERROR_NET_INTERRUPT",
    "Could not resolve host",
    "Could not connect",
)


def normalize_message(message: str, limit: int = MAX_FAILURE_MESSAGE_LENGTH) -> str:
    """Reduce an engine error message to its first meaningful line.

    Playwright prefixes the failing API ("Page.goto: ") and appends a
    multi-line call log; neither belongs in a report.
    """
    text = (message or "").strip()
    if "Call log:" in text:
        text = text.split("Call log:", 1)[0]
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    text = lines[0] if lines else ""
    if text.startswith("Page.goto:"):
        text = text[len("Page.goto:"):].strip()
    if len(text) > limit:
        text = text[:limit - 3].rstrip() + "..."
    return text


def classify_exception(exc: BaseException) -> FailureKind:
    """Map an exception surfaced during navigation to a failure kind."""
    if isinstance(exc, (PlaywrightTimeoutError, asyncio.TimeoutError)):
        return FailureKind.TIMEOUT

    message = str(exc)
    if any(marker in message for marker in TOO_MANY_REDIRECTS_MARKERS):
        return FailureKind.TOO_MANY_REDIRECTS
    if any(marker in message for marker in TRANSPORT_MARKERS):
        return FailureKind.TRANSPORT
    return FailureKind.UNKNOWN


def describe_failure(exc: BaseException, timeout_ms: Optional[int] = None) -> ErrorDescriptor:
    """Convert a navigation exception into an ErrorDescriptor.

    Args:
        exc: Exception raised by the automation layer
        timeout_ms: Navigation timeout in effect, used in timeout messages

    Returns:
        ErrorDescriptor with kind and normalized message
    """
    kind = classify_exception(exc)

    if kind == FailureKind.TIMEOUT:
        if timeout_ms:
            message = f"Navigation timed out after {timeout_ms / 1000:g}s"
        else:
            message = "Navigation timed out"
    elif kind == FailureKind.TOO_MANY_REDIRECTS:
        message = "Too many redirects"
    else:
        message = normalize_message(str(exc)) or type(exc).__name__

    return ErrorDescriptor(kind=kind, message=message)
