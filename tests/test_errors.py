# tests/test_errors.py
"""Tests for navigation failure classification."""

import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from edgetrace.errors import (
    BrowserUnavailableError,
    EdgetraceError,
    classify_exception,
    describe_failure,
    normalize_message,
)
from edgetrace.models import FailureKind


class TestClassifyException:
    """Tests for mapping exceptions to failure kinds."""

    @pytest.mark.parametrize("exc", [
        PlaywrightTimeoutError("Timeout 45000ms exceeded."),
        asyncio.TimeoutError(),
    ])
    def test_timeouts(self, exc):
        """Test engine and guard timeouts."""
        assert classify_exception(exc) == FailureKind.TIMEOUT

    @pytest.mark.parametrize("message", [
        "net::ERR_TOO_MANY_REDIRECTS at https://example.com/",
        "NS_ERROR_REDIRECT_LOOP",
    ])
    def test_too_many_redirects(self, message):
        """Test redirect loop errors from Chromium and Firefox."""
        assert classify_exception(PlaywrightError(message)) == FailureKind.TOO_MANY_REDIRECTS

    @pytest.mark.parametrize("message", [
        "net::ERR_NAME_NOT_RESOLVED at https://nope.invalid/",
        "net::ERR_CONNECTION_REFUSED at https://localhost:1/",
        "net::ERR_CERT_AUTHORITY_INVALID at https://self-signed.example/",
        "NS_ERROR_UNKNOWN_HOST",
    ])
    def test_transport(self, message):
        """Test DNS, connection and TLS errors."""
        assert classify_exception(PlaywrightError(message)) == FailureKind.TRANSPORT

    def test_unknown(self):
        """Test anything else."""
        assert classify_exception(RuntimeError("Target page crashed")) == FailureKind.UNKNOWN


class TestNormalizeMessage:
    """Tests for engine message normalization."""

    def test_strips_call_log_and_prefix(self):
        """Test removal of the API prefix and call log."""
        message = (
            "Page.goto: net::ERR_CONNECTION_RESET at https://example.com/\n"
            "Call log:\n"
            "  - navigating to \"https://example.com/\", waiting until \"domcontentloaded\""
        )

        assert normalize_message(message) == "net::ERR_CONNECTION_RESET at https://example.com/"

    def test_truncates(self):
        """Test long messages are cut to the limit."""
        result = normalize_message("x" * 500, limit=50)

        assert len(result) == 50
        assert result.endswith("...")

    def test_empty(self):
        """Test empty messages."""
        assert normalize_message("") == ""


class TestDescribeFailure:
    """Tests for ErrorDescriptor construction."""

    def test_timeout_message(self):
        """Test that timeouts report the configured limit."""
        descriptor = describe_failure(asyncio.TimeoutError(), timeout_ms=45000)

        assert descriptor.kind == FailureKind.TIMEOUT
        assert descriptor.message == "Navigation timed out after 45s"

    def test_timeout_without_limit(self):
        """Test timeout message without a known limit."""
        assert describe_failure(asyncio.TimeoutError()).message == "Navigation timed out"

    def test_too_many_redirects_message(self):
        """Test redirect loop message."""
        descriptor = describe_failure(PlaywrightError("Page.goto: net::ERR_TOO_MANY_REDIRECTS at https://a/"))

        assert descriptor.kind == FailureKind.TOO_MANY_REDIRECTS
        assert descriptor.message == "Too many redirects"

    def test_falls_back_to_exception_name(self):
        """Test exceptions without a message."""
        assert describe_failure(RuntimeError()).message == "RuntimeError"


class TestBrowserUnavailableError:
    """Tests for the fatal browser error."""

    def test_attributes(self):
        """Test message and browser type."""
        error = BrowserUnavailableError("Executable doesn't exist", browser_type="chromium")

        assert isinstance(error, EdgetraceError)
        assert error.message == "Executable doesn't exist"
        assert error.browser_type == "chromium"
        assert str(error) == "Executable doesn't exist"
