"""Tests for error classification and retry-after extraction."""

import asyncio

import httpx
import pytest

from docbudget.core.errors import (
    AuthenticationError,
    CircuitOpenError,
    ContextWindowError,
    ProviderCallError,
    RateLimitError,
)
from docbudget.core.resilience import ErrorType, RetryConfig, classify_error, extract_retry_after


def _status_error(status_code, headers=None):
    request = httpx.Request("POST", "https://api.example.com/v1/generate")
    response = httpx.Response(status_code, headers=headers, request=request)
    return httpx.HTTPStatusError(f"HTTP {status_code}", request=request, response=response)


class TestClassifyError:
    """Tests for classify_error."""

    def test_rate_limit_error(self):
        """RateLimitError is retryable and carries its hint."""
        classification = classify_error(RateLimitError(retry_after=12.0))

        assert classification.retryable is True
        assert classification.error_type == ErrorType.RATE_LIMIT
        assert classification.backoff_seconds == 12.0

    def test_authentication_not_retryable(self):
        """Authentication failures are never retried."""
        classification = classify_error(AuthenticationError())

        assert classification.retryable is False
        assert classification.error_type == ErrorType.AUTHENTICATION

    def test_context_window_not_retryable(self):
        """An oversized prompt is an invalid request."""
        classification = classify_error(ContextWindowError("prompt too long"))
        assert classification.retryable is False
        assert classification.error_type == ErrorType.INVALID_REQUEST

    def test_circuit_open_not_retryable(self):
        """A fast-fail from an open breaker is not retried."""
        assert classify_error(CircuitOpenError("open")).error_type == ErrorType.CIRCUIT_OPEN

    @pytest.mark.parametrize("status_code", [500, 502, 503])
    def test_server_errors_retryable(self, status_code):
        """5xx status codes are transient."""
        classification = classify_error(ProviderCallError("upstream failed", status_code=status_code))

        assert classification.retryable is True
        assert classification.error_type == ErrorType.SERVER_ERROR
        assert classification.status_code == status_code

    def test_explicit_retryable_flag_wins(self):
        """An explicit retryable hint overrides the status code."""
        classification = classify_error(ProviderCallError("bad gateway", status_code=502, retryable=False))
        assert classification.retryable is False

    def test_client_error_not_retryable(self):
        """4xx status codes other than 429 are invalid requests."""
        classification = classify_error(ProviderCallError("bad request", status_code=400))
        assert classification.retryable is False
        assert classification.error_type == ErrorType.INVALID_REQUEST

    def test_httpx_status_error(self):
        """The status code is read from an httpx response."""
        classification = classify_error(_status_error(429, {"Retry-After": "3"}))

        assert classification.retryable is True
        assert classification.error_type == ErrorType.RATE_LIMIT
        assert classification.backoff_seconds == 3.0

    def test_httpx_transport_errors(self):
        """Timeouts and connection failures are retryable."""
        assert classify_error(httpx.ReadTimeout("read timed out")).error_type == ErrorType.TIMEOUT
        assert classify_error(httpx.ConnectError("refused")).error_type == ErrorType.NETWORK
        assert classify_error(asyncio.TimeoutError()).retryable is True

    @pytest.mark.parametrize(
        "message,error_type",
        [
            ("socket hang up", ErrorType.NETWORK),
            ("ECONNRESET while reading", ErrorType.NETWORK),
            ("request timed out", ErrorType.TIMEOUT),
            ("Too Many Requests", ErrorType.RATE_LIMIT),
            ("upstream returned 503", ErrorType.SERVER_ERROR),
        ],
    )
    def test_message_fragments(self, message, error_type):
        """Plain errors are classified from their message."""
        classification = classify_error(RuntimeError(message))
        assert classification.retryable is True
        assert classification.error_type == error_type

    def test_unknown_error_not_retryable(self):
        """Unrecognised errors propagate without retry."""
        classification = classify_error(ValueError("bad input"))
        assert classification.retryable is False
        assert classification.error_type == ErrorType.UNKNOWN

    def test_configurable_status_codes(self):
        """Retryable status codes come from the config."""
        config = RetryConfig(retryable_status_codes=frozenset({409}))
        assert classify_error(ProviderCallError("conflict", status_code=409), config).retryable is True
        assert classify_error(ProviderCallError("unavailable", status_code=503), config).retryable is False


class TestExtractRetryAfter:
    """Tests for extract_retry_after."""

    def test_attribute(self):
        """A numeric retry_after attribute wins."""
        assert extract_retry_after(ProviderCallError("x", retry_after=4)) == 4.0

    def test_header(self):
        """The Retry-After header is read from the response."""
        assert extract_retry_after(_status_error(429, {"Retry-After": "2.5"})) == 2.5

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("Rate limited, retry after 20 seconds", 20.0),
            ("retry-after: 1500ms", 1.5),
            ("please retry_after 3", 3.0),
        ],
    )
    def test_message_text(self, message, expected):
        """Hints embedded in the message are parsed."""
        assert extract_retry_after(RuntimeError(message)) == pytest.approx(expected)

    def test_no_hint(self):
        """No hint yields None."""
        assert extract_retry_after(RuntimeError("service overloaded")) is None
