"""Error classification for retry and circuit breaker decisions.

Checks, in order: docbudget's typed errors, httpx exceptions, a
``status_code`` attribute on any error, then message fragments. Anything
unrecognised is non-retryable.
"""

import asyncio
import logging
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional

import httpx

from docbudget.core.errors import (
    AuthenticationError,
    CircuitOpenError,
    ContextWindowError,
    InvalidRequestError,
    ProviderError,
    RateLimitError,
)
from docbudget.core.resilience.config import RetryConfig
from docbudget.core.resilience.models import ErrorClassification, ErrorType

logger = logging.getLogger(__name__)

_RETRY_AFTER_TEXT = re.compile(
    r"retry[\s_-]*after\D{0,5}?(\d+(?:\.\d+)?)\s*(ms|milliseconds?|s|sec|seconds?)?",
    re.IGNORECASE,
)

_RATE_LIMIT_FRAGMENTS = ("rate limit", "too many requests")
_TIMEOUT_FRAGMENTS = ("timeout", "timed out")


def _parse_retry_after_header(value: str) -> Optional[float]:
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def _response_of(error: BaseException) -> Any:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response
    return getattr(error, "response", None)


def extract_retry_after(error: BaseException) -> Optional[float]:
    """Extract a provider-supplied retry-after hint in seconds.

    Sources, in order: a numeric ``retry_after`` attribute, a
    ``Retry-After`` header on the error's response, "retry after N" text
    in the message (``ms`` suffix converts from milliseconds).
    """
    hint = getattr(error, "retry_after", None)
    if isinstance(hint, (int, float)) and not isinstance(hint, bool):
        return max(0.0, float(hint))

    response = _response_of(error)
    headers = getattr(response, "headers", None)
    if headers is not None:
        try:
            header = headers.get("retry-after")
        except AttributeError:
            header = None
        if header:
            parsed = _parse_retry_after_header(str(header))
            if parsed is not None:
                return parsed

    match = _RETRY_AFTER_TEXT.search(str(error))
    if match:
        amount = float(match.group(1))
        unit = (match.group(2) or "s").lower()
        return amount / 1000.0 if unit.startswith("m") else amount
    return None


def _status_code_of(error: BaseException) -> Optional[int]:
    response = _response_of(error)
    code = getattr(error, "status_code", None)
    if code is None and response is not None:
        code = getattr(response, "status_code", None)
    if isinstance(code, int) and not isinstance(code, bool):
        return code
    return None


def _classify_status(code: int, error: BaseException, config: RetryConfig) -> ErrorClassification:
    if code == 429:
        return ErrorClassification(
            retryable=429 in config.retryable_status_codes,
            error_type=ErrorType.RATE_LIMIT,
            backoff_seconds=extract_retry_after(error),
            status_code=code,
        )
    if code in (401, 403):
        return ErrorClassification(retryable=False, error_type=ErrorType.AUTHENTICATION, status_code=code)
    if code in config.retryable_status_codes:
        error_type = ErrorType.SERVER_ERROR if code >= 500 else ErrorType.UNKNOWN
        if code in (408, 504):
            error_type = ErrorType.TIMEOUT
        return ErrorClassification(retryable=True, error_type=error_type, status_code=code)
    if 400 <= code < 500:
        return ErrorClassification(retryable=False, error_type=ErrorType.INVALID_REQUEST, status_code=code)
    return ErrorClassification(
        retryable=False,
        error_type=ErrorType.SERVER_ERROR if code >= 500 else ErrorType.UNKNOWN,
        status_code=code,
    )


def _classify_message(error: BaseException, config: RetryConfig) -> Optional[ErrorClassification]:
    message = str(error).lower()

    for code in sorted(config.retryable_status_codes):
        if re.search(rf"\b{code}\b", message):
            return _classify_status(code, error, config)

    for fragment in config.retryable_substrings:
        if fragment.lower() in message:
            if any(f in fragment for f in _RATE_LIMIT_FRAGMENTS):
                return ErrorClassification(
                    retryable=True,
                    error_type=ErrorType.RATE_LIMIT,
                    backoff_seconds=extract_retry_after(error),
                )
            if any(f in fragment for f in _TIMEOUT_FRAGMENTS):
                return ErrorClassification(retryable=True, error_type=ErrorType.TIMEOUT)
            return ErrorClassification(retryable=True, error_type=ErrorType.NETWORK)
    return None


def classify_error(error: BaseException, config: Optional[RetryConfig] = None) -> ErrorClassification:
    """Decide whether an error is worth retrying.

    Args:
        error: Exception raised by the wrapped operation
        config: Retryable status codes and message fragments

    Returns:
        ErrorClassification for the error
    """
    config = config or RetryConfig()

    if isinstance(error, CircuitOpenError):
        return ErrorClassification(retryable=False, error_type=ErrorType.CIRCUIT_OPEN)
    if isinstance(error, RateLimitError):
        return ErrorClassification(
            retryable=True,
            error_type=ErrorType.RATE_LIMIT,
            backoff_seconds=extract_retry_after(error),
            status_code=error.status_code,
        )
    if isinstance(error, AuthenticationError):
        return ErrorClassification(
            retryable=False, error_type=ErrorType.AUTHENTICATION, status_code=error.status_code
        )
    if isinstance(error, (InvalidRequestError, ContextWindowError)):
        return ErrorClassification(
            retryable=False, error_type=ErrorType.INVALID_REQUEST, status_code=error.status_code
        )
    if isinstance(error, ProviderError) and error.retryable is not None:
        classification = _classify_message(error, config)
        error_type = classification.error_type if classification else ErrorType.UNKNOWN
        if error.status_code is not None:
            error_type = _classify_status(error.status_code, error, config).error_type
        return ErrorClassification(
            retryable=error.retryable,
            error_type=error_type,
            backoff_seconds=extract_retry_after(error) if error_type == ErrorType.RATE_LIMIT else None,
            status_code=error.status_code,
        )

    if isinstance(error, httpx.TimeoutException):
        return ErrorClassification(retryable=True, error_type=ErrorType.TIMEOUT)
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return ErrorClassification(retryable=True, error_type=ErrorType.TIMEOUT)
    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return ErrorClassification(retryable=True, error_type=ErrorType.NETWORK)

    code = _status_code_of(error)
    if code is not None:
        return _classify_status(code, error, config)

    classification = _classify_message(error, config)
    if classification is not None:
        return classification

    return ErrorClassification(retryable=False, error_type=ErrorType.UNKNOWN)
