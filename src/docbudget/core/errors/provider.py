"""Provider call error classes.

Raised by (or on behalf of) generative-text providers. The retry manager
classifies these to decide between immediate re-raise and backoff.
"""

from typing import Optional


class ProviderError(RuntimeError):
    """Base exception for provider call errors.

    Attributes:
        provider: Provider identifier that raised the error
        status_code: HTTP-like status code, if known
        retryable: Explicit retryability hint; None defers to classification
    """

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        retryable: Optional[bool] = None,
    ):
        self.provider = provider
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(message)


class ProviderCallError(ProviderError):
    """Generic failure of an outbound provider call.

    Attributes:
        retry_after: Provider-supplied hint (seconds) before retrying
    """

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        retryable: Optional[bool] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message, provider=provider, status_code=status_code, retryable=retryable)
        self.retry_after = retry_after


class RateLimitError(ProviderCallError):
    """Provider rejected the call because of rate limiting (HTTP 429)."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        provider: Optional[str] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(
            message,
            provider=provider,
            status_code=429,
            retryable=True,
            retry_after=retry_after,
        )


class AuthenticationError(ProviderError):
    """Credentials were rejected. Never retried."""

    def __init__(
        self,
        message: str = "Authentication failed",
        *,
        provider: Optional[str] = None,
        status_code: int = 401,
    ):
        super().__init__(message, provider=provider, status_code=status_code, retryable=False)


class InvalidRequestError(ProviderError):
    """The request itself is malformed. Never retried."""

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        param: Optional[str] = None,
    ):
        super().__init__(message, provider=provider, status_code=400, retryable=False)
        self.param = param


class ContextWindowError(ProviderError):
    """Raised when a prompt exceeds the model's context window limit.

    Attributes:
        prompt_tokens: Estimated tokens in the prompt (if known)
        max_tokens: Maximum context window size (if known)
        truncation_needed: How many tokens need to be removed
    """

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        prompt_tokens: Optional[int] = None,
        max_tokens: Optional[int] = None,
    ):
        super().__init__(message, provider=provider, status_code=400, retryable=False)
        self.prompt_tokens = prompt_tokens
        self.max_tokens = max_tokens
        self.truncation_needed = (prompt_tokens - max_tokens) if prompt_tokens and max_tokens else None
