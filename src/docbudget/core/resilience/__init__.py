"""Provider call resilience.

Retry-with-backoff and per-provider circuit breaking for outbound calls:
- RetryConfig and per-provider tuned configs
- Error classification for unified retry/circuit-breaker decisions
- CircuitBreaker state machine
- RetryManager owning one breaker per provider
"""

from docbudget.core.errors.resilience import (
    CircuitOpenError,
    DeadlineExceededError,
    RetryExhaustedError,
)
from docbudget.core.resilience.breaker import CircuitBreaker
from docbudget.core.resilience.classification import classify_error, extract_retry_after
from docbudget.core.resilience.config import (
    DEFAULT_RETRYABLE_STATUS_CODES,
    DEFAULT_RETRYABLE_SUBSTRINGS,
    PROVIDER_RETRY_CONFIGS,
    RetryConfig,
    get_provider_retry_config,
)
from docbudget.core.resilience.manager import RetryManager, compute_backoff_delay
from docbudget.core.resilience.models import (
    CircuitBreakerStatus,
    CircuitState,
    ErrorClassification,
    ErrorType,
    RandomSource,
    SleepFunc,
)

__all__ = [
    # Models & enums
    "CircuitState",
    "ErrorType",
    "ErrorClassification",
    "CircuitBreakerStatus",
    "SleepFunc",
    "RandomSource",
    # Config
    "RetryConfig",
    "DEFAULT_RETRYABLE_STATUS_CODES",
    "DEFAULT_RETRYABLE_SUBSTRINGS",
    "PROVIDER_RETRY_CONFIGS",
    "get_provider_retry_config",
    # Classification
    "classify_error",
    "extract_retry_after",
    # Breaker & manager
    "CircuitBreaker",
    "RetryManager",
    "compute_backoff_delay",
    # Error re-exports
    "CircuitOpenError",
    "RetryExhaustedError",
    "DeadlineExceededError",
]
