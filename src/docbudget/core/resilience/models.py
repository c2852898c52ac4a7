"""Resilience data models, enums, and protocols.

Defines the core types used across the resilience sub-package:
- CircuitState enum for breaker state
- ErrorType enum for error classification
- ErrorClassification for retry/circuit-breaker decisions
- CircuitBreakerStatus for observability
- SleepFunc / RandomSource protocols for injectable timing
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Protocol


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject calls
    HALF_OPEN = "half-open"  # Recovery window elapsed, trial calls allowed


class ErrorType(str, Enum):
    """Classification of error types for resilience decisions."""

    RATE_LIMIT = "rate_limit"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    INVALID_REQUEST = "invalid_request"
    CIRCUIT_OPEN = "circuit_open"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ErrorClassification:
    """Classification result for an error.

    Determines how the retry manager handles a specific error. Only
    retryable errors count toward the provider's circuit breaker.
    """

    retryable: bool
    error_type: ErrorType = ErrorType.UNKNOWN
    backoff_seconds: Optional[float] = None
    status_code: Optional[int] = None


@dataclass(frozen=True)
class CircuitBreakerStatus:
    """Snapshot of one provider's circuit breaker."""

    provider: str
    state: CircuitState
    failures: int
    last_failure_time: Optional[datetime]
    retry_in: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "state": self.state.value,
            "failures": self.failures,
            "last_failure_time": self.last_failure_time.isoformat() if self.last_failure_time else None,
            "retry_in": self.retry_in,
        }


class SleepFunc(Protocol):
    """Protocol for injectable sleep function."""

    async def __call__(self, seconds: float) -> None: ...


class RandomSource(Protocol):
    """Anything with ``random() -> float`` in [0, 1), e.g. ``random.Random``."""

    def random(self) -> float: ...
