"""Resilience error classes.

``CircuitOpenError`` deliberately does not derive from ``ProviderError`` so
callers can tell a fast-fail apart from a failed provider call.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from docbudget.core.resilience.models import CircuitState


class CircuitOpenError(Exception):
    """Circuit breaker is open and rejecting calls for a provider.

    Attributes:
        provider: Provider whose breaker is open.
        state: Current state of the breaker.
        retry_after: Seconds until the recovery window elapses.
        failure_count: Failures recorded by the breaker.
    """

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        state: Optional[CircuitState] = None,
        retry_after: Optional[float] = None,
        failure_count: int = 0,
    ):
        super().__init__(message)
        self.provider = provider
        self.state = state
        self.retry_after = retry_after
        self.failure_count = failure_count


class RetryExhaustedError(Exception):
    """All retry attempts for an operation failed.

    The last underlying error is chained as ``__cause__`` and kept on
    ``last_error``.

    Attributes:
        operation_name: Logical name of the operation.
        provider: Provider the operation was routed to.
        attempts: Number of attempts made.
        circuit_state: Breaker state after the final failure.
        failure_count: Breaker failure count after the final failure.
        last_error: The final exception raised by the operation.
    """

    def __init__(
        self,
        message: str,
        *,
        operation_name: str,
        provider: str,
        attempts: int,
        circuit_state: Optional[CircuitState] = None,
        failure_count: int = 0,
        last_error: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.operation_name = operation_name
        self.provider = provider
        self.attempts = attempts
        self.circuit_state = circuit_state
        self.failure_count = failure_count
        self.last_error = last_error


class DeadlineExceededError(Exception):
    """The caller-supplied deadline for an operation has been exhausted.

    Attributes:
        deadline_seconds: The original deadline.
        elapsed_seconds: Time elapsed when the deadline was hit.
        operation_name: Name of the operation.
        provider: Provider the operation was routed to.
    """

    def __init__(
        self,
        message: str,
        *,
        deadline_seconds: Optional[float] = None,
        elapsed_seconds: Optional[float] = None,
        operation_name: Optional[str] = None,
        provider: Optional[str] = None,
    ):
        super().__init__(message)
        self.deadline_seconds = deadline_seconds
        self.elapsed_seconds = elapsed_seconds
        self.operation_name = operation_name
        self.provider = provider
