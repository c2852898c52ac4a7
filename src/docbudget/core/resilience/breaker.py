"""Per-provider circuit breaker.

States:
- CLOSED: calls pass through; retryable failures are counted
- OPEN: failure threshold reached; calls are rejected until the recovery
  timeout has elapsed since the last failure
- HALF_OPEN: recovery timeout elapsed; trial calls are allowed. A success
  closes the breaker, a further failure re-opens it.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from docbudget.core.resilience.models import CircuitBreakerStatus, CircuitState

logger = logging.getLogger(__name__)


class CircuitBreaker:
    """Failure-tracking state machine for one provider.

    Args:
        name: Provider identifier
        failure_threshold: Failures that open the breaker
        recovery_timeout: Seconds an open breaker rejects calls
        clock: Monotonic clock (injectable for tests)

    Example:
        breaker = CircuitBreaker("google-ai", failure_threshold=5, recovery_timeout=60.0)
        if breaker.can_execute():
            ...
            breaker.record_success()
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self._lock = threading.Lock()
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time: Optional[float] = None
        self.last_failure_at: Optional[datetime] = None

    def _recovery_elapsed(self) -> bool:
        if self.last_failure_time is None:
            return True
        return self._clock() - self.last_failure_time >= self.recovery_timeout

    def can_execute(self) -> bool:
        """Check whether a call may proceed.

        An OPEN breaker whose recovery timeout has elapsed moves to
        HALF_OPEN and allows the call.
        """
        with self._lock:
            if self.state != CircuitState.OPEN:
                return True
            if self._recovery_elapsed():
                self.state = CircuitState.HALF_OPEN
                logger.info("Circuit breaker %s half-open, allowing trial call", self.name)
                return True
            return False

    def is_available(self) -> bool:
        """Like can_execute, without changing state."""
        with self._lock:
            return self.state != CircuitState.OPEN or self._recovery_elapsed()

    def retry_after(self) -> float:
        """Seconds until an open breaker allows a trial call (0 if not open)."""
        with self._lock:
            if self.state != CircuitState.OPEN or self.last_failure_time is None:
                return 0.0
            return max(0.0, self.recovery_timeout - (self._clock() - self.last_failure_time))

    def record_success(self) -> None:
        """Reset to CLOSED with no failures, whatever the prior state."""
        with self._lock:
            if self.state != CircuitState.CLOSED:
                logger.info("Circuit breaker %s closed after successful call", self.name)
            self.state = CircuitState.CLOSED
            self.failure_count = 0

    def record_failure(self) -> None:
        """Count a failure and open the breaker at the threshold."""
        with self._lock:
            self.failure_count += 1
            self.last_failure_time = self._clock()
            self.last_failure_at = datetime.now(timezone.utc)
            if self.state != CircuitState.OPEN and self.failure_count >= self.failure_threshold:
                logger.warning(
                    "Circuit breaker %s opened after %d failures (threshold %d)",
                    self.name,
                    self.failure_count,
                    self.failure_threshold,
                )
                self.state = CircuitState.OPEN

    def reset(self) -> None:
        with self._lock:
            self.state = CircuitState.CLOSED
            self.failure_count = 0
            self.last_failure_time = None
            self.last_failure_at = None

    def status(self) -> CircuitBreakerStatus:
        retry_in = self.retry_after()
        with self._lock:
            return CircuitBreakerStatus(
                provider=self.name,
                state=self.state,
                failures=self.failure_count,
                last_failure_time=self.last_failure_at,
                retry_in=retry_in,
            )
