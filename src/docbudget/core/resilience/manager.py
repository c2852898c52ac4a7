"""Retry manager with per-provider circuit breakers.

Wraps one outbound call with retry-with-backoff and a per-provider circuit
breaker. Breakers live in an instance-owned map, created lazily on a
provider's first retryable failure, so independent managers (and tests)
never share state.
"""

import asyncio
import logging
import random
import threading
import time
from typing import Awaitable, Callable, Optional, TypeVar

from docbudget.core.errors import CircuitOpenError, DeadlineExceededError, RetryExhaustedError
from docbudget.core.observability import audit_log
from docbudget.core.resilience.breaker import CircuitBreaker
from docbudget.core.resilience.classification import classify_error as default_classify_error
from docbudget.core.resilience.config import RetryConfig, get_provider_retry_config
from docbudget.core.resilience.models import (
    CircuitBreakerStatus,
    CircuitState,
    ErrorClassification,
    ErrorType,
    RandomSource,
    SleepFunc,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Classifier = Callable[[BaseException, RetryConfig], ErrorClassification]


def compute_backoff_delay(
    attempt: int,
    classification: ErrorClassification,
    config: RetryConfig,
    rng: RandomSource,
) -> float:
    """Delay before retry number ``attempt + 1``.

    ``min(base * multiplier**attempt, max_delay)`` times a jitter factor in
    [jitter_min, jitter_max). Rate limits wait at least the provider's
    retry-after hint, or get the rate-limit penalty when there is none.
    """
    delay = min(config.base_delay * (config.backoff_multiplier**attempt), config.max_delay)
    delay *= config.jitter_min + rng.random() * (config.jitter_max - config.jitter_min)

    if classification.error_type == ErrorType.RATE_LIMIT:
        if classification.backoff_seconds is not None:
            delay = max(delay, classification.backoff_seconds)
        else:
            delay *= config.rate_limit_penalty
    return delay


class RetryManager:
    """Execute provider calls with retry, backoff and circuit breaking.

    Args:
        config: Default retry config; providers without an override use
            their tuned entry in PROVIDER_RETRY_CONFIGS when this is None
        provider_configs: Per-provider config overrides
        classify_error: Error classifier (default: classify_error)
        sleep: Async sleep (injectable for tests)
        rng: Random source for jitter (injectable for tests)
        clock: Monotonic clock for breakers and deadlines

    Example:
        manager = RetryManager()
        text = await manager.execute_with_retry(
            lambda: client.generate(prompt),
            "generate_project_charter",
            "google-ai",
        )

    Testing example:
        delays = []
        async def fake_sleep(seconds): delays.append(seconds)
        manager = RetryManager(sleep=fake_sleep, rng=random.Random(42))
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        provider_configs: Optional[dict[str, RetryConfig]] = None,
        classify_error: Optional[Classifier] = None,
        sleep: Optional[SleepFunc] = None,
        rng: Optional[RandomSource] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._default_config = config
        self._provider_configs = {name.lower(): cfg for name, cfg in (provider_configs or {}).items()}
        self._classify = classify_error or default_classify_error
        self._sleep = sleep or asyncio.sleep
        self._rng = rng or random.Random()
        self._clock = clock
        self._breakers: dict[str, CircuitBreaker] = {}
        self._lock = threading.Lock()

    def get_config(self, provider_id: str) -> RetryConfig:
        """Resolve the retry config for a provider."""
        override = self._provider_configs.get(provider_id.lower())
        if override is not None:
            return override
        if self._default_config is not None:
            return self._default_config
        return get_provider_retry_config(provider_id)

    def _get_breaker(self, provider_id: str) -> Optional[CircuitBreaker]:
        with self._lock:
            return self._breakers.get(provider_id)

    def _get_or_create_breaker(self, provider_id: str, config: RetryConfig) -> CircuitBreaker:
        with self._lock:
            breaker = self._breakers.get(provider_id)
            if breaker is None:
                breaker = CircuitBreaker(
                    name=provider_id,
                    failure_threshold=config.failure_threshold,
                    recovery_timeout=config.recovery_timeout,
                    clock=self._clock,
                )
                self._breakers[provider_id] = breaker
            else:
                breaker.failure_threshold = config.failure_threshold
                breaker.recovery_timeout = config.recovery_timeout
            return breaker

    def can_execute(self, provider_id: str) -> bool:
        """Check (and advance) the provider's breaker; True if no breaker exists."""
        breaker = self._get_breaker(provider_id)
        if breaker is None:
            return True
        old_state = breaker.state
        allowed = breaker.can_execute()
        if breaker.state != old_state:
            audit_log(
                "circuit_state_change",
                provider=provider_id,
                old_state=old_state.value,
                new_state=breaker.state.value,
                action="half_open",
            )
        return allowed

    def get_circuit_breaker_status(self) -> dict[str, CircuitBreakerStatus]:
        """Snapshot every provider breaker created so far."""
        with self._lock:
            breakers = list(self._breakers.items())
        return {provider: breaker.status() for provider, breaker in breakers}

    def reset_circuit_breaker(self, provider_id: Optional[str] = None) -> None:
        """Reset one provider's breaker, or all breakers when no provider is given."""
        with self._lock:
            targets = list(self._breakers.values()) if provider_id is None else [self._breakers.get(provider_id)]
        for breaker in targets:
            if breaker is not None:
                breaker.reset()
                logger.info("Circuit breaker %s reset", breaker.name)

    def reset(self) -> None:
        """Drop all breaker state (for testing)."""
        with self._lock:
            self._breakers.clear()

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        operation_name: str,
        provider_id: str,
        retry_config: Optional[RetryConfig] = None,
        *,
        deadline: Optional[float] = None,
    ) -> T:
        """Execute an async operation with retry and circuit breaking.

        Execution order per attempt:
        1. Check circuit breaker (fail fast if OPEN)
        2. Execute within the remaining deadline, if any
        3. On success, close the breaker and return
        4. On failure, classify: non-retryable errors propagate at once;
           retryable ones are counted by the breaker and retried after a
           backoff delay until retries run out or the breaker opens

        Args:
            operation: Async callable with no arguments (use a lambda for args)
            operation_name: Logical name used in errors and audit events
            provider_id: Provider the call is routed to (breaker key)
            retry_config: Override the provider's retry config
            deadline: Total time budget in seconds (None = no limit)

        Returns:
            Result of the operation

        Raises:
            CircuitOpenError: Breaker is open; the operation was not invoked
            RetryExhaustedError: Retryable failures exhausted the retry budget
                or opened the breaker; the last error is chained
            DeadlineExceededError: The next attempt or backoff would overrun
                ``deadline``
            Exception: Non-retryable errors from the operation, unchanged
        """
        config = retry_config or self.get_config(provider_id)
        start_time = self._clock()

        def elapsed() -> float:
            return self._clock() - start_time

        def remaining_budget() -> Optional[float]:
            if deadline is None:
                return None
            return max(0.0, deadline - elapsed())

        def deadline_error(message: str, phase: str, attempts: int) -> DeadlineExceededError:
            audit_log(
                "budget_exceeded",
                provider=provider_id,
                operation=operation_name,
                elapsed_ms=int(elapsed() * 1000),
                budget_ms=int((deadline or 0) * 1000),
                attempts=attempts,
                phase=phase,
            )
            return DeadlineExceededError(
                message,
                deadline_seconds=deadline,
                elapsed_seconds=elapsed(),
                operation_name=operation_name,
                provider=provider_id,
            )

        for attempt in range(config.max_retries + 1):
            if not self.can_execute(provider_id):
                breaker = self._get_breaker(provider_id)
                retry_after = breaker.retry_after() if breaker else None
                failure_count = breaker.failure_count if breaker else 0
                audit_log(
                    "circuit_rejected",
                    provider=provider_id,
                    operation=operation_name,
                    retry_after=retry_after,
                    failure_count=failure_count,
                )
                raise CircuitOpenError(
                    f"Circuit breaker open for {provider_id}; retry in {retry_after or 0:.1f}s",
                    provider=provider_id,
                    state=CircuitState.OPEN,
                    retry_after=retry_after,
                    failure_count=failure_count,
                )

            budget = remaining_budget()
            if budget is not None and budget <= 0:
                raise deadline_error(
                    f"Deadline of {deadline}s exhausted before {operation_name} attempt {attempt + 1}",
                    "pre_execution",
                    attempt,
                )

            try:
                if budget is not None:
                    result = await asyncio.wait_for(operation(), timeout=budget)
                else:
                    result = await operation()
            except Exception as e:
                if deadline is not None and isinstance(e, asyncio.TimeoutError) and remaining_budget() == 0:
                    self._record_failure(provider_id, config)
                    raise deadline_error(
                        f"{operation_name} timed out against the {deadline}s deadline",
                        "timeout",
                        attempt + 1,
                    ) from e

                classification = self._classify(e, config)
                if not classification.retryable:
                    logger.debug(
                        "%s on %s failed with non-retryable %s: %s",
                        operation_name,
                        provider_id,
                        classification.error_type.value,
                        e,
                    )
                    raise

                breaker = self._record_failure(provider_id, config)
                attempts = attempt + 1
                if breaker.state == CircuitState.OPEN or attempt == config.max_retries:
                    reason = "circuit opened" if breaker.state == CircuitState.OPEN else "retries exhausted"
                    audit_log(
                        "retry_exhausted",
                        provider=provider_id,
                        operation=operation_name,
                        attempts=attempts,
                        reason=reason,
                        circuit_state=breaker.state.value,
                        failure_count=breaker.failure_count,
                        error_type=classification.error_type.value,
                    )
                    raise RetryExhaustedError(
                        f"{operation_name} failed on {provider_id} after {attempts} attempt(s) "
                        f"({reason}; circuit {breaker.state.value}, {breaker.failure_count} failures): {e}",
                        operation_name=operation_name,
                        provider=provider_id,
                        attempts=attempts,
                        circuit_state=breaker.state,
                        failure_count=breaker.failure_count,
                        last_error=e,
                    ) from e

                delay = compute_backoff_delay(attempt, classification, config, self._rng)

                budget = remaining_budget()
                if budget is not None and delay > budget:
                    raise deadline_error(
                        f"Retry delay {delay:.1f}s exceeds remaining budget {budget:.1f}s for {operation_name}",
                        "retry_delay",
                        attempts,
                    ) from e

                logger.info(
                    "%s on %s failed (%s), retrying in %.2fs (attempt %d/%d)",
                    operation_name,
                    provider_id,
                    classification.error_type.value,
                    delay,
                    attempts,
                    config.max_retries + 1,
                )
                audit_log(
                    "retry_attempt",
                    provider=provider_id,
                    operation=operation_name,
                    attempt=attempts,
                    max_attempts=config.max_retries + 1,
                    delay_ms=int(delay * 1000),
                    error_type=classification.error_type.value,
                    error_message=str(e)[:200],
                )
                await self._sleep(delay)
                continue

            self._record_success(provider_id)
            return result

        raise RuntimeError("execute_with_retry: unexpected state")

    def _record_success(self, provider_id: str) -> None:
        breaker = self._get_breaker(provider_id)
        if breaker is None:
            return
        old_state = breaker.state
        breaker.record_success()
        if breaker.state != old_state:
            audit_log(
                "circuit_state_change",
                provider=provider_id,
                old_state=old_state.value,
                new_state=breaker.state.value,
                action="recovery",
            )

    def _record_failure(self, provider_id: str, config: RetryConfig) -> CircuitBreaker:
        breaker = self._get_or_create_breaker(provider_id, config)
        old_state = breaker.state
        breaker.record_failure()
        if breaker.state != old_state:
            audit_log(
                "circuit_state_change",
                provider=provider_id,
                old_state=old_state.value,
                new_state=breaker.state.value,
                action="tripped",
            )
        return breaker
