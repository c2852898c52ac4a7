"""Tests for RetryManager.

Tests cover:
1. Retry with backoff until success
2. Non-retryable errors propagate immediately
3. Circuit breaker opening, fast-fail and recovery
4. Rate-limit hints and deadline budgets
5. Concurrent failures across providers
"""

import asyncio
import logging

import pytest

from docbudget.core.errors import (
    AuthenticationError,
    CircuitOpenError,
    DeadlineExceededError,
    ProviderCallError,
    RateLimitError,
    RetryExhaustedError,
)
from docbudget.core.resilience import (
    CircuitState,
    ErrorClassification,
    ErrorType,
    RetryConfig,
    RetryManager,
    compute_backoff_delay,
)

AUDIT_LOGGER = "docbudget.core.observability.audit.audit"


class FixedRandom:
    """Random source that always returns the same value."""

    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value


class ScriptedOperation:
    """Async operation that raises the scripted errors, then returns a value."""

    def __init__(self, *errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def _server_error():
    return ProviderCallError("service unavailable", provider="google-ai", status_code=503)


@pytest.fixture
def manager(fake_sleep, seeded_rng, fake_clock):
    return RetryManager(config=RetryConfig(), sleep=fake_sleep, rng=seeded_rng, clock=fake_clock)


class TestComputeBackoffDelay:
    """Tests for compute_backoff_delay."""

    def test_exponential_growth(self):
        """Delay doubles per attempt with a neutral jitter factor."""
        config = RetryConfig(base_delay=1.0, backoff_multiplier=2.0, max_delay=30.0)
        classification = ErrorClassification(retryable=True, error_type=ErrorType.SERVER_ERROR)
        rng = FixedRandom(0.5)

        delays = [compute_backoff_delay(attempt, classification, config, rng) for attempt in range(3)]

        assert delays == pytest.approx([1.0, 2.0, 4.0])

    def test_capped_at_max_delay(self):
        """The exponential term never exceeds max_delay before jitter."""
        config = RetryConfig(max_delay=30.0)
        classification = ErrorClassification(retryable=True, error_type=ErrorType.SERVER_ERROR)
        assert compute_backoff_delay(10, classification, config, FixedRandom(0.5)) == pytest.approx(30.0)

    def test_jitter_bounds(self):
        """Jitter keeps the delay within [0.85, 1.15) of the base value."""
        config = RetryConfig(base_delay=10.0)
        classification = ErrorClassification(retryable=True, error_type=ErrorType.NETWORK)

        assert compute_backoff_delay(0, classification, config, FixedRandom(0.0)) == pytest.approx(8.5)
        assert compute_backoff_delay(0, classification, config, FixedRandom(0.999)) < 11.5

    def test_rate_limit_hint_is_floor(self):
        """A retry-after hint longer than the backoff wins."""
        config = RetryConfig(base_delay=1.0)
        classification = ErrorClassification(retryable=True, error_type=ErrorType.RATE_LIMIT, backoff_seconds=7.5)
        assert compute_backoff_delay(0, classification, config, FixedRandom(0.5)) == 7.5

    def test_rate_limit_penalty_without_hint(self):
        """Rate limits without a hint are penalised."""
        config = RetryConfig(base_delay=1.0, rate_limit_penalty=2.0)
        classification = ErrorClassification(retryable=True, error_type=ErrorType.RATE_LIMIT)
        assert compute_backoff_delay(0, classification, config, FixedRandom(0.5)) == pytest.approx(2.0)


class TestExecuteWithRetry:
    """Tests for the retry loop."""

    @pytest.mark.asyncio
    async def test_success_first_try(self, manager, fake_sleep):
        """A successful call returns without sleeping or creating a breaker."""
        operation = ScriptedOperation()

        assert await manager.execute_with_retry(operation, "generate", "google-ai") == "ok"
        assert operation.calls == 1
        assert fake_sleep.delays == []
        assert manager.get_circuit_breaker_status() == {}

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, manager, fake_sleep):
        """Two transient failures are retried and the breaker ends closed."""
        operation = ScriptedOperation(_server_error(), _server_error())

        result = await manager.execute_with_retry(operation, "generate", "google-ai")

        assert result == "ok"
        assert operation.calls == 3
        assert len(fake_sleep.delays) == 2
        assert 0.85 <= fake_sleep.delays[0] < 1.15
        assert 1.7 <= fake_sleep.delays[1] < 2.3
        status = manager.get_circuit_breaker_status()["google-ai"]
        assert status.state == CircuitState.CLOSED
        assert status.failures == 0

    @pytest.mark.asyncio
    async def test_non_retryable_propagates(self, manager, fake_sleep):
        """Non-retryable errors are raised unchanged after one call."""
        error = AuthenticationError(provider="google-ai")
        operation = ScriptedOperation(error)

        with pytest.raises(AuthenticationError) as exc_info:
            await manager.execute_with_retry(operation, "generate", "google-ai")

        assert exc_info.value is error
        assert operation.calls == 1
        assert fake_sleep.delays == []
        assert manager.get_circuit_breaker_status() == {}

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, fake_sleep, seeded_rng, fake_clock):
        """Persistent transient failures end in RetryExhaustedError."""
        manager = RetryManager(
            config=RetryConfig(max_retries=2, failure_threshold=10),
            sleep=fake_sleep,
            rng=seeded_rng,
            clock=fake_clock,
        )
        errors = [_server_error() for _ in range(3)]
        operation = ScriptedOperation(*errors)

        with pytest.raises(RetryExhaustedError) as exc_info:
            await manager.execute_with_retry(operation, "generate", "google-ai")

        assert operation.calls == 3
        assert len(fake_sleep.delays) == 2
        assert exc_info.value.attempts == 3
        assert exc_info.value.last_error is errors[-1]
        assert exc_info.value.__cause__ is errors[-1]
        assert exc_info.value.circuit_state == CircuitState.CLOSED
        assert exc_info.value.failure_count == 3

    @pytest.mark.asyncio
    async def test_rate_limit_hint_respected(self, manager, fake_sleep):
        """The provider's retry-after hint sets the wait."""
        operation = ScriptedOperation(RateLimitError(provider="google-ai", retry_after=7.5))

        assert await manager.execute_with_retry(operation, "generate", "google-ai") == "ok"
        assert fake_sleep.delays == [7.5]

    @pytest.mark.asyncio
    async def test_rate_limit_penalty(self, manager, fake_sleep):
        """Without a hint the rate-limit wait is penalised."""
        operation = ScriptedOperation(RateLimitError(provider="google-ai"))

        await manager.execute_with_retry(operation, "generate", "google-ai")

        assert 1.7 <= fake_sleep.delays[0] < 2.3

    @pytest.mark.asyncio
    async def test_retry_config_override(self, manager, fake_sleep):
        """A per-call config overrides the provider config."""
        operation = ScriptedOperation(_server_error(), _server_error())

        with pytest.raises(RetryExhaustedError):
            await manager.execute_with_retry(operation, "generate", "google-ai", RetryConfig(max_retries=1))

        assert operation.calls == 2

    @pytest.mark.asyncio
    async def test_audit_events(self, manager, caplog):
        """Retries emit audit events on the audit logger."""
        operation = ScriptedOperation(_server_error())

        with caplog.at_level(logging.INFO, logger=AUDIT_LOGGER):
            await manager.execute_with_retry(operation, "generate", "google-ai")

        events = [record.audit for record in caplog.records if hasattr(record, "audit")]
        assert [event["event_type"] for event in events] == ["retry_attempt"]
        assert events[0]["details"]["attempt"] == 1
        assert events[0]["details"]["error_type"] == "server_error"


class TestCircuitBreaking:
    """Tests for the manager's per-provider breakers."""

    @pytest.mark.asyncio
    async def test_breaker_opens_and_fails_fast(self, fake_sleep, seeded_rng, fake_clock):
        """Reaching the threshold stops retries and later calls fail fast."""
        manager = RetryManager(
            config=RetryConfig(max_retries=5, failure_threshold=2, recovery_timeout=60.0),
            sleep=fake_sleep,
            rng=seeded_rng,
            clock=fake_clock,
        )
        failing = ScriptedOperation(*[_server_error() for _ in range(6)])

        with pytest.raises(RetryExhaustedError) as exc_info:
            await manager.execute_with_retry(failing, "generate", "google-ai")

        assert failing.calls == 2
        assert exc_info.value.circuit_state == CircuitState.OPEN

        untouched = ScriptedOperation()
        with pytest.raises(CircuitOpenError) as open_info:
            await manager.execute_with_retry(untouched, "generate", "google-ai")

        assert untouched.calls == 0
        assert open_info.value.provider == "google-ai"
        assert open_info.value.retry_after == pytest.approx(60.0)

    @pytest.mark.asyncio
    async def test_breakers_are_per_provider(self, fake_sleep, seeded_rng, fake_clock):
        """An open breaker for one provider does not affect another."""
        manager = RetryManager(
            config=RetryConfig(max_retries=0, failure_threshold=1),
            sleep=fake_sleep,
            rng=seeded_rng,
            clock=fake_clock,
        )
        with pytest.raises(RetryExhaustedError):
            await manager.execute_with_retry(ScriptedOperation(_server_error()), "generate", "google-ai")

        assert await manager.execute_with_retry(ScriptedOperation(), "generate", "azure-openai") == "ok"
        assert manager.can_execute("google-ai") is False

    @pytest.mark.asyncio
    async def test_recovery_after_timeout(self, fake_sleep, seeded_rng, fake_clock):
        """After the recovery timeout a successful trial call closes the breaker."""
        manager = RetryManager(
            config=RetryConfig(max_retries=0, failure_threshold=1, recovery_timeout=30.0),
            sleep=fake_sleep,
            rng=seeded_rng,
            clock=fake_clock,
        )
        with pytest.raises(RetryExhaustedError):
            await manager.execute_with_retry(ScriptedOperation(_server_error()), "generate", "google-ai")

        fake_clock.advance(30.0)
        result = await manager.execute_with_retry(ScriptedOperation(), "generate", "google-ai")

        assert result == "ok"
        assert manager.get_circuit_breaker_status()["google-ai"].state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_reset_circuit_breaker(self, fake_sleep, seeded_rng, fake_clock):
        """Resetting a breaker lets calls through again."""
        manager = RetryManager(
            config=RetryConfig(max_retries=0, failure_threshold=1),
            sleep=fake_sleep,
            rng=seeded_rng,
            clock=fake_clock,
        )
        with pytest.raises(RetryExhaustedError):
            await manager.execute_with_retry(ScriptedOperation(_server_error()), "generate", "google-ai")

        manager.reset_circuit_breaker("google-ai")

        assert manager.can_execute("google-ai") is True
        assert manager.get_circuit_breaker_status()["google-ai"].failures == 0

    @pytest.mark.asyncio
    async def test_non_retryable_does_not_trip(self, fake_sleep, seeded_rng, fake_clock):
        """Only retryable failures count toward the breaker."""
        manager = RetryManager(
            config=RetryConfig(failure_threshold=1),
            sleep=fake_sleep,
            rng=seeded_rng,
            clock=fake_clock,
        )
        for _ in range(3):
            with pytest.raises(AuthenticationError):
                await manager.execute_with_retry(ScriptedOperation(AuthenticationError()), "generate", "google-ai")

        assert manager.can_execute("google-ai") is True

    @pytest.mark.asyncio
    async def test_concurrent_failures_counted_once_each(self, fake_sleep, seeded_rng, fake_clock):
        """Interleaved failing calls reach each provider's threshold exactly."""
        manager = RetryManager(
            config=RetryConfig(max_retries=0, failure_threshold=5, recovery_timeout=60.0),
            sleep=fake_sleep,
            rng=seeded_rng,
            clock=fake_clock,
        )
        providers = ["google-ai", "azure-openai", "ollama"]

        async def failing():
            await asyncio.sleep(0)
            raise _server_error()

        results = await asyncio.gather(
            *[manager.execute_with_retry(failing, "generate", provider) for provider in providers * 5],
            return_exceptions=True,
        )

        assert all(isinstance(result, RetryExhaustedError) for result in results)
        status = manager.get_circuit_breaker_status()
        assert set(status) == set(providers)
        for provider in providers:
            assert status[provider].failures == 5
            assert status[provider].state == CircuitState.OPEN
            assert manager.can_execute(provider) is False


class TestDeadline:
    """Tests for the total time budget."""

    @pytest.mark.asyncio
    async def test_zero_deadline_fails_before_attempt(self, manager):
        """An exhausted deadline fails before invoking the operation."""
        operation = ScriptedOperation()

        with pytest.raises(DeadlineExceededError):
            await manager.execute_with_retry(operation, "generate", "google-ai", deadline=0)

        assert operation.calls == 0

    @pytest.mark.asyncio
    async def test_backoff_beyond_deadline(self, fake_sleep, seeded_rng, fake_clock):
        """A retry delay longer than the remaining budget ends the call."""
        manager = RetryManager(
            config=RetryConfig(base_delay=5.0), sleep=fake_sleep, rng=seeded_rng, clock=fake_clock
        )
        error = _server_error()

        with pytest.raises(DeadlineExceededError) as exc_info:
            await manager.execute_with_retry(ScriptedOperation(error), "generate", "google-ai", deadline=1.0)

        assert exc_info.value.__cause__ is error
        assert exc_info.value.deadline_seconds == 1.0
        assert fake_sleep.delays == []

    @pytest.mark.asyncio
    async def test_operation_timeout(self, manager, fake_clock):
        """An attempt that outlives the budget raises DeadlineExceededError."""

        async def slow():
            fake_clock.advance(5.0)
            await asyncio.sleep(1.0)

        with pytest.raises(DeadlineExceededError) as exc_info:
            await manager.execute_with_retry(slow, "generate", "google-ai", deadline=0.01)

        assert isinstance(exc_info.value.__cause__, asyncio.TimeoutError)
        assert manager.get_circuit_breaker_status()["google-ai"].failures == 1


class TestRetryConfigResolution:
    """Tests for per-provider config lookup."""

    def test_provider_override(self):
        """Provider overrides are matched case-insensitively."""
        override = RetryConfig(max_retries=7)
        manager = RetryManager(provider_configs={"Ollama": override})
        assert manager.get_config("ollama") is override

    def test_tuned_provider_defaults(self):
        """Without a global config, providers use their tuned defaults."""
        manager = RetryManager()
        assert manager.get_config("github-ai").base_delay == 2.0
        assert manager.get_config("ollama").max_retries == 2
        assert manager.get_config("unknown-provider") == RetryConfig()

    def test_global_config(self):
        """A global config applies to every provider without an override."""
        config = RetryConfig(max_retries=1)
        manager = RetryManager(config=config)
        assert manager.get_config("ollama") is config
