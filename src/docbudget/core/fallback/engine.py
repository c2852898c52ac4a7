"""Context fallback engine.

Runs the ordered strategy list (provider switch, prioritization,
summarization, chunking) against an oversized context until one produces a
result within the target budget.

Usage:
    engine = ContextFallbackEngine(registry=ProviderCapabilityRegistry(["google-ai"]))
    result = engine.apply_fallback_strategy(context, "project-charter", 8_000)
    if not result.success:
        ...
"""

import logging
from typing import Optional, Sequence

from docbudget.core.errors import ContextCapacityError
from docbudget.core.fallback.constants import ALL_STRATEGIES_FAILED
from docbudget.core.fallback.models import (
    FallbackOptions,
    FallbackResult,
    FallbackRules,
    FallbackStrategyType,
    StrategyAttempt,
)
from docbudget.core.fallback.strategies import (
    ChunkingStrategy,
    FallbackRequest,
    FallbackStrategy,
    PrioritizationStrategy,
    ProviderSwitchStrategy,
    SummarizationStrategy,
)
from docbudget.core.observability import audit_log
from docbudget.core.token_management import ProviderCapabilityRegistry, TokenEstimator, estimate_tokens

logger = logging.getLogger(__name__)


class ContextFallbackEngine:
    """Fit oversized context into a target token budget.

    Args:
        estimator: Token estimator used for every count
        registry: Provider capability registry for the provider switch
        rules: Pattern and term tables (defaults to the built-in tables)
        options: Default options for runs that don't pass their own
        strategies: Override the ordered strategy list
    """

    def __init__(
        self,
        estimator: Optional[TokenEstimator] = None,
        registry: Optional[ProviderCapabilityRegistry] = None,
        rules: Optional[FallbackRules] = None,
        options: Optional[FallbackOptions] = None,
        strategies: Optional[Sequence[FallbackStrategy]] = None,
    ):
        self.estimate = estimator or estimate_tokens
        self.rules = rules or FallbackRules.defaults()
        self.options = options or FallbackOptions()
        if strategies is None:
            strategies = (
                ProviderSwitchStrategy(self.estimate, self.rules, registry),
                PrioritizationStrategy(self.estimate, self.rules),
                SummarizationStrategy(self.estimate, self.rules),
                ChunkingStrategy(self.estimate, self.rules),
            )
        self.strategies: tuple[FallbackStrategy, ...] = tuple(strategies)

    def apply_fallback_strategy(
        self,
        context: str,
        document_type: str,
        target_token_limit: int,
        options: Optional[FallbackOptions] = None,
    ) -> FallbackResult:
        """Reduce or re-route ``context`` so it fits ``target_token_limit``.

        Context that already fits is returned untouched with strategy
        ``none``. Otherwise the enabled strategies run in order; the first
        result that fits wins. A strategy that raises, fails, or overshoots
        the target is recorded in ``attempts`` and the next one runs.

        Args:
            context: Assembled context string
            document_type: Target document type (selects pattern tables)
            target_token_limit: Token budget of the target provider
            options: Per-run options (defaults to the engine's options)

        Returns:
            FallbackResult; ``success`` is False when every strategy failed

        Raises:
            ValueError: If ``target_token_limit`` is not positive
            ContextCapacityError: If every strategy failed and
                ``options.raise_on_failure`` is set
        """
        if target_token_limit <= 0:
            raise ValueError(f"target_token_limit must be positive, got {target_token_limit}")

        options = options or self.options
        original_tokens = self.estimate(context)

        if original_tokens <= target_token_limit:
            return FallbackResult(
                strategy=FallbackStrategyType.NONE,
                processed_context=context,
                original_token_count=original_tokens,
                final_token_count=original_tokens,
                success=True,
                target_token_count=target_token_limit,
                document_type=document_type,
            )

        logger.info(
            "Applying fallback strategy: %d tokens -> %d tokens for %s",
            original_tokens,
            target_token_limit,
            document_type,
        )

        request = FallbackRequest(
            context=context,
            document_type=document_type,
            target_tokens=target_token_limit,
            original_tokens=original_tokens,
            options=options,
        )

        attempts: list[StrategyAttempt] = []
        errors: list[str] = []

        for strategy in self.strategies:
            if not strategy.enabled(options):
                continue

            try:
                result = strategy.apply(request)
            except Exception as e:
                logger.exception("Fallback strategy %s raised", strategy.strategy_type.value)
                message = f"{strategy.strategy_type.value} failed: {e}"
                attempts.append(StrategyAttempt(strategy.strategy_type, success=False, error=message))
                errors.append(message)
                continue

            if result.success and not self._fits(result, target_token_limit):
                result.success = False
                result.errors.append(
                    f"Result of {result.final_token_count} tokens still exceeds target {target_token_limit}"
                )

            attempts.append(
                StrategyAttempt(
                    result.strategy,
                    success=result.success,
                    final_token_count=result.final_token_count,
                    error="; ".join(result.errors) or None,
                )
            )

            if result.success:
                return self._finish(result, attempts, errors, request)

            errors.extend(f"{result.strategy.value}: {error}" for error in result.errors)

        errors.append(ALL_STRATEGIES_FAILED)
        failed = FallbackResult(
            strategy=FallbackStrategyType.NONE,
            processed_context=context,
            original_token_count=original_tokens,
            final_token_count=original_tokens,
            success=False,
            errors=errors,
            attempts=attempts,
            target_token_count=target_token_limit,
            document_type=document_type,
        )
        logger.warning(
            "All fallback strategies failed for %s: %d tokens, target %d",
            document_type,
            original_tokens,
            target_token_limit,
        )
        audit_log(
            "fallback_failed",
            document_type=document_type,
            original_tokens=original_tokens,
            target_tokens=target_token_limit,
            attempted=[attempt.strategy.value for attempt in attempts],
        )

        if options.raise_on_failure:
            raise ContextCapacityError(
                f"Context of {original_tokens} tokens could not be fitted into {target_token_limit} tokens",
                result=failed,
                document_type=document_type,
                target_tokens=target_token_limit,
            )
        return failed

    @staticmethod
    def _fits(result: FallbackResult, target_token_limit: int) -> bool:
        if result.strategy == FallbackStrategyType.PROVIDER_SWITCH:
            return result.provider is not None and result.provider.context_window >= result.final_token_count
        return result.final_token_count <= target_token_limit

    def _finish(
        self,
        result: FallbackResult,
        attempts: list[StrategyAttempt],
        errors: list[str],
        request: FallbackRequest,
    ) -> FallbackResult:
        result.attempts = attempts
        result.errors = errors + result.errors
        result.target_token_count = request.target_tokens
        result.document_type = request.document_type

        threshold = request.options.aggressive_reduction_threshold
        if result.strategy != FallbackStrategyType.PROVIDER_SWITCH and result.reduction_percentage > threshold:
            result.requires_confirmation = True
            result.warnings.append(
                f"Reduction of {result.reduction_percentage}% exceeds {threshold}%; confirm before generating"
            )
            audit_log(
                "aggressive_reduction",
                strategy=result.strategy.value,
                document_type=request.document_type,
                reduction_percentage=result.reduction_percentage,
                threshold=threshold,
            )

        logger.info(
            "Fallback %s succeeded: %d -> %d tokens (%.1f%% reduction)",
            result.strategy.value,
            result.original_token_count,
            result.final_token_count,
            result.reduction_percentage,
        )
        audit_log(
            "fallback_applied",
            strategy=result.strategy.value,
            document_type=request.document_type,
            original_tokens=result.original_token_count,
            final_tokens=result.final_token_count,
            target_tokens=request.target_tokens,
            reduction_percentage=result.reduction_percentage,
            provider=result.provider.provider if result.provider else None,
        )
        return result
