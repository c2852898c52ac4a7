"""Fallback strategy implementations.

Each strategy takes an oversized context and either produces a result that
fits the target budget or reports failure. Strategies never raise for
expected conditions; the engine treats an unexpected exception as a failed
attempt.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from docbudget.core.fallback.constants import CHUNK_DIVIDER, HEADING_SCORE, KEYWORD_SCORE
from docbudget.core.fallback.models import (
    FallbackOptions,
    FallbackResult,
    FallbackRules,
    FallbackStrategyType,
    PriorityPatterns,
)
from docbudget.core.token_management import ProviderCapabilityRegistry, TokenEstimator

logger = logging.getLogger(__name__)

_SECTION_SPLIT = re.compile(r"\n(?=##)")
_HEADING_LINE = re.compile(r"^#+\s+", re.MULTILINE)


@dataclass(frozen=True)
class FallbackRequest:
    """Inputs shared by every strategy in one fallback run."""

    context: str
    document_type: str
    target_tokens: int
    original_tokens: int
    options: FallbackOptions


class FallbackStrategy(ABC):
    """Common interface for fallback strategies."""

    strategy_type: FallbackStrategyType

    def __init__(self, estimator: TokenEstimator, rules: FallbackRules):
        self.estimate = estimator
        self.rules = rules

    def enabled(self, options: FallbackOptions) -> bool:
        return True

    @abstractmethod
    def apply(self, request: FallbackRequest) -> FallbackResult:
        """Attempt to fit ``request.context`` into ``request.target_tokens``."""

    def _reduced(self, request: FallbackRequest, processed: str, warning: str) -> FallbackResult:
        final_tokens = self.estimate(processed)
        result = FallbackResult(
            strategy=self.strategy_type,
            processed_context=processed,
            original_token_count=request.original_tokens,
            final_token_count=final_tokens,
            success=True,
        )
        result.warnings.append(f"{warning}, reduced by {result.reduction_percentage}%")
        return result

    def _failed(self, request: FallbackRequest, error: str) -> FallbackResult:
        return FallbackResult(
            strategy=self.strategy_type,
            processed_context=request.context,
            original_token_count=request.original_tokens,
            final_token_count=request.original_tokens,
            success=False,
            errors=[error],
        )


def summarize_lines(
    content: str,
    target_tokens: int,
    important_terms: tuple[str, ...],
    estimator: TokenEstimator,
) -> str:
    """Keep heading lines and lines mentioning an important term, within budget.

    Lines are considered in order; each retained line is charged
    ``estimate(line + "\\n")`` and skipped if it would cross the budget.
    """
    terms = tuple(term.lower() for term in important_terms)
    kept: list[str] = []
    used = 0
    for line in content.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue
        is_heading = stripped.startswith("#")
        if not is_heading and not any(term in stripped.lower() for term in terms):
            continue
        cost = estimator(line + "\n")
        if used + cost <= target_tokens:
            kept.append(line)
            used += cost
    return "\n".join(kept)


def take_lines(content: str, budget: int, estimator: TokenEstimator) -> str:
    """Take lines in order until the next one would cross the budget."""
    kept: list[str] = []
    used = 0
    for line in content.split("\n"):
        cost = estimator(line + "\n")
        if used + cost > budget:
            break
        kept.append(line)
        used += cost
    return "\n".join(kept)


class ProviderSwitchStrategy(FallbackStrategy):
    """Route to a configured provider whose window holds the whole context."""

    strategy_type = FallbackStrategyType.PROVIDER_SWITCH

    def __init__(
        self,
        estimator: TokenEstimator,
        rules: FallbackRules,
        registry: Optional[ProviderCapabilityRegistry] = None,
    ):
        super().__init__(estimator, rules)
        self.registry = registry

    def enabled(self, options: FallbackOptions) -> bool:
        return options.enable_provider_switch

    def apply(self, request: FallbackRequest) -> FallbackResult:
        if self.registry is None:
            return self._failed(request, "No provider capability registry configured")

        optimal = self.registry.get_optimal_provider_for_large_context(request.original_tokens)
        if optimal is None or optimal.context_window < request.original_tokens:
            return self._failed(
                request,
                f"No configured provider has a context window of {request.original_tokens:,} tokens",
            )

        logger.info(
            "Found provider with larger window: %s/%s (%s tokens)",
            optimal.provider,
            optimal.model,
            f"{optimal.context_window:,}",
        )
        return FallbackResult(
            strategy=self.strategy_type,
            processed_context=request.context,
            original_token_count=request.original_tokens,
            final_token_count=request.original_tokens,
            success=True,
            provider=optimal,
            warnings=[
                f"Switched to provider with larger context window: {optimal.provider}"
                + (f"/{optimal.model}" if optimal.model else "")
                + f" ({optimal.context_window:,} tokens)"
            ],
        )


def _matches(line: str, patterns: tuple[str, ...]) -> bool:
    lowered = line.lower()
    return any(pattern.lower() in lowered for pattern in patterns)


def extract_section_lines(context: str, patterns: PriorityPatterns, level: str) -> list[str]:
    """Collect lines of the sections whose heading matches ``level`` patterns.

    A section runs from a matching heading line until the next line that
    matches a pattern of another level. The heading line itself is kept.
    """
    own = getattr(patterns, level)
    others = tuple(
        pattern for name in ("high", "medium", "low") if name != level for pattern in getattr(patterns, name)
    )

    lines: list[str] = []
    inside = False
    for line in context.split("\n"):
        stripped = line.strip()
        if _matches(stripped, own):
            inside = True
            lines.append(line)
            continue
        if _matches(stripped, others):
            inside = False
            continue
        if inside:
            lines.append(line)
    return lines


class PrioritizationStrategy(FallbackStrategy):
    """Keep high-priority sections whole, then medium-priority lines."""

    strategy_type = FallbackStrategyType.PRIORITIZATION

    def enabled(self, options: FallbackOptions) -> bool:
        return options.enable_prioritization

    def apply(self, request: FallbackRequest) -> FallbackResult:
        patterns = self.rules.patterns_for(request.document_type)
        high = "\n".join(extract_section_lines(request.context, patterns, "high"))
        medium_lines = extract_section_lines(request.context, patterns, "medium")

        if not high and not medium_lines:
            return self._failed(request, "No high- or medium-priority sections found")

        high_tokens = self.estimate(high)
        if high_tokens > request.target_tokens:
            if request.options.preserve_critical_context:
                reduced = summarize_lines(
                    high,
                    request.target_tokens,
                    self.rules.terms_for(request.document_type),
                    self.estimate,
                )
                warning = "Applied prioritization + summarization due to high-priority content size"
            else:
                reduced = take_lines(high, request.target_tokens, self.estimate)
                warning = "Cut high-priority content at the token limit"
            if not reduced:
                return self._failed(request, "High-priority content could not be reduced to the target size")
            return self._reduced(request, reduced, warning)

        separator_tokens = self.estimate("\n\n") if high else 0
        remaining = request.target_tokens - high_tokens - separator_tokens
        medium = take_lines("\n".join(medium_lines), remaining, self.estimate) if remaining > 0 else ""

        if high and medium:
            processed = f"{high}\n\n{medium}"
        else:
            processed = high or medium
        if not processed:
            return self._failed(request, "Prioritized content does not fit the target size")
        return self._reduced(request, processed, "Preserved high-priority content")


class SummarizationStrategy(FallbackStrategy):
    """Keep headings and lines mentioning important terms."""

    strategy_type = FallbackStrategyType.SUMMARIZATION

    def enabled(self, options: FallbackOptions) -> bool:
        return options.enable_summarization

    def apply(self, request: FallbackRequest) -> FallbackResult:
        summary = summarize_lines(
            request.context,
            request.target_tokens,
            self.rules.terms_for(request.document_type),
            self.estimate,
        )
        if not summary:
            return self._failed(request, "Summarization retained no content")
        return self._reduced(request, summary, "Content summarized")


class ChunkingStrategy(FallbackStrategy):
    """Keep the most relevant section chunks that fit the budget."""

    strategy_type = FallbackStrategyType.CHUNKING

    def enabled(self, options: FallbackOptions) -> bool:
        return options.enable_chunking

    def split_into_chunks(self, content: str, max_chunk_tokens: int) -> list[str]:
        """Split on ``##`` section boundaries, re-splitting oversized sections by line."""
        chunks: list[str] = []
        for section in _SECTION_SPLIT.split(content):
            if self.estimate(section) <= max_chunk_tokens:
                chunks.append(section)
            else:
                chunks.extend(self._split_large_section(section, max_chunk_tokens))
        return chunks

    def _split_large_section(self, section: str, max_chunk_tokens: int) -> list[str]:
        chunks: list[str] = []
        current: list[str] = []
        used = 0
        for line in section.split("\n"):
            cost = self.estimate(line + "\n")
            if current and used + cost > max_chunk_tokens:
                chunks.append("\n".join(current))
                current, used = [], 0
            current.append(line)
            used += cost
        if current:
            chunks.append("\n".join(current))
        return chunks

    def score_chunk(self, chunk: str, document_type: str) -> int:
        """Relevance: points per document-type keyword present plus per heading."""
        lowered = chunk.lower()
        score = sum(KEYWORD_SCORE for keyword in self.rules.keywords_for(document_type) if keyword in lowered)
        score += HEADING_SCORE * len(_HEADING_LINE.findall(chunk))
        return score

    def apply(self, request: FallbackRequest) -> FallbackResult:
        chunks = self.split_into_chunks(request.context, request.target_tokens)
        ranked = sorted(chunks, key=lambda chunk: self.score_chunk(chunk, request.document_type), reverse=True)

        divider_tokens = self.estimate(CHUNK_DIVIDER)
        selected: list[str] = []
        used = 0
        for chunk in ranked:
            if not chunk.strip():
                continue
            cost = self.estimate(chunk) + (divider_tokens if selected else 0)
            if used + cost <= request.target_tokens:
                selected.append(chunk)
                used += cost

        if not selected:
            return self._failed(request, "No chunk fits the target size")
        return self._reduced(request, CHUNK_DIVIDER.join(selected), "Content chunked")
