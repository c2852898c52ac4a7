"""Data models for the context fallback engine.

Provides the strategy enum, per-attempt diagnostics, the fallback result
container, engine options, and the per-document-type rule tables.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from docbudget.core.fallback.constants import (
    CHUNK_KEYWORDS,
    DEFAULT_AGGRESSIVE_REDUCTION_THRESHOLD,
    DEFAULT_DOCUMENT_TYPE,
    IMPORTANT_TERMS,
    PRIORITY_PATTERNS,
)
from docbudget.core.token_management import ProviderWindow


class FallbackStrategyType(str, Enum):
    """Fallback strategies, in the order the engine tries them.

    NONE marks a result where no strategy ran (context already fits) or
    where every strategy failed.
    """

    PROVIDER_SWITCH = "provider-switch"
    PRIORITIZATION = "prioritization"
    SUMMARIZATION = "summarization"
    CHUNKING = "chunking"
    NONE = "none"


@dataclass(frozen=True)
class StrategyAttempt:
    """Diagnostic record of one strategy attempt."""

    strategy: FallbackStrategyType
    success: bool
    final_token_count: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "success": self.success,
            "final_token_count": self.final_token_count,
            "error": self.error,
        }


@dataclass
class FallbackResult:
    """Outcome of one fallback attempt.

    ``reduction_percentage`` is derived from the token counts and cannot be
    set independently.

    Attributes:
        strategy: Strategy that produced the result
        processed_context: Context to send (untouched for provider-switch)
        original_token_count: Estimated tokens of the input context
        final_token_count: Estimated tokens of ``processed_context``
        success: True if ``processed_context`` fits the effective budget
        warnings: Non-fatal notes (provider change, reduction size)
        errors: Why strategies failed
        provider: Provider chosen by a provider switch
        requires_confirmation: Reduction exceeded the aggressive threshold
        attempts: Per-strategy diagnostics in attempt order
        target_token_count: The budget the context had to meet
        document_type: Document type the context was assembled for
    """

    strategy: FallbackStrategyType
    processed_context: str
    original_token_count: int
    final_token_count: int
    success: bool
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    provider: Optional[ProviderWindow] = None
    requires_confirmation: bool = False
    attempts: list[StrategyAttempt] = field(default_factory=list)
    target_token_count: Optional[int] = None
    document_type: Optional[str] = None

    @property
    def reduction_percentage(self) -> float:
        """Share of the original tokens removed, in percent (one decimal)."""
        if self.original_token_count <= 0:
            return 0.0
        reduced = self.original_token_count - self.final_token_count
        return round(reduced / self.original_token_count * 100, 1)

    def to_dict(self) -> dict[str, Any]:
        """Diagnostic view without the (potentially large) processed context."""
        return {
            "strategy": self.strategy.value,
            "success": self.success,
            "original_token_count": self.original_token_count,
            "final_token_count": self.final_token_count,
            "reduction_percentage": self.reduction_percentage,
            "target_token_count": self.target_token_count,
            "document_type": self.document_type,
            "requires_confirmation": self.requires_confirmation,
            "provider": self.provider.to_dict() if self.provider else None,
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "attempts": [attempt.to_dict() for attempt in self.attempts],
        }


@dataclass
class FallbackOptions:
    """Switches for one fallback run.

    Attributes:
        enable_provider_switch: Try a larger-window provider first
        enable_prioritization: Keep high/medium priority sections
        enable_summarization: Keep headings and important lines
        enable_chunking: Keep the most relevant section chunks
        preserve_critical_context: When high-priority content alone is over
            budget, summarize it rather than cutting it at the budget
        aggressive_reduction_threshold: Reduction percentage above which a
            successful result requires caller confirmation
        raise_on_failure: Raise ContextCapacityError instead of returning a
            failed result
    """

    enable_provider_switch: bool = True
    enable_prioritization: bool = True
    enable_summarization: bool = True
    enable_chunking: bool = True
    preserve_critical_context: bool = True
    aggressive_reduction_threshold: float = DEFAULT_AGGRESSIVE_REDUCTION_THRESHOLD
    raise_on_failure: bool = False

    def __post_init__(self) -> None:
        if not 0.0 <= self.aggressive_reduction_threshold <= 100.0:
            raise ValueError(
                f"aggressive_reduction_threshold must be within [0, 100], got {self.aggressive_reduction_threshold}"
            )


@dataclass(frozen=True)
class PriorityPatterns:
    """Heading fragments for high, medium and low priority sections."""

    high: tuple[str, ...] = ()
    medium: tuple[str, ...] = ()
    low: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PriorityPatterns":
        return cls(
            high=tuple(data.get("high", ())),
            medium=tuple(data.get("medium", ())),
            low=tuple(data.get("low", ())),
        )


def _lookup(table: Mapping[str, Any], document_type: Optional[str]) -> Any:
    key = (document_type or DEFAULT_DOCUMENT_TYPE).lower()
    if key in table:
        return table[key]
    return table[DEFAULT_DOCUMENT_TYPE]


@dataclass(frozen=True)
class FallbackRules:
    """Per-document-type pattern and term tables used by the strategies.

    Every table carries a ``default`` entry used for unknown document types.
    """

    priority_patterns: dict[str, PriorityPatterns]
    important_terms: dict[str, tuple[str, ...]]
    chunk_keywords: dict[str, tuple[str, ...]]

    @classmethod
    def defaults(cls) -> "FallbackRules":
        return cls(
            priority_patterns={key: PriorityPatterns.from_dict(value) for key, value in PRIORITY_PATTERNS.items()},
            important_terms=dict(IMPORTANT_TERMS),
            chunk_keywords=dict(CHUNK_KEYWORDS),
        )

    def merged(
        self,
        *,
        priority_patterns: Optional[Mapping[str, Mapping[str, Any]]] = None,
        important_terms: Optional[Mapping[str, Any]] = None,
        chunk_keywords: Optional[Mapping[str, Any]] = None,
    ) -> "FallbackRules":
        """Return a copy with per-document-type entries replaced by overrides."""
        patterns = dict(self.priority_patterns)
        for key, value in (priority_patterns or {}).items():
            patterns[key.lower()] = PriorityPatterns.from_dict(value)
        terms = dict(self.important_terms)
        for key, value in (important_terms or {}).items():
            terms[key.lower()] = tuple(value)
        keywords = dict(self.chunk_keywords)
        for key, value in (chunk_keywords or {}).items():
            keywords[key.lower()] = tuple(value)
        return FallbackRules(priority_patterns=patterns, important_terms=terms, chunk_keywords=keywords)

    def patterns_for(self, document_type: Optional[str]) -> PriorityPatterns:
        return _lookup(self.priority_patterns, document_type)

    def terms_for(self, document_type: Optional[str]) -> tuple[str, ...]:
        return _lookup(self.important_terms, document_type)

    def keywords_for(self, document_type: Optional[str]) -> tuple[str, ...]:
        return _lookup(self.chunk_keywords, document_type)
