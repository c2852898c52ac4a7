"""Context fallback strategy engine.

Provides:
    - ContextFallbackEngine: Ordered strategy runner
    - FallbackResult / StrategyAttempt: Outcome and per-strategy diagnostics
    - FallbackOptions: Strategy switches and thresholds
    - FallbackRules: Per-document-type pattern and term tables
"""

from docbudget.core.fallback.engine import ContextFallbackEngine
from docbudget.core.fallback.models import (
    FallbackOptions,
    FallbackResult,
    FallbackRules,
    FallbackStrategyType,
    PriorityPatterns,
    StrategyAttempt,
)
from docbudget.core.fallback.strategies import (
    ChunkingStrategy,
    FallbackRequest,
    FallbackStrategy,
    PrioritizationStrategy,
    ProviderSwitchStrategy,
    SummarizationStrategy,
    extract_section_lines,
    summarize_lines,
)

__all__ = [
    "ContextFallbackEngine",
    "FallbackOptions",
    "FallbackResult",
    "FallbackRules",
    "FallbackStrategyType",
    "PriorityPatterns",
    "StrategyAttempt",
    "FallbackRequest",
    "FallbackStrategy",
    "ProviderSwitchStrategy",
    "PrioritizationStrategy",
    "SummarizationStrategy",
    "ChunkingStrategy",
    "extract_section_lines",
    "summarize_lines",
]
