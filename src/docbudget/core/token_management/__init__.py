"""Token estimation, model limits and provider capabilities.

Provides:
    - TokenEstimator / HeuristicTokenEstimator / TiktokenEstimator
    - estimate_tokens(): Cached default estimate
    - ModelContextLimits / BudgetingMode and DEFAULT_MODEL_LIMITS
    - get_model_limits() / get_effective_context()
    - ProviderCapabilityRegistry: configured provider windows
"""

from .capabilities import ProviderCapabilityRegistry, parse_provider_spec
from .estimation import (
    DEFAULT_CHARS_PER_TOKEN,
    HeuristicTokenEstimator,
    TiktokenEstimator,
    TokenEstimator,
    clear_token_cache,
    estimate_tokens,
    get_cache_stats,
    resolve_estimator,
)
from .limits import get_effective_context, get_model_limits
from .models import BudgetingMode, ModelContextLimits, ProviderWindow
from .registry import DEFAULT_MODEL_LIMITS

__all__ = [
    # Estimation
    "DEFAULT_CHARS_PER_TOKEN",
    "TokenEstimator",
    "HeuristicTokenEstimator",
    "TiktokenEstimator",
    "estimate_tokens",
    "clear_token_cache",
    "get_cache_stats",
    "resolve_estimator",
    # Models
    "BudgetingMode",
    "ModelContextLimits",
    "ProviderWindow",
    "DEFAULT_MODEL_LIMITS",
    # Limits
    "get_model_limits",
    "get_effective_context",
    # Capabilities
    "ProviderCapabilityRegistry",
    "parse_provider_spec",
]
