"""Core context-budget operations for docbudget."""

from docbudget.core.fallback import ContextFallbackEngine, FallbackOptions, FallbackResult
from docbudget.core.library import (
    ContextFormat,
    LibraryLoadOptions,
    ProjectLibrary,
    ProjectLibraryLoader,
    library_to_context,
)
from docbudget.core.resilience import RetryConfig, RetryManager
from docbudget.core.service import ContextCore, PreparedContext
from docbudget.core.token_management import ProviderCapabilityRegistry, estimate_tokens

__all__ = [
    "ContextCore",
    "PreparedContext",
    "ProjectLibraryLoader",
    "ProjectLibrary",
    "LibraryLoadOptions",
    "ContextFormat",
    "library_to_context",
    "ContextFallbackEngine",
    "FallbackOptions",
    "FallbackResult",
    "RetryManager",
    "RetryConfig",
    "ProviderCapabilityRegistry",
    "estimate_tokens",
]
