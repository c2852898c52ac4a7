"""Unified error hierarchy for docbudget.

All custom exception classes are defined in domain-specific modules within
this package. This __init__.py re-exports everything for convenient access.

Usage:
    from docbudget.core.errors import CircuitOpenError, RetryExhaustedError
"""

from docbudget.core.errors.base import error_to_dict
from docbudget.core.errors.context import ContextCapacityError, LibraryFormatError
from docbudget.core.errors.provider import (
    AuthenticationError,
    ContextWindowError,
    InvalidRequestError,
    ProviderCallError,
    ProviderError,
    RateLimitError,
)
from docbudget.core.errors.resilience import (
    CircuitOpenError,
    DeadlineExceededError,
    RetryExhaustedError,
)

__all__ = [
    # Provider errors
    "ProviderError",
    "ProviderCallError",
    "RateLimitError",
    "AuthenticationError",
    "InvalidRequestError",
    "ContextWindowError",
    # Resilience errors
    "CircuitOpenError",
    "RetryExhaustedError",
    "DeadlineExceededError",
    # Context errors
    "ContextCapacityError",
    "LibraryFormatError",
    # Rendering
    "error_to_dict",
]
