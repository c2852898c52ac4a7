"""Context assembly error classes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from docbudget.core.fallback.models import FallbackResult


class LibraryFormatError(ValueError):
    """Raised when a library is rendered with an unknown context format."""

    def __init__(self, fmt: str):
        self.format = fmt
        super().__init__(f"Unknown format: {fmt}")


class ContextCapacityError(Exception):
    """Raised when context still exceeds its budget after every fallback strategy.

    Only raised when the fallback engine runs with ``raise_on_failure``;
    otherwise the failing result is returned to the caller.

    Attributes:
        result: The failed FallbackResult with per-strategy diagnostics
        document_type: Document type the context was assembled for
        target_tokens: The token limit that could not be met
    """

    def __init__(
        self,
        message: str,
        *,
        result: FallbackResult,
        document_type: Optional[str] = None,
        target_tokens: Optional[int] = None,
    ):
        super().__init__(message)
        self.result = result
        self.document_type = document_type
        self.target_tokens = target_tokens
