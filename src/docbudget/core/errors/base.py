"""Error-to-diagnostics rendering.

Provides a single place that turns any docbudget exception into a flat
dict suitable for log records and response payloads.

Usage:
    from docbudget.core.errors.base import error_to_dict

    try:
        await manager.execute_with_retry(call, "generate", "google-ai")
    except Exception as e:
        logger.error("generation failed", extra={"error": error_to_dict(e)})
        raise
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Tuple

# Attributes copied from an exception when present
_DIAGNOSTIC_ATTRIBUTES: Tuple[str, ...] = (
    "provider",
    "status_code",
    "retryable",
    "retry_after",
    "param",
    "prompt_tokens",
    "max_tokens",
    "truncation_needed",
    "state",
    "circuit_state",
    "failure_count",
    "operation_name",
    "attempts",
    "deadline_seconds",
    "elapsed_seconds",
    "document_type",
    "target_tokens",
    "format",
)


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


def error_to_dict(error: BaseException) -> Dict[str, Any]:
    """Render an exception into a diagnostic dict.

    Args:
        error: Any exception

    Returns:
        Dict with ``type``, ``message`` and every known diagnostic attribute
        the exception carries. Wrapped errors contribute a nested ``cause``.
    """
    result: Dict[str, Any] = {
        "type": type(error).__name__,
        "message": str(error),
    }
    for attr in _DIAGNOSTIC_ATTRIBUTES:
        value = getattr(error, attr, None)
        if value is not None:
            result[attr] = _plain(value)

    fallback_result = getattr(error, "result", None)
    if fallback_result is not None and hasattr(fallback_result, "to_dict"):
        result["fallback"] = fallback_result.to_dict()

    last_error = getattr(error, "last_error", None)
    cause = last_error if last_error is not None else error.__cause__
    if cause is not None and cause is not error:
        result["cause"] = error_to_dict(cause)
    return result
