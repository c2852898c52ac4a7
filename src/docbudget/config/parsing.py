"""Parsing and normalization helpers for configuration values.

Provides boolean, number and provider-list parsing shared by the config
sub-modules. Invalid values log a warning and yield ``None`` so callers
keep their current value.
"""

import logging
from typing import Any, Callable, List, Optional, TypeVar

from docbudget.core.token_management import parse_provider_spec

logger = logging.getLogger(__name__)

T = TypeVar("T")

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


def _try_parse_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in {"true", "1", "yes", "on"}:
        return True
    if normalized in {"false", "0", "no", "off"}:
        return False
    return None


def _try_parse(value: Any, convert: Callable[[Any], T], *, source: str) -> Optional[T]:
    """Convert ``value`` or log a warning naming ``source`` and return None."""
    if isinstance(value, bool):
        logger.warning("Ignoring %s: expected a number, got %r", source, value)
        return None
    try:
        return convert(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring %s: invalid value %r", source, value)
        return None


def _normalize_log_level(value: Any) -> Optional[str]:
    level = str(value).strip().upper()
    if level not in _VALID_LOG_LEVELS:
        logger.warning(
            "Invalid log level '%s'. Valid options: %s",
            value,
            ", ".join(sorted(_VALID_LOG_LEVELS)),
        )
        return None
    return level


def _parse_provider_list(value: Any, *, source: str) -> List[str]:
    """Parse ``provider:model`` entries from a list or comma-separated string.

    Entries that are empty or malformed are dropped with a warning.
    """
    if isinstance(value, str):
        raw_entries = value.split(",")
    elif isinstance(value, (list, tuple)):
        raw_entries = [str(entry) for entry in value]
    else:
        logger.warning("Ignoring %s: expected a list of provider specs, got %r", source, value)
        return []

    entries: List[str] = []
    for raw in raw_entries:
        if not raw.strip():
            continue
        try:
            provider, model = parse_provider_spec(raw)
        except ValueError:
            logger.warning("Ignoring malformed provider spec in %s: %r", source, raw)
            continue
        entry = f"{provider}:{model}" if model else provider
        if entry not in entries:
            entries.append(entry)
    return entries
