"""Domain-specific configuration dataclasses.

Contains small, focused configuration classes for the library loader, the
fallback engine and the provider registry. Each one builds the runtime
object it configures.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from docbudget.config.parsing import _parse_provider_list, _try_parse, _try_parse_bool
from docbudget.core.fallback import FallbackOptions, FallbackRules
from docbudget.core.fallback.constants import DEFAULT_AGGRESSIVE_REDUCTION_THRESHOLD
from docbudget.core.library import LibraryLoadOptions
from docbudget.core.library.constants import (
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MIN_FILE_SIZE,
)
from docbudget.core.token_management import BudgetingMode, ProviderCapabilityRegistry, get_model_limits

logger = logging.getLogger(__name__)


def _bool_field(data: Dict[str, Any], key: str, current: bool, section: str) -> bool:
    if key not in data:
        return current
    parsed = _try_parse_bool(data[key])
    if parsed is None:
        logger.warning("Ignoring [%s].%s: expected a boolean, got %r", section, key, data[key])
        return current
    return parsed


def _string_list(value: Any, source: str) -> Optional[List[str]]:
    if isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value):
        return list(value)
    logger.warning("Ignoring %s: expected a list of strings, got %r", source, value)
    return None


@dataclass
class LibraryConfig:
    """Configuration for project library loads.

    Attributes:
        max_tokens: Default token budget for a library load
        prioritize_recent: Break near-ties in priority by modification time
        include_dependencies: Extract external dependencies per file
        min_file_size: Smallest file (bytes) considered
        max_file_size: Largest file (bytes) considered
        category_weights: Per-category weight overrides
        include_patterns: Glob patterns replacing the default include set
        exclude_patterns: Glob patterns replacing the default exclude set
    """

    max_tokens: int = DEFAULT_MAX_TOKENS
    prioritize_recent: bool = True
    include_dependencies: bool = True
    min_file_size: int = DEFAULT_MIN_FILE_SIZE
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    category_weights: Dict[str, float] = field(default_factory=dict)
    include_patterns: Optional[List[str]] = None
    exclude_patterns: Optional[List[str]] = None

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any], base: Optional["LibraryConfig"] = None) -> "LibraryConfig":
        """Create config from TOML dict (typically [library] section).

        Args:
            data: Dict from TOML parsing
            base: Config supplying values for missing or invalid keys

        Returns:
            LibraryConfig instance
        """
        config = base or cls()
        result = cls(
            max_tokens=config.max_tokens,
            prioritize_recent=_bool_field(data, "prioritize_recent", config.prioritize_recent, "library"),
            include_dependencies=_bool_field(data, "include_dependencies", config.include_dependencies, "library"),
            min_file_size=config.min_file_size,
            max_file_size=config.max_file_size,
            category_weights=dict(config.category_weights),
            include_patterns=config.include_patterns,
            exclude_patterns=config.exclude_patterns,
        )

        for key, minimum in (("max_tokens", 1), ("min_file_size", 0), ("max_file_size", 1)):
            if key in data:
                value = _try_parse(data[key], int, source=f"[library].{key}")
                if value is not None and value >= minimum:
                    setattr(result, key, value)
                elif value is not None:
                    logger.warning("Ignoring [library].%s %r: must be >= %d", key, value, minimum)

        if "category_weights" in data:
            weights = data["category_weights"]
            if isinstance(weights, dict):
                for name, weight in weights.items():
                    parsed = _try_parse(weight, float, source=f"[library.category_weights].{name}")
                    if parsed is not None:
                        result.category_weights[str(name).lower()] = parsed
            else:
                logger.warning("Ignoring [library].category_weights: expected a table, got %r", weights)

        for key in ("include_patterns", "exclude_patterns"):
            if key in data:
                patterns = _string_list(data[key], f"[library].{key}")
                if patterns is not None:
                    setattr(result, key, patterns)

        if result.min_file_size > result.max_file_size:
            logger.warning(
                "Ignoring [library] size bounds: min_file_size %d exceeds max_file_size %d",
                result.min_file_size,
                result.max_file_size,
            )
            result.min_file_size = config.min_file_size
            result.max_file_size = config.max_file_size
        return result

    def to_load_options(self, max_tokens: Optional[int] = None) -> LibraryLoadOptions:
        """Build load options, optionally with a different token budget."""
        return LibraryLoadOptions(
            max_tokens=max_tokens or self.max_tokens,
            include_patterns=tuple(self.include_patterns) if self.include_patterns is not None else None,
            exclude_patterns=tuple(self.exclude_patterns) if self.exclude_patterns is not None else None,
            prioritize_recent=self.prioritize_recent,
            include_dependencies=self.include_dependencies,
            category_weights=dict(self.category_weights) or None,
            min_file_size=self.min_file_size,
            max_file_size=self.max_file_size,
        )


@dataclass
class FallbackConfig:
    """Configuration for the context fallback engine.

    Attributes:
        enable_provider_switch: Try routing to a larger-window provider first
        enable_prioritization: Keep high/medium priority sections
        enable_summarization: Keep headings and important-term lines
        enable_chunking: Keep the most relevant section chunks
        preserve_critical_context: Summarize (not cut) oversized high-priority content
        aggressive_reduction_threshold: Reduction percentage that requires confirmation
        raise_on_failure: Raise ContextCapacityError instead of returning a failed result
        priority_patterns: Per-document-type {high, medium, low} pattern overrides
        important_terms: Per-document-type important-term overrides
        chunk_keywords: Per-document-type chunk keyword overrides
    """

    enable_provider_switch: bool = True
    enable_prioritization: bool = True
    enable_summarization: bool = True
    enable_chunking: bool = True
    preserve_critical_context: bool = True
    aggressive_reduction_threshold: float = DEFAULT_AGGRESSIVE_REDUCTION_THRESHOLD
    raise_on_failure: bool = False
    priority_patterns: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)
    important_terms: Dict[str, List[str]] = field(default_factory=dict)
    chunk_keywords: Dict[str, List[str]] = field(default_factory=dict)

    _FLAGS = (
        "enable_provider_switch",
        "enable_prioritization",
        "enable_summarization",
        "enable_chunking",
        "preserve_critical_context",
        "raise_on_failure",
    )

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any], base: Optional["FallbackConfig"] = None) -> "FallbackConfig":
        """Create config from TOML dict (typically [fallback] section).

        Args:
            data: Dict from TOML parsing
            base: Config supplying values for missing or invalid keys

        Returns:
            FallbackConfig instance
        """
        config = base or cls()
        result = cls(
            **{flag: _bool_field(data, flag, getattr(config, flag), "fallback") for flag in cls._FLAGS},
            aggressive_reduction_threshold=config.aggressive_reduction_threshold,
            priority_patterns=dict(config.priority_patterns),
            important_terms=dict(config.important_terms),
            chunk_keywords=dict(config.chunk_keywords),
        )

        if "aggressive_reduction_threshold" in data:
            threshold = _try_parse(
                data["aggressive_reduction_threshold"],
                float,
                source="[fallback].aggressive_reduction_threshold",
            )
            if threshold is not None and 0.0 <= threshold <= 100.0:
                result.aggressive_reduction_threshold = threshold
            elif threshold is not None:
                logger.warning("Ignoring [fallback].aggressive_reduction_threshold %r: must be 0-100", threshold)

        patterns = data.get("priority_patterns", {})
        if isinstance(patterns, dict):
            for document_type, levels in patterns.items():
                if not isinstance(levels, dict):
                    logger.warning("Ignoring [fallback.priority_patterns].%s: expected a table", document_type)
                    continue
                parsed_levels: Dict[str, List[str]] = {}
                for level in ("high", "medium", "low"):
                    if level in levels:
                        values = _string_list(levels[level], f"[fallback.priority_patterns.{document_type}].{level}")
                        if values is not None:
                            parsed_levels[level] = values
                result.priority_patterns[str(document_type).lower()] = parsed_levels

        for key in ("important_terms", "chunk_keywords"):
            table = data.get(key, {})
            if not isinstance(table, dict):
                logger.warning("Ignoring [fallback].%s: expected a table, got %r", key, table)
                continue
            target = getattr(result, key)
            for document_type, values in table.items():
                parsed = _string_list(values, f"[fallback.{key}].{document_type}")
                if parsed is not None:
                    target[str(document_type).lower()] = parsed
        return result

    def to_options(self) -> FallbackOptions:
        return FallbackOptions(
            enable_provider_switch=self.enable_provider_switch,
            enable_prioritization=self.enable_prioritization,
            enable_summarization=self.enable_summarization,
            enable_chunking=self.enable_chunking,
            preserve_critical_context=self.preserve_critical_context,
            aggressive_reduction_threshold=self.aggressive_reduction_threshold,
            raise_on_failure=self.raise_on_failure,
        )

    def to_rules(self) -> FallbackRules:
        """Built-in pattern tables with this config's overrides merged on top."""
        return FallbackRules.defaults().merged(
            priority_patterns=self.priority_patterns,
            important_terms=self.important_terms,
            chunk_keywords=self.chunk_keywords,
        )


@dataclass
class ProvidersConfig:
    """Configuration for the providers a caller may route generation to.

    Attributes:
        configured: Ordered ``provider:model`` specs
        limits: Window overrides keyed by ``provider`` or ``provider:model``
            (``context_window``, ``max_output_tokens``, ``output_reserved``)
    """

    configured: List[str] = field(default_factory=list)
    limits: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any], base: Optional["ProvidersConfig"] = None) -> "ProvidersConfig":
        """Create config from TOML dict (typically [providers] section).

        Args:
            data: Dict from TOML parsing
            base: Config supplying values for missing keys

        Returns:
            ProvidersConfig instance
        """
        config = base or cls()
        result = cls(configured=list(config.configured), limits=dict(config.limits))
        if "configured" in data:
            result.configured = _parse_provider_list(data["configured"], source="[providers].configured")

        limits = data.get("limits", {})
        if not isinstance(limits, dict):
            logger.warning("Ignoring [providers].limits: expected a table, got %r", limits)
            return result
        for key, values in limits.items():
            if not isinstance(values, dict):
                logger.warning("Ignoring [providers.limits].%s: expected a table", key)
                continue
            parsed: Dict[str, Any] = {}
            for name, minimum in (("context_window", 1), ("max_output_tokens", 1), ("output_reserved", 0)):
                if name in values:
                    value = _try_parse(values[name], int, source=f"[providers.limits.{key}].{name}")
                    if value is not None and value >= minimum:
                        parsed[name] = value
                    elif value is not None:
                        logger.warning(
                            "Ignoring [providers.limits.%s].%s %r: must be >= %d", key, name, value, minimum
                        )
            if "budgeting_mode" in values:
                try:
                    parsed["budgeting_mode"] = BudgetingMode(str(values["budgeting_mode"]).lower()).value
                except ValueError:
                    logger.warning(
                        "Ignoring [providers.limits.%s].budgeting_mode: invalid value %r", key, values["budgeting_mode"]
                    )
            limit_key = str(key).lower()
            provider, _, model = limit_key.partition(":")
            trial = dict(result.limits.get(provider, {})) if model else {}
            trial.update(parsed)
            try:
                get_model_limits(provider, model or None, config_overrides=trial or None)
            except ValueError as e:
                logger.warning("Ignoring [providers.limits.%s]: %s", key, e)
                continue
            result.limits[limit_key] = parsed
        return result

    def to_registry(self) -> ProviderCapabilityRegistry:
        return ProviderCapabilityRegistry(configured=self.configured, overrides=self.limits)
