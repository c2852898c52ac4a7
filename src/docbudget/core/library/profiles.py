"""Document-type optimization profiles for library loading.

A profile narrows discovery to the files that matter most for one kind of
generated document and re-weights categories accordingly.
"""

from dataclasses import dataclass
from typing import Optional

from docbudget.core.library.constants import (
    DEFAULT_CATEGORY_WEIGHTS,
    DEFAULT_EXCLUDE_PATTERNS,
    DEFAULT_INCLUDE_PATTERNS,
)
from docbudget.core.library.models import LibraryLoadOptions


@dataclass(frozen=True)
class OptimizationProfile:
    """Discovery patterns and category weights for a document type."""

    include_patterns: tuple[str, ...]
    exclude_patterns: tuple[str, ...]
    category_weights: dict[str, float]

    def to_options(self, max_tokens: int, base: Optional[LibraryLoadOptions] = None) -> LibraryLoadOptions:
        """Layer this profile over ``base`` options.

        The profile supplies the budget and discovery patterns. Its category
        weights sit under any weights ``base`` sets; size bounds, recency and
        dependency extraction come from ``base``.
        """
        if base is None:
            base = LibraryLoadOptions(max_tokens=max_tokens)
        weights = dict(self.category_weights)
        weights.update(base.category_weights or {})
        return base.model_copy(
            update={
                "max_tokens": max_tokens,
                "include_patterns": self.include_patterns,
                "exclude_patterns": self.exclude_patterns,
                "category_weights": weights,
            }
        )


_REQUIREMENTS_PROFILE = OptimizationProfile(
    include_patterns=(
        "**/*.md",
        "**/README*",
        "**/package.json",
        "**/pyproject.toml",
        "**/tsconfig.json",
        "**/src/**/*.ts",
        "**/src/**/*.py",
        "**/docs/**/*",
        "**/templates/**/*",
    ),
    exclude_patterns=DEFAULT_EXCLUDE_PATTERNS,
    category_weights={
        "documentation": 1.0,
        "configuration": 0.9,
        "source_code": 0.7,
        "templates": 0.8,
        "data": 0.5,
    },
)

_DESIGN_PROFILE = OptimizationProfile(
    include_patterns=(
        "**/src/**/*.ts",
        "**/src/**/*.js",
        "**/src/**/*.py",
        "**/docs/**/*.md",
        "**/README*",
        "**/package.json",
        "**/pyproject.toml",
        "**/tsconfig.json",
        "**/webpack.config.*",
        "**/jest.config.*",
    ),
    exclude_patterns=DEFAULT_EXCLUDE_PATTERNS,
    category_weights={
        "source_code": 1.0,
        "documentation": 0.9,
        "configuration": 0.8,
        "templates": 0.6,
        "tests": 0.7,
    },
)

_QUALITY_PROFILE = OptimizationProfile(
    include_patterns=(
        "**/tests/**/*",
        "**/src/**/*.ts",
        "**/src/**/*.py",
        "**/jest.config.*",
        "**/package.json",
        "**/pyproject.toml",
        "**/README*",
        "**/docs/**/*.md",
    ),
    exclude_patterns=DEFAULT_EXCLUDE_PATTERNS,
    category_weights={
        "tests": 1.0,
        "source_code": 0.9,
        "configuration": 0.8,
        "documentation": 0.7,
    },
)

DEFAULT_PROFILE = OptimizationProfile(
    include_patterns=DEFAULT_INCLUDE_PATTERNS,
    exclude_patterns=DEFAULT_EXCLUDE_PATTERNS,
    category_weights=dict(DEFAULT_CATEGORY_WEIGHTS),
)

OPTIMIZATION_PROFILES: dict[str, OptimizationProfile] = {
    "project-charter": _REQUIREMENTS_PROFILE,
    "requirements-documentation": _REQUIREMENTS_PROFILE,
    "technical-design": _DESIGN_PROFILE,
    "architecture-design": _DESIGN_PROFILE,
    "quality-metrics": _QUALITY_PROFILE,
    "test-plan": _QUALITY_PROFILE,
}


def get_optimization_profile(document_type: Optional[str]) -> OptimizationProfile:
    """Return the profile for a document type, or the default profile."""
    if not document_type:
        return DEFAULT_PROFILE
    return OPTIMIZATION_PROFILES.get(document_type.lower(), DEFAULT_PROFILE)
