"""Data models for project library loading.

Provides file categories, discovered candidates, loaded files, the bounded
library container, load options and render formats.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from docbudget.core.library.constants import (
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MIN_FILE_SIZE,
    RECENCY_TIE_EPSILON,
)


class FileCategory(str, Enum):
    """Content category of a project file."""

    DOCUMENTATION = "documentation"
    SOURCE_CODE = "source_code"
    CONFIGURATION = "configuration"
    TEMPLATES = "templates"
    DATA = "data"
    TESTS = "tests"
    SCRIPTS = "scripts"
    EXAMPLES = "examples"
    OTHER = "other"

    @property
    def heading(self) -> str:
        """Heading text used when rendering a category group."""
        return self.value.upper().replace("_", " ")


class ContextFormat(str, Enum):
    """Formats a library can be rendered into.

    Formats:
        STRUCTURED: Grouped by category with per-file metadata headers
        CONCATENATED: Flat file-delimited dump in selection order
        SUMMARIZED: Statistics block plus truncated key files only
    """

    STRUCTURED = "structured"
    CONCATENATED = "concatenated"
    SUMMARIZED = "summarized"


@dataclass(frozen=True)
class CandidateFile:
    """A discovered, individually scored file not yet read.

    Attributes:
        path: POSIX path relative to the discovery root (display and identity)
        category: Content category
        priority: Score in [0, 1]
        last_modified: Modification time (UTC)
        size: Size in bytes when known; used for size-bound filtering
        location: Absolute path to read from; defaults to ``path``
    """

    path: str
    category: FileCategory
    priority: float
    last_modified: datetime
    size: Optional[int] = None
    location: Optional[Path] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.priority <= 1.0:
            raise ValueError(f"priority must be in [0, 1], got {self.priority}")

    @property
    def read_path(self) -> Path:
        return self.location if self.location is not None else Path(self.path)

    def cache_fingerprint(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "category": self.category.value,
            "priority": self.priority,
            "last_modified": self.last_modified.isoformat(),
            "size": self.size,
            "location": str(self.location) if self.location is not None else None,
        }


@dataclass(frozen=True)
class ProjectFile:
    """One loaded content unit. Immutable once created.

    ``tokens`` is estimated once at load time and carried with the file.
    """

    path: str
    content: str
    tokens: int
    category: FileCategory
    priority: float
    last_modified: datetime
    dependencies: tuple[str, ...] = ()


@dataclass(frozen=True)
class LibrarySummary:
    """File counts for the headline categories of a library."""

    source_code_files: int = 0
    documentation_files: int = 0
    configuration_files: int = 0
    template_files: int = 0
    data_files: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "source_code_files": self.source_code_files,
            "documentation_files": self.documentation_files,
            "configuration_files": self.configuration_files,
            "template_files": self.template_files,
            "data_files": self.data_files,
        }


@dataclass(frozen=True)
class ProjectLibrary:
    """Result of one bounded load.

    ``files`` is in selection order. ``categories`` partitions ``files``
    (each bucket keeps selection order) and ``dependencies`` only lists files
    with at least one external dependency. Both mappings are read-only
    views; cached libraries are shared between callers.

    Attributes:
        files: Selected files, highest priority first
        total_tokens: Sum of ``tokens`` over ``files``
        categories: Category -> files in that category
        dependencies: Path -> external dependencies of that file
        summary: Headline category counts
        ceiling: Working token ceiling the load enforced
        source: Discovery root or other candidate source, if known
        warnings: Non-fatal problems hit while loading (unreadable files)
    """

    files: tuple[ProjectFile, ...]
    total_tokens: int
    categories: Mapping[FileCategory, tuple[ProjectFile, ...]]
    dependencies: Mapping[str, tuple[str, ...]]
    summary: LibrarySummary
    ceiling: float
    source: Optional[str] = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def total_files(self) -> int:
        return len(self.files)

    @classmethod
    def build(
        cls,
        files: list[ProjectFile],
        *,
        ceiling: float,
        source: Optional[str] = None,
        warnings: Optional[list[str]] = None,
    ) -> "ProjectLibrary":
        """Assemble a library from selected files, deriving the aggregates."""
        buckets: dict[FileCategory, list[ProjectFile]] = {}
        dependencies: dict[str, tuple[str, ...]] = {}
        total_tokens = 0

        for project_file in files:
            buckets.setdefault(project_file.category, []).append(project_file)
            if project_file.dependencies:
                dependencies[project_file.path] = project_file.dependencies
            total_tokens += project_file.tokens

        summary = LibrarySummary(
            source_code_files=len(buckets.get(FileCategory.SOURCE_CODE, ())),
            documentation_files=len(buckets.get(FileCategory.DOCUMENTATION, ())),
            configuration_files=len(buckets.get(FileCategory.CONFIGURATION, ())),
            template_files=len(buckets.get(FileCategory.TEMPLATES, ())),
            data_files=len(buckets.get(FileCategory.DATA, ())),
        )

        return cls(
            files=tuple(files),
            total_tokens=total_tokens,
            categories=MappingProxyType({category: tuple(bucket) for category, bucket in buckets.items()}),
            dependencies=MappingProxyType(dependencies),
            summary=summary,
            ceiling=ceiling,
            source=source,
            warnings=tuple(warnings or ()),
        )


@dataclass(frozen=True)
class LibraryStats:
    """Aggregate statistics over a library."""

    total_files: int
    total_tokens: int
    category_breakdown: dict[str, int]
    token_breakdown: dict[str, int]
    average_file_size: float
    largest_files: tuple[tuple[str, int], ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_files": self.total_files,
            "total_tokens": self.total_tokens,
            "category_breakdown": dict(self.category_breakdown),
            "token_breakdown": dict(self.token_breakdown),
            "average_file_size": self.average_file_size,
            "largest_files": [{"path": path, "tokens": tokens} for path, tokens in self.largest_files],
        }


class LibraryLoadOptions(BaseModel):
    """Options for one library load.

    The JSON dump of this model is part of the load cache key, so two loads
    with equal options share a cache entry.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, gt=0, description="Token budget before headroom")
    include_patterns: Optional[tuple[str, ...]] = Field(
        default=None, description="Glob patterns to include (None = defaults)"
    )
    exclude_patterns: Optional[tuple[str, ...]] = Field(
        default=None, description="Glob patterns to exclude (None = defaults)"
    )
    prioritize_recent: bool = Field(default=True, description="Break near-ties by modification time")
    include_dependencies: bool = Field(default=True, description="Extract external dependencies per file")
    category_weights: Optional[dict[str, float]] = Field(
        default=None, description="Per-category weight overrides merged over the defaults"
    )
    min_file_size: int = Field(default=DEFAULT_MIN_FILE_SIZE, ge=0)
    max_file_size: int = Field(default=DEFAULT_MAX_FILE_SIZE, gt=0)
    recency_epsilon: float = Field(default=RECENCY_TIE_EPSILON, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_size_bounds(self) -> "LibraryLoadOptions":
        if self.min_file_size > self.max_file_size:
            raise ValueError(
                f"min_file_size ({self.min_file_size}) cannot exceed max_file_size ({self.max_file_size})"
            )
        return self

    def size_in_bounds(self, size: Optional[int]) -> bool:
        """True if a file of ``size`` bytes may be loaded (unknown sizes pass)."""
        if size is None:
            return True
        return self.min_file_size <= size <= self.max_file_size

    def cache_key(self) -> str:
        return self.model_dump_json()
