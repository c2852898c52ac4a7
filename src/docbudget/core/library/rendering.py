"""Render a ProjectLibrary into a single context string."""

import logging
from typing import Optional, Union

from docbudget.core.errors import LibraryFormatError
from docbudget.core.library.constants import (
    ADDITIONAL_FILES_MARKER,
    KEY_FILE_PRIORITY,
    SUMMARY_BREAK_RATIO,
    SUMMARY_CHAR_BUDGET,
    SUMMARY_TRUNCATED_SUFFIX,
    TRUNCATION_MARKER,
)
from docbudget.core.library.loader import get_library_stats
from docbudget.core.library.models import ContextFormat, ProjectFile, ProjectLibrary
from docbudget.core.token_management import TokenEstimator, estimate_tokens

logger = logging.getLogger(__name__)


class _ContextBuilder:
    """Accumulates rendered parts against an optional token sub-budget."""

    def __init__(self, estimator: TokenEstimator, max_tokens: Optional[int]):
        self._estimate = estimator
        self.max_tokens = max_tokens
        self.parts: list[str] = []
        self.tokens = 0

    def add(self, text: str) -> None:
        self.parts.append(text)
        self.tokens += self._estimate(text)

    def fits(self, text: str) -> bool:
        if self.max_tokens is None:
            return True
        return self.tokens + self._estimate(text) <= self.max_tokens

    def add_if_fits(self, text: str) -> bool:
        if not self.fits(text):
            return False
        self.add(text)
        return True

    def build(self) -> str:
        return "".join(self.parts)


def _file_section(project_file: ProjectFile, include_metadata: bool) -> str:
    section = f"### {project_file.path}\n"
    if include_metadata:
        section += (
            f"*Category: {project_file.category.value} | Priority: {project_file.priority:.2f} "
            f"| Tokens: {project_file.tokens}*\n\n"
        )
    section += f"```\n{project_file.content}\n```\n\n"
    return section


def summarize_file_content(content: str, max_length: int = SUMMARY_CHAR_BUDGET) -> str:
    """Cut content to ``max_length`` characters, preferring a clean break.

    A newline or space boundary is used when it lies beyond 80% of the
    budget; otherwise the cut is made at exactly ``max_length``.
    """
    if len(content) <= max_length:
        return content

    truncated = content[:max_length]
    break_point = max(truncated.rfind("\n"), truncated.rfind(" "))
    if break_point > max_length * SUMMARY_BREAK_RATIO:
        return content[:break_point] + SUMMARY_TRUNCATED_SUFFIX
    return truncated + SUMMARY_TRUNCATED_SUFFIX


def _structured(
    library: ProjectLibrary,
    builder: _ContextBuilder,
    include_metadata: bool,
    group_by_category: bool,
) -> None:
    builder.add("# Project Library Context\n\n")

    if include_metadata:
        categories = ", ".join(category.value for category in library.categories)
        builder.add(
            "\n## Library Statistics\n"
            f"- **Total Files:** {library.total_files}\n"
            f"- **Total Tokens:** {library.total_tokens:,}\n"
            f"- **Categories:** {categories}\n"
            f"- **Source Code Files:** {library.summary.source_code_files}\n"
            f"- **Documentation Files:** {library.summary.documentation_files}\n"
            f"- **Configuration Files:** {library.summary.configuration_files}\n\n"
        )

    if group_by_category:
        for category, files in library.categories.items():
            builder.add(f"\n## {category.heading} ({len(files)} files)\n\n")
            for project_file in files:
                if not builder.add_if_fits(_file_section(project_file, include_metadata)):
                    builder.add(TRUNCATION_MARKER)
                    return
        return

    for project_file in library.files:
        if not builder.add_if_fits(_file_section(project_file, include_metadata)):
            builder.add(TRUNCATION_MARKER)
            return


def _concatenated(library: ProjectLibrary, builder: _ContextBuilder, include_metadata: bool) -> None:
    if include_metadata:
        builder.add(f"Project Library ({library.total_files} files, {library.total_tokens:,} tokens)\n\n")

    for project_file in library.files:
        if not builder.add_if_fits(f"\n=== {project_file.path} ===\n{project_file.content}\n"):
            builder.add(TRUNCATION_MARKER)
            return


def _summarized(library: ProjectLibrary, builder: _ContextBuilder) -> None:
    stats = get_library_stats(library)
    builder.add("# Project Library Summary\n\n")

    breakdown = "\n".join(
        f"- **{category}**: {count} files ({stats.token_breakdown[category]:,} tokens)"
        for category, count in stats.category_breakdown.items()
    )
    largest = "\n".join(f"- **{path}**: {tokens:,} tokens" for path, tokens in stats.largest_files)
    builder.add(
        "\n## Overview\n"
        f"- **Total Files:** {stats.total_files}\n"
        f"- **Total Tokens:** {stats.total_tokens:,}\n"
        f"- **Average File Size:** {stats.average_file_size:.0f} tokens\n\n"
        f"## Category Breakdown\n{breakdown}\n\n"
        f"## Largest Files\n{largest}\n\n"
    )

    key_files = sorted(
        (f for f in library.files if f.priority > KEY_FILE_PRIORITY),
        key=lambda f: -f.priority,
    )
    for project_file in key_files:
        section = f"\n## {project_file.path}\n{summarize_file_content(project_file.content)}\n"
        if not builder.add_if_fits(section):
            builder.add(ADDITIONAL_FILES_MARKER)
            return


def library_to_context(
    library: ProjectLibrary,
    format: Union[ContextFormat, str] = ContextFormat.STRUCTURED,
    *,
    max_tokens: Optional[int] = None,
    include_metadata: bool = True,
    group_by_category: bool = True,
    estimator: Optional[TokenEstimator] = None,
) -> str:
    """Render a library into one context string.

    Args:
        library: Library to render
        format: structured, concatenated or summarized
        max_tokens: Optional token sub-budget; rendering stops at the first
            file that would cross it and a truncation marker is appended
        include_metadata: Include statistics and per-file metadata headers
        group_by_category: Structured format only; group files by category
            instead of selection order
        estimator: Token estimator for the sub-budget (default heuristic)

    Returns:
        The rendered context

    Raises:
        LibraryFormatError: If ``format`` is not a known format
        ValueError: If ``max_tokens`` is negative
    """
    try:
        context_format = ContextFormat(format)
    except ValueError:
        raise LibraryFormatError(str(format)) from None
    if max_tokens is not None and max_tokens < 0:
        raise ValueError(f"max_tokens must be non-negative, got {max_tokens}")

    builder = _ContextBuilder(estimator or estimate_tokens, max_tokens)

    if context_format == ContextFormat.STRUCTURED:
        _structured(library, builder, include_metadata, group_by_category)
    elif context_format == ContextFormat.CONCATENATED:
        _concatenated(library, builder, include_metadata)
    else:
        _summarized(library, builder)

    logger.debug("Generated %s context: %s tokens", context_format.value, f"{builder.tokens:,}")
    return builder.build()
