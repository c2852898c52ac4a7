"""Tests for rendering a ProjectLibrary into context text."""

from datetime import datetime, timezone

import pytest

from docbudget.core.errors import LibraryFormatError
from docbudget.core.library import (
    ContextFormat,
    FileCategory,
    ProjectFile,
    ProjectLibrary,
    library_to_context,
    summarize_file_content,
)
from docbudget.core.library.constants import (
    ADDITIONAL_FILES_MARKER,
    SUMMARY_TRUNCATED_SUFFIX,
    TRUNCATION_MARKER,
)

MODIFIED = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _file(path, content, priority, category=FileCategory.DOCUMENTATION):
    return ProjectFile(
        path=path,
        content=content,
        tokens=len(content) // 4,
        category=category,
        priority=priority,
        last_modified=MODIFIED,
    )


@pytest.fixture
def library():
    files = [
        _file("README.md", "Project overview for the renderer.", 0.95),
        _file("src/app.py", "def main():\n    return 0\n", 0.9, FileCategory.SOURCE_CODE),
        _file("docs/notes.md", "Loose notes about the design.", 0.5),
    ]
    return ProjectLibrary.build(files, ceiling=900.0)


class TestStructuredFormat:
    """Tests for the structured format."""

    def test_groups_by_category(self, library):
        """Files appear under their category heading with metadata."""
        context = library_to_context(library)

        assert context.startswith("# Project Library Context\n\n")
        assert "## Library Statistics" in context
        assert "- **Total Files:** 3" in context
        assert "## DOCUMENTATION (2 files)" in context
        assert "## SOURCE CODE (1 files)" in context
        assert "### src/app.py\n*Category: source_code | Priority: 0.90 | Tokens: 6*" in context
        assert "```\ndef main():\n    return 0\n\n```" in context

    def test_without_metadata(self, library):
        """Metadata headers and statistics are omitted."""
        context = library_to_context(library, include_metadata=False)

        assert "## Library Statistics" not in context
        assert "*Category:" not in context
        assert "### README.md\n```\n" in context

    def test_selection_order_when_ungrouped(self, library):
        """Ungrouped output follows selection order without category headings."""
        context = library_to_context(library, group_by_category=False)

        assert "## DOCUMENTATION" not in context
        positions = [context.index(f"### {path}") for path in ("README.md", "src/app.py", "docs/notes.md")]
        assert positions == sorted(positions)

    def test_sub_budget_truncates(self, library):
        """Rendering stops at the first file over the sub-budget."""
        context = library_to_context(library, max_tokens=1)

        assert context.endswith(TRUNCATION_MARKER)
        assert "### README.md" not in context

    def test_zero_sub_budget_renders_no_files(self, library):
        """A zero sub-budget is a budget, not "unlimited"."""
        for context_format in ContextFormat:
            context = library_to_context(library, context_format, max_tokens=0)
            assert "Project overview for the renderer." not in context

    def test_negative_sub_budget_rejected(self, library):
        """A negative sub-budget raises ValueError."""
        with pytest.raises(ValueError, match="non-negative"):
            library_to_context(library, max_tokens=-1)

    def test_accepts_format_string(self, library):
        """Format may be given by its string value."""
        assert library_to_context(library, "structured") == library_to_context(library, ContextFormat.STRUCTURED)


class TestConcatenatedFormat:
    """Tests for the concatenated format."""

    def test_flat_dump_in_selection_order(self, library):
        """Files are delimited in selection order after a one-line header."""
        context = library_to_context(library, ContextFormat.CONCATENATED)

        assert context.startswith(f"Project Library (3 files, {library.total_tokens:,} tokens)\n\n")
        assert "\n=== README.md ===\nProject overview for the renderer.\n" in context
        assert context.index("=== src/app.py ===") < context.index("=== docs/notes.md ===")

    def test_no_header_without_metadata(self, library):
        """Without metadata the output starts with the first file."""
        context = library_to_context(library, ContextFormat.CONCATENATED, include_metadata=False)
        assert context.startswith("\n=== README.md ===\n")


class TestSummarizedFormat:
    """Tests for the summarized format."""

    def test_only_key_files_rendered(self, library):
        """Only files above the key-file priority get a content section."""
        context = library_to_context(library, ContextFormat.SUMMARIZED)

        assert context.startswith("# Project Library Summary\n\n")
        assert "## Category Breakdown" in context
        assert "- **documentation**: 2 files" in context
        assert "\n## README.md\nProject overview for the renderer.\n" in context
        assert "\n## src/app.py\n" in context
        assert "\n## docs/notes.md\n" not in context

    def test_long_content_summarized(self):
        """Key file content is cut to the per-file character budget."""
        library = ProjectLibrary.build([_file("README.md", "word " * 200, 0.95)], ceiling=900.0)
        context = library_to_context(library, ContextFormat.SUMMARIZED)
        assert SUMMARY_TRUNCATED_SUFFIX in context

    def test_additional_files_marker(self, library):
        """Key files past the sub-budget are replaced by a marker."""
        context = library_to_context(library, ContextFormat.SUMMARIZED, max_tokens=1)
        assert context.endswith(ADDITIONAL_FILES_MARKER)


class TestUnknownFormat:
    """Tests for format validation."""

    def test_unknown_format_raises(self, library):
        """An unknown format raises LibraryFormatError."""
        with pytest.raises(LibraryFormatError, match="Unknown format: xml") as exc_info:
            library_to_context(library, "xml")
        assert isinstance(exc_info.value, ValueError)


class TestSummarizeFileContent:
    """Tests for summarize_file_content."""

    def test_short_content_unchanged(self):
        """Content within budget is returned unchanged."""
        assert summarize_file_content("short text") == "short text"

    def test_clean_break_beyond_threshold(self):
        """A space beyond 80% of the budget is used as the cut point."""
        content = "a" * 450 + " " + "b" * 200
        assert summarize_file_content(content) == "a" * 450 + SUMMARY_TRUNCATED_SUFFIX

    def test_hard_cut_when_break_too_early(self):
        """An early break point is ignored in favour of an exact cut."""
        content = "a" * 100 + " " + "b" * 600
        assert summarize_file_content(content) == content[:500] + SUMMARY_TRUNCATED_SUFFIX

    def test_newline_break(self):
        """Newlines count as break points."""
        content = "x" * 420 + "\n" + "y" * 200
        assert summarize_file_content(content) == "x" * 420 + SUMMARY_TRUNCATED_SUFFIX
