"""Constants for the context fallback engine."""

from __future__ import annotations

# =============================================================================
# Engine Constants
# =============================================================================

# Reductions above this percentage need caller confirmation
DEFAULT_AGGRESSIVE_REDUCTION_THRESHOLD = 70.0

# Key used for document types without their own table entry
DEFAULT_DOCUMENT_TYPE = "default"

ALL_STRATEGIES_FAILED = "All fallback strategies failed to reduce context to target size"

# =============================================================================
# Prioritization Patterns
# =============================================================================

# Heading fragments marking high/medium/low priority sections, per document type.
# Matching is case-insensitive containment on the stripped line.
PRIORITY_PATTERNS: dict[str, dict[str, tuple[str, ...]]] = {
    "requirements-specification": {
        "high": (
            "## Requirements",
            "### Functional Requirements",
            "### Non-Functional Requirements",
            "## Acceptance Criteria",
        ),
        "medium": ("## Overview", "## Scope", "## Assumptions", "## Constraints"),
        "low": ("## References", "## Appendices", "## Glossary"),
    },
    "technical-specification": {
        "high": ("## Architecture", "## Technical Requirements", "## System Design", "## API Specifications"),
        "medium": ("## Overview", "## Technology Stack", "## Performance Requirements"),
        "low": ("## References", "## Appendices", "## Glossary"),
    },
    "project-charter": {
        "high": ("## Project Objectives", "## Success Criteria", "## Key Deliverables", "## Project Scope"),
        "medium": ("## Project Overview", "## Stakeholders", "## Timeline"),
        "low": ("## References", "## Appendices"),
    },
    DEFAULT_DOCUMENT_TYPE: {
        "high": ("## Overview", "## Objectives", "## Requirements", "## Specifications"),
        "medium": ("## Background", "## Scope", "## Timeline"),
        "low": ("## References", "## Appendices", "## Glossary"),
    },
}

# =============================================================================
# Summarization Terms
# =============================================================================

# Body lines survive summarization only if they contain one of these terms
IMPORTANT_TERMS: dict[str, tuple[str, ...]] = {
    DEFAULT_DOCUMENT_TYPE: ("requirement", "specification", "objective", "criteria", "deliverable"),
}

# =============================================================================
# Chunking Constants
# =============================================================================

CHUNK_KEYWORDS: dict[str, tuple[str, ...]] = {
    "requirements-specification": ("requirement", "functional", "non-functional", "acceptance", "criteria"),
    "technical-specification": ("architecture", "technical", "system", "api", "design"),
    "project-charter": ("objective", "scope", "deliverable", "stakeholder", "timeline"),
    DEFAULT_DOCUMENT_TYPE: ("overview", "objective", "requirement", "specification"),
}

CHUNK_DIVIDER = "\n\n---\n\n"

# Relevance points per document-type keyword present in a chunk
KEYWORD_SCORE = 10

# Relevance points per markdown heading in a chunk
HEADING_SCORE = 5
