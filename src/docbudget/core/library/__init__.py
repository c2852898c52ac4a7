"""Project library discovery, bounded loading and rendering.

Provides:
    - FileDiscovery: Walk a project root and score candidate files
    - ProjectLibraryLoader: Greedy, token-bounded, memoized library loads
    - library_to_context(): Render a library as structured/concatenated/summarized text
    - get_library_stats(): Per-category statistics for a library
"""

from docbudget.core.library.dependencies import extract_dependencies
from docbudget.core.library.discovery import (
    FileDiscovery,
    categorize_file,
    matches_pattern,
    score_file,
)
from docbudget.core.library.loader import (
    ProjectLibraryLoader,
    compute_ceiling,
    get_library_stats,
    order_candidates,
)
from docbudget.core.library.models import (
    CandidateFile,
    ContextFormat,
    FileCategory,
    LibraryLoadOptions,
    LibraryStats,
    LibrarySummary,
    ProjectFile,
    ProjectLibrary,
)
from docbudget.core.library.profiles import (
    OPTIMIZATION_PROFILES,
    OptimizationProfile,
    get_optimization_profile,
)
from docbudget.core.library.rendering import library_to_context, summarize_file_content

__all__ = [
    # Models
    "CandidateFile",
    "ContextFormat",
    "FileCategory",
    "LibraryLoadOptions",
    "LibraryStats",
    "LibrarySummary",
    "ProjectFile",
    "ProjectLibrary",
    # Discovery
    "FileDiscovery",
    "categorize_file",
    "matches_pattern",
    "score_file",
    # Loading
    "ProjectLibraryLoader",
    "compute_ceiling",
    "order_candidates",
    "get_library_stats",
    "extract_dependencies",
    # Profiles
    "OPTIMIZATION_PROFILES",
    "OptimizationProfile",
    "get_optimization_profile",
    # Rendering
    "library_to_context",
    "summarize_file_content",
]
