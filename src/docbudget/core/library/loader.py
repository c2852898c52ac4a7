"""Bounded project library loading.

The loader turns an already-discovered, already-scored candidate sequence
into a ProjectLibrary whose total estimated tokens stay within 90% of the
requested budget. Selection is a greedy prefix over the priority-ordered
candidates: the walk stops at the first file that would cross the ceiling.
"""

import hashlib
import json
import logging
import threading
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from docbudget.core.library.constants import LIBRARY_CEILING_RATIO, LARGEST_FILES_LIMIT
from docbudget.core.library.dependencies import extract_dependencies
from docbudget.core.library.discovery import FileDiscovery
from docbudget.core.library.models import (
    CandidateFile,
    LibraryLoadOptions,
    LibraryStats,
    ProjectFile,
    ProjectLibrary,
)
from docbudget.core.library.profiles import get_optimization_profile
from docbudget.core.observability import audit_log
from docbudget.core.token_management import TokenEstimator, estimate_tokens

logger = logging.getLogger(__name__)

FileReader = Callable[[CandidateFile], str]

# Float slack: a 0.9 -> 0.8 gap counts as a full 0.1
_PRIORITY_TOLERANCE = 1e-9


def _read_text(candidate: CandidateFile) -> str:
    return candidate.read_path.read_text(encoding="utf-8")


def compute_ceiling(max_tokens: int) -> float:
    """Working ceiling for a budget, leaving room for the model response."""
    return max_tokens * LIBRARY_CEILING_RATIO


def order_candidates(
    candidates: Sequence[CandidateFile],
    *,
    prioritize_recent: bool = True,
    epsilon: float = 0.1,
) -> list[CandidateFile]:
    """Order candidates for greedy selection.

    Candidates are sorted by priority (descending, path as final tie-break).
    With ``prioritize_recent`` the sorted sequence is cut into runs whose
    priorities all lie within ``epsilon`` of the run's leading priority, and
    each run is re-ordered newest first. Priority dominates: two files are
    only ever swapped when their priorities differ by less than ``epsilon``.
    """
    by_priority = sorted(candidates, key=lambda c: (-c.priority, c.path))
    if not prioritize_recent or not by_priority:
        return by_priority

    ordered: list[CandidateFile] = []
    run: list[CandidateFile] = []
    leader = by_priority[0].priority
    for candidate in by_priority:
        if run and leader - candidate.priority >= epsilon - _PRIORITY_TOLERANCE:
            ordered.extend(sorted(run, key=lambda c: (-c.last_modified.timestamp(), -c.priority, c.path)))
            run = []
            leader = candidate.priority
        run.append(candidate)
    ordered.extend(sorted(run, key=lambda c: (-c.last_modified.timestamp(), -c.priority, c.path)))
    return ordered


def get_library_stats(library: ProjectLibrary) -> LibraryStats:
    """Compute per-category file and token statistics.

    ``library.files`` is left in selection order.
    """
    category_breakdown: dict[str, int] = {}
    token_breakdown: dict[str, int] = {}
    for project_file in library.files:
        key = project_file.category.value
        category_breakdown[key] = category_breakdown.get(key, 0) + 1
        token_breakdown[key] = token_breakdown.get(key, 0) + project_file.tokens

    largest = sorted(library.files, key=lambda f: (-f.tokens, f.path))[:LARGEST_FILES_LIMIT]
    average = library.total_tokens / library.total_files if library.total_files else 0.0

    return LibraryStats(
        total_files=library.total_files,
        total_tokens=library.total_tokens,
        category_breakdown=category_breakdown,
        token_breakdown=token_breakdown,
        average_file_size=average,
        largest_files=tuple((f.path, f.tokens) for f in largest),
    )


class ProjectLibraryLoader:
    """Load token-bounded project libraries with memoization.

    Each instance owns its own cache, so tests and independent callers can
    hold isolated loaders. The cache is guarded by a lock; concurrent loads
    of the same key may both do the work, and the first to finish wins.

    Args:
        estimator: Token estimator applied to file content
        discovery: File discovery used by ``load_project_library``
        reader: Reads a candidate's text; defaults to UTF-8 from disk

    Example:
        loader = ProjectLibraryLoader()
        library = loader.load_project_library(
            "/path/to/project",
            LibraryLoadOptions(max_tokens=200_000),
        )
    """

    def __init__(
        self,
        estimator: Optional[TokenEstimator] = None,
        discovery: Optional[FileDiscovery] = None,
        reader: Optional[FileReader] = None,
    ):
        self._estimate = estimator or estimate_tokens
        self._discovery = discovery or FileDiscovery()
        self._read = reader or _read_text
        self._cache: dict[tuple[str, str], ProjectLibrary] = {}
        self._lock = threading.Lock()

    @property
    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)

    def clear_cache(self) -> int:
        """Drop all memoized libraries.

        Returns:
            Number of entries cleared
        """
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
        return count

    def load_project_library(
        self,
        root: Union[str, Path],
        options: Optional[LibraryLoadOptions] = None,
    ) -> ProjectLibrary:
        """Discover files under ``root`` and load a bounded library.

        A cached library for the same root and options is returned without
        touching the file system.
        """
        options = options or LibraryLoadOptions()
        source = str(Path(root).resolve())
        cached = self._cache_get((source, options.cache_key()))
        if cached is not None:
            return cached

        candidates = self._discovery.discover(root, options=options)
        return self.load(candidates, options, source=source)

    def load_optimized_library(
        self,
        root: Union[str, Path],
        document_type: str,
        max_tokens: int = 1_000_000,
        base_options: Optional[LibraryLoadOptions] = None,
    ) -> ProjectLibrary:
        """Load a library tuned for one document type.

        The document type's optimization profile is layered over
        ``base_options`` (size bounds, recency, dependency extraction and
        weight overrides); without them recency ordering and dependency
        extraction are on.
        """
        profile = get_optimization_profile(document_type)
        logger.info("Loading optimized library for %s (%s tokens)", document_type, f"{max_tokens:,}")
        return self.load_project_library(root, profile.to_options(max_tokens, base_options))

    def load(
        self,
        candidates: Sequence[CandidateFile],
        options: Optional[LibraryLoadOptions] = None,
        *,
        source: Optional[str] = None,
    ) -> ProjectLibrary:
        """Load a bounded library from scored candidates.

        Args:
            candidates: Discovered, individually scored files
            options: Load options (budget, ordering, size bounds)
            source: Where the candidates came from; part of the cache key.
                When omitted the key is derived from the candidates.

        Returns:
            ProjectLibrary with ``total_tokens <= max_tokens * 0.9``
        """
        options = options or LibraryLoadOptions()
        key = (source or self._fingerprint(candidates), options.cache_key())

        cached = self._cache_get(key)
        if cached is not None:
            return cached

        library = self._select(candidates, options, source=source)

        with self._lock:
            library = self._cache.setdefault(key, library)

        audit_log(
            "library_loaded",
            source=source,
            files=library.total_files,
            tokens=library.total_tokens,
            ceiling=library.ceiling,
            skipped=len(library.warnings),
        )
        logger.info(
            "Loaded project library: %d files, %s tokens (ceiling %s)",
            library.total_files,
            f"{library.total_tokens:,}",
            f"{library.ceiling:,.0f}",
        )
        return library

    def get_library_stats(self, library: ProjectLibrary) -> LibraryStats:
        return get_library_stats(library)

    def _cache_get(self, key: tuple[str, str]) -> Optional[ProjectLibrary]:
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Using cached project library for %s", key[0])
            audit_log("library_cache_hit", source=key[0], files=cached.total_files)
        return cached

    def _fingerprint(self, candidates: Sequence[CandidateFile]) -> str:
        payload = json.dumps([c.cache_fingerprint() for c in candidates], sort_keys=True)
        return "candidates:" + hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]

    def _select(
        self,
        candidates: Sequence[CandidateFile],
        options: LibraryLoadOptions,
        *,
        source: Optional[str],
    ) -> ProjectLibrary:
        ceiling = compute_ceiling(options.max_tokens)
        eligible = [c for c in candidates if options.size_in_bounds(c.size)]
        ordered = order_candidates(
            eligible,
            prioritize_recent=options.prioritize_recent,
            epsilon=options.recency_epsilon,
        )

        selected: list[ProjectFile] = []
        warnings: list[str] = []
        running_total = 0
        seen: set[str] = set()

        for candidate in ordered:
            if candidate.path in seen:
                continue
            seen.add(candidate.path)

            try:
                content = self._read(candidate)
            except (OSError, UnicodeDecodeError) as e:
                message = f"Could not load {candidate.path}: {e}"
                logger.warning(message)
                warnings.append(message)
                audit_log("file_skipped", path=candidate.path, reason=str(e))
                continue

            tokens = self._estimate(content)
            if running_total + tokens > ceiling:
                logger.debug("Stopping at %s - would exceed token limit", candidate.path)
                break

            dependencies = extract_dependencies(content, candidate.path) if options.include_dependencies else ()
            selected.append(
                ProjectFile(
                    path=candidate.path,
                    content=content,
                    tokens=tokens,
                    category=candidate.category,
                    priority=candidate.priority,
                    last_modified=candidate.last_modified,
                    dependencies=dependencies,
                )
            )
            running_total += tokens

        return ProjectLibrary.build(selected, ceiling=ceiling, source=source, warnings=warnings)
