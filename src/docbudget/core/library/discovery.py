"""File discovery and priority scoring.

Walks a project root, keeps files matched by the include patterns and not
by the exclude patterns, drops files outside the size bounds, then
categorizes and scores each survivor. Patterns are POSIX globs relative to
the root; ``**/`` matches zero or more directories.
"""

import fnmatch
import itertools
import logging
import os
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional, Sequence, Union

from docbudget.core.library.constants import (
    CONFIGURATION_EXTENSIONS,
    DATA_EXTENSIONS,
    DEFAULT_CATEGORY_WEIGHTS,
    DEFAULT_EXCLUDE_PATTERNS,
    DEFAULT_INCLUDE_PATTERNS,
    DOCUMENTATION_EXTENSIONS,
    IMPORTANT_FILE_BOOST,
    IMPORTANT_FILE_NAMES,
    SCRIPT_EXTENSIONS,
    SHALLOW_PATH_BOOST,
    SHALLOW_PATH_MAX_SEGMENTS,
    SOURCE_EXTENSIONS,
    UNKNOWN_CATEGORY_WEIGHT,
)
from docbudget.core.library.models import CandidateFile, FileCategory, LibraryLoadOptions

logger = logging.getLogger(__name__)


@lru_cache(maxsize=512)
def _pattern_variants(pattern: str) -> tuple[str, ...]:
    """Expand a glob so each ``**/`` may also match zero directories.

    fnmatch's ``*`` already crosses ``/``, so only the empty-directory case
    needs extra variants.
    """
    parts = pattern.split("**/")
    if len(parts) == 1:
        return (pattern,)
    variants = []
    for keep in itertools.product(("**/", ""), repeat=len(parts) - 1):
        rebuilt = parts[0]
        for joiner, part in zip(keep, parts[1:]):
            rebuilt += joiner + part
        variants.append(rebuilt)
    return tuple(dict.fromkeys(variants))


def matches_pattern(rel_path: str, pattern: str) -> bool:
    """True if a POSIX relative path matches a glob pattern."""
    return any(fnmatch.fnmatchcase(rel_path, variant) for variant in _pattern_variants(pattern))


def matches_any(rel_path: str, patterns: Iterable[str]) -> bool:
    return any(matches_pattern(rel_path, pattern) for pattern in patterns)


def _prunes_directory(rel_dir: str, exclude_patterns: Sequence[str]) -> bool:
    """True if every path under ``rel_dir`` is excluded by a ``.../**`` pattern."""
    for pattern in exclude_patterns:
        if pattern.endswith("/**") and matches_pattern(rel_dir, pattern[:-3]):
            return True
    return False


def categorize_file(rel_path: str) -> FileCategory:
    """Assign a content category from path segments and extension.

    Rules are checked in order; the first hit wins.
    """
    lowered = rel_path.lower()
    extension = lowered.rsplit(".", 1)[-1] if "." in PurePosixPath(lowered).name else ""

    def under(*dirs: str) -> bool:
        return any(f"{d}/" in lowered for d in dirs)

    if under("docs", "documentation") or extension in DOCUMENTATION_EXTENSIONS:
        return FileCategory.DOCUMENTATION
    if under("src") or extension in SOURCE_EXTENSIONS:
        return FileCategory.SOURCE_CODE
    if extension in CONFIGURATION_EXTENSIONS or under("config"):
        return FileCategory.CONFIGURATION
    if under("templates", "template"):
        return FileCategory.TEMPLATES
    if extension in DATA_EXTENSIONS or under("data"):
        return FileCategory.DATA
    if under("test", "tests", "spec"):
        return FileCategory.TESTS
    if under("scripts", "script") or extension in SCRIPT_EXTENSIONS:
        return FileCategory.SCRIPTS
    if under("examples", "example"):
        return FileCategory.EXAMPLES
    return FileCategory.OTHER


def score_file(
    rel_path: str,
    category: FileCategory,
    category_weights: Optional[dict[str, float]] = None,
) -> float:
    """Score a file in [0, 1].

    Starts from the category weight, adds a one-time boost for well-known
    project files and a boost for shallow paths, then caps at 1.0. Boosts
    only ever raise the score.
    """
    weights = category_weights if category_weights is not None else DEFAULT_CATEGORY_WEIGHTS
    priority = weights.get(category.value, UNKNOWN_CATEGORY_WEIGHT)

    file_name = PurePosixPath(rel_path).name.lower()
    if any(important in file_name for important in IMPORTANT_FILE_NAMES):
        priority += IMPORTANT_FILE_BOOST

    if len(rel_path.split("/")) <= SHALLOW_PATH_MAX_SEGMENTS:
        priority += SHALLOW_PATH_BOOST

    return min(1.0, max(0.0, priority))


class FileDiscovery:
    """Enumerate and score candidate files under a project root.

    Example:
        discovery = FileDiscovery()
        candidates = discovery.discover("/path/to/project")
    """

    def discover(
        self,
        root: Union[str, Path],
        include_patterns: Optional[Sequence[str]] = None,
        exclude_patterns: Optional[Sequence[str]] = None,
        options: Optional[LibraryLoadOptions] = None,
    ) -> list[CandidateFile]:
        """Discover candidate files under ``root``.

        Explicit pattern arguments take precedence over those in ``options``;
        both fall back to the default pattern sets. Each file is returned at
        most once, in sorted path order.

        Args:
            root: Project root directory
            include_patterns: Globs a file must match (any)
            exclude_patterns: Globs that exclude a file (any)
            options: Size bounds and category weight overrides

        Returns:
            List of scored CandidateFile entries
        """
        options = options or LibraryLoadOptions()
        includes = tuple(include_patterns or options.include_patterns or DEFAULT_INCLUDE_PATTERNS)
        excludes = tuple(exclude_patterns or options.exclude_patterns or DEFAULT_EXCLUDE_PATTERNS)
        weights = dict(DEFAULT_CATEGORY_WEIGHTS)
        weights.update(options.category_weights or {})

        root_path = Path(root).resolve()
        if not root_path.is_dir():
            raise NotADirectoryError(f"Discovery root is not a directory: {root}")

        candidates: list[CandidateFile] = []
        for dirpath, dirnames, filenames in os.walk(root_path):
            current = Path(dirpath)
            rel_dir = current.relative_to(root_path).as_posix()

            kept_dirs = []
            for name in sorted(dirnames):
                rel_child = name if rel_dir == "." else f"{rel_dir}/{name}"
                if not _prunes_directory(rel_child, excludes):
                    kept_dirs.append(name)
            dirnames[:] = kept_dirs

            for name in sorted(filenames):
                rel_path = name if rel_dir == "." else f"{rel_dir}/{name}"
                if not matches_any(rel_path, includes) or matches_any(rel_path, excludes):
                    continue

                full_path = current / name
                try:
                    stats = full_path.stat()
                except OSError as e:
                    logger.warning("Could not stat %s: %s", rel_path, e)
                    continue

                if not options.size_in_bounds(stats.st_size):
                    continue

                category = categorize_file(rel_path)
                candidates.append(
                    CandidateFile(
                        path=rel_path,
                        category=category,
                        priority=score_file(rel_path, category, weights),
                        last_modified=datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc),
                        size=stats.st_size,
                        location=full_path,
                    )
                )

        candidates.sort(key=lambda candidate: candidate.path)
        logger.debug("Discovered %d candidate files under %s", len(candidates), root_path)
        return candidates
