"""External dependency extraction from file content.

Recognises JavaScript/TypeScript module references (``import x from 'y'``,
``import 'y'``, ``import('y')``, ``require('y')``) and Python imports
(``import x``, ``from x import y``). Relative and absolute path references
are not dependencies and are dropped.
"""

import re
from pathlib import PurePosixPath

from docbudget.core.library.constants import JS_FAMILY_EXTENSIONS, PYTHON_EXTENSIONS

_JS_PATTERNS = (
    re.compile(r"""\bfrom\s+['"]([^'"]+)['"]"""),
    re.compile(r"""\bimport\s*\(?\s*['"]([^'"]+)['"]"""),
    re.compile(r"""\brequire\s*\(\s*['"]([^'"]+)['"]\s*\)"""),
)

_PY_IMPORT = re.compile(r"^[ \t]*import[ \t]+([\w.]+(?:[ \t]*,[ \t]*[\w.]+)*)", re.MULTILINE)
_PY_FROM_IMPORT = re.compile(r"^[ \t]*from[ \t]+(\.*[\w.]*)[ \t]+import\b", re.MULTILINE)


def _is_external(reference: str) -> bool:
    return bool(reference) and not reference.startswith((".", "/"))


def _extract_js(content: str) -> list[tuple[int, str]]:
    found = []
    for pattern in _JS_PATTERNS:
        for match in pattern.finditer(content):
            found.append((match.start(), match.group(1)))
    return found


def _extract_python(content: str) -> list[tuple[int, str]]:
    found = []
    for match in _PY_IMPORT.finditer(content):
        for name in match.group(1).split(","):
            found.append((match.start(), name.strip()))
    for match in _PY_FROM_IMPORT.finditer(content):
        found.append((match.start(), match.group(1)))
    return found


def extract_dependencies(content: str, path: str) -> tuple[str, ...]:
    """Extract the external dependencies a file references.

    Dependencies are returned in order of first appearance, without
    duplicates. Files that are neither JS-family nor Python yield none.

    Args:
        content: File text
        path: File path; its extension selects the syntax to scan for

    Returns:
        Tuple of module references
    """
    extension = PurePosixPath(path).suffix.lower().lstrip(".")
    if extension in JS_FAMILY_EXTENSIONS:
        found = _extract_js(content)
    elif extension in PYTHON_EXTENSIONS:
        found = _extract_python(content)
    else:
        return ()

    found.sort(key=lambda item: item[0])
    ordered = dict.fromkeys(ref for _, ref in found if _is_external(ref))
    return tuple(ordered)
