"""Constants for project library discovery, loading and rendering."""

from __future__ import annotations

# =============================================================================
# Loading Constants
# =============================================================================

# Share of max_tokens a library may fill; the rest is response headroom
LIBRARY_CEILING_RATIO = 0.9

# Default token budget for a library load
DEFAULT_MAX_TOKENS = 1_000_000

# Individual file size bounds in bytes
DEFAULT_MIN_FILE_SIZE = 10
DEFAULT_MAX_FILE_SIZE = 50_000

# Candidates whose priorities differ by less than this are ordered by recency
RECENCY_TIE_EPSILON = 0.1

# =============================================================================
# Priority Scoring Constants
# =============================================================================

# Weight for categories missing from the weight table
UNKNOWN_CATEGORY_WEIGHT = 0.5

# Boost for well-known project files (applied once)
IMPORTANT_FILE_BOOST = 0.3

# Boost for files at the root or one directory deep
SHALLOW_PATH_BOOST = 0.2

# Path depth (segments) that still counts as shallow
SHALLOW_PATH_MAX_SEGMENTS = 2

IMPORTANT_FILE_NAMES: tuple[str, ...] = (
    "readme",
    "changelog",
    "license",
    "package.json",
    "pyproject",
    "tsconfig.json",
    "jest.config",
    "webpack.config",
    "main",
    "index",
    "app",
)

DEFAULT_CATEGORY_WEIGHTS: dict[str, float] = {
    "documentation": 1.0,
    "source_code": 0.9,
    "configuration": 0.8,
    "templates": 0.9,
    "data": 0.7,
    "tests": 0.6,
    "scripts": 0.5,
    "examples": 0.6,
}

# =============================================================================
# Pattern Sets
# =============================================================================

DEFAULT_INCLUDE_PATTERNS: tuple[str, ...] = (
    "**/*.md",
    "**/*.ts",
    "**/*.js",
    "**/*.py",
    "**/*.json",
    "**/*.yaml",
    "**/*.yml",
    "**/*.toml",
    "**/*.txt",
    "**/*.csv",
    "**/README*",
    "**/CHANGELOG*",
    "**/LICENSE*",
    "**/package.json",
    "**/tsconfig.json",
    "**/jest.config.*",
    "**/webpack.config.*",
    "**/*.env*",
    "**/docs/**/*",
    "**/src/**/*",
    "**/templates/**/*",
    "**/data/**/*",
    "**/examples/**/*",
    "**/tests/**/*",
    "**/scripts/**/*",
)

DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = (
    "**/node_modules/**",
    "**/dist/**",
    "**/build/**",
    "**/coverage/**",
    "**/.git/**",
    "**/.vscode/**",
    "**/.idea/**",
    "**/bin/**",
    "**/obj/**",
    "**/__pycache__/**",
    "**/.venv/**",
    "**/*.log",
    "**/*.tmp",
    "**/*.cache",
    "**/*.pyc",
    "**/package-lock.json",
    "**/yarn.lock",
    "**/pnpm-lock.yaml",
    "**/poetry.lock",
    "**/.DS_Store",
    "**/Thumbs.db",
)

# =============================================================================
# Categorization Rules
# =============================================================================

DOCUMENTATION_EXTENSIONS = frozenset({"md"})
SOURCE_EXTENSIONS = frozenset({"ts", "js", "tsx", "jsx", "py"})
CONFIGURATION_EXTENSIONS = frozenset({"json", "yaml", "yml", "toml", "ini"})
DATA_EXTENSIONS = frozenset({"csv", "tsv", "xml"})
SCRIPT_EXTENSIONS = frozenset({"sh"})

JS_FAMILY_EXTENSIONS = frozenset({"js", "jsx", "ts", "tsx", "mjs", "cjs"})
PYTHON_EXTENSIONS = frozenset({"py", "pyi"})

# =============================================================================
# Rendering Constants
# =============================================================================

TRUNCATION_MARKER = "\n<!-- Truncated - would exceed token limit -->\n"
ADDITIONAL_FILES_MARKER = "\n<!-- Additional files truncated -->\n"
SUMMARY_TRUNCATED_SUFFIX = "\n\n... (truncated)"

# Files above this priority appear in the summarized format
KEY_FILE_PRIORITY = 0.8

# Per-file character budget in the summarized format
SUMMARY_CHAR_BUDGET = 500

# A clean break must land beyond this share of the character budget
SUMMARY_BREAK_RATIO = 0.8

# Number of files listed under "Largest Files"
LARGEST_FILES_LIMIT = 10
