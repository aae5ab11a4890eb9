"""Shared constants for the clustering engine.

Test-file heuristics, keyword stop words, and the cluster color palette.
"""

# Path fragments that mark a test file
TEST_PATH_MARKERS: tuple[str, ...] = (".test.", ".spec.", "__tests__", "/test/")

# Words ignored when extracting cluster keywords: English filler plus
# common language keywords that say nothing about what code does.
STOP_WORDS: frozenset[str] = frozenset({
    "the", "a", "an", "is", "are", "was", "were", "to", "of", "and", "or",
    "in", "on", "at", "for", "with", "this", "that", "from", "by", "as",
    "be", "it", "function", "const", "let", "var", "return", "if", "else",
    "import", "export", "class", "interface", "type", "async", "await",
    "new", "null", "undefined", "true", "false",
    # Python
    "def", "self", "none", "pass", "elif", "not", "lambda", "yield",
})

# Cluster colors, assigned by cluster index
CLUSTER_COLORS: tuple[str, ...] = (
    "#3b82f6",  # blue
    "#10b981",  # green
    "#f59e0b",  # amber
    "#ef4444",  # red
    "#8b5cf6",  # violet
    "#ec4899",  # pink
    "#06b6d4",  # cyan
    "#84cc16",  # lime
)

# Canvas used to grid-position clusters
CLUSTER_CANVAS_WIDTH = 800
CLUSTER_CANVAS_HEIGHT = 600


def is_test_file(path: str) -> bool:
    """Check whether a path looks like a test file.

    Args:
        path: File path (either slash style).

    Returns:
        True if the path contains a test marker.
    """
    normalized = path.replace("\\", "/")
    return any(marker in normalized for marker in TEST_PATH_MARKERS)


def cluster_color(index: int) -> str:
    """Deterministic palette color for the cluster at ``index``."""
    return CLUSTER_COLORS[index % len(CLUSTER_COLORS)]
