"""Dominant-language detection from file extensions."""

from collections import Counter
from typing import Dict, Iterable

from .models import FileNode
from ..utils.path_utils import PathUtils
from ..utils.tree_builder import FileTreeBuilder

UNKNOWN_LANGUAGE = "unknown"

EXTENSION_LANGUAGES: Dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".py": "python",
    ".java": "java",
    ".cs": "csharp",
    ".cpp": "cpp",
    ".cxx": "cpp",
    ".cc": "cpp",
    ".c": "cpp",
    ".h": "cpp",
    ".hpp": "cpp",
    ".php": "php",
    ".rb": "ruby",
    ".go": "go",
    ".rs": "rust",
    ".swift": "swift",
    ".kt": "kotlin",
    ".kts": "kotlin",
    ".scala": "scala",
    ".zig": "zig",
}


def detect_language(nodes: Iterable[FileNode]) -> str:
    """
    Return the project language implied by the most common file extension.

    Accepts a tree or an already flattened leaf list; directories are never
    counted. Ties go to the extension seen first. Returns "unknown" when
    there are no files or the winning extension maps to no language.
    """
    histogram = Counter(PathUtils.extension(leaf.path) for leaf in FileTreeBuilder.flatten(nodes))
    if not histogram:
        return UNKNOWN_LANGUAGE

    # most_common keeps first-encountered order among equal counts
    primary_extension, _ = histogram.most_common(1)[0]
    return EXTENSION_LANGUAGES.get(primary_extension, UNKNOWN_LANGUAGE)
