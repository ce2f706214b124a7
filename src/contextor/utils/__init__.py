"""Utility modules for contextor."""

from .ignore import IgnoreResolver
from .encodings import EncodingDetector
from .path_utils import PathUtils
from .tree_builder import FileTreeBuilder

__all__ = ["IgnoreResolver", "EncodingDetector", "PathUtils", "FileTreeBuilder"]
