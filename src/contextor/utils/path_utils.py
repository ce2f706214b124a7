"""Path normalization utilities for cross-platform compatibility."""

import os
from pathlib import PurePosixPath
from typing import List


class PathUtils:
    """Utilities for consistent path handling across platforms."""

    @staticmethod
    def normalize_path(path: str) -> str:
        """
        Normalize path separators to forward slashes.

        Args:
            path: File path with potentially mixed separators

        Returns:
            Path with forward slashes only
        """
        return path.replace('\\', '/')

    @staticmethod
    def normalize_and_split(path: str) -> List[str]:
        """Normalize path and split into non-empty components."""
        return [part for part in PathUtils.normalize_path(path).split('/') if part]

    @staticmethod
    def join(*components: str) -> str:
        """Join components into a forward-slash path, skipping empty ones."""
        return '/'.join(c.strip('/') for c in components if c and c.strip('/'))

    @staticmethod
    def relative_to(path: str, root: str) -> str:
        """Path of ``path`` relative to ``root``, with forward slashes."""
        return PathUtils.normalize_path(os.path.relpath(path, root))

    @staticmethod
    def basename(path: str) -> str:
        return PurePosixPath(PathUtils.normalize_path(path)).name

    @staticmethod
    def extension(path: str) -> str:
        """Lower-cased extension including the dot, or '' when there is none."""
        return PurePosixPath(PathUtils.normalize_path(path)).suffix.lower()

    @staticmethod
    def parent_components(path: str) -> List[str]:
        """Directory components of a path, excluding the final name."""
        return PathUtils.normalize_and_split(path)[:-1]
