"""Source adapters that turn filesystem paths into FileNode trees."""
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from ..core.models import Config
from .local import LocalAdapter


def _normalize_path(path_str: str) -> str:
    """
    Normalize a path string for cross-platform compatibility.

    Args:
        path_str: Input path string

    Returns:
        Normalized absolute path string
    """
    # On WSL, convert Windows drive paths to mount points
    if sys.platform.startswith('linux') and len(path_str) > 1 and path_str[1] == ':' and path_str[0].isalpha():
        drive_letter = path_str[0].lower()
        remaining_path = path_str[2:].replace('\\', '/')
        return f"/mnt/{drive_letter}{remaining_path}"

    return str(Path(path_str).expanduser().resolve())


def create_adapter(paths: Optional[Sequence[str]], config: Config) -> LocalAdapter:
    """
    Create the adapter for a set of root paths.

    Args:
        paths: Files or directories to scan; the current directory when empty
        config: Configuration object

    Returns:
        LocalAdapter over the normalized roots

    Raises:
        ValueError: If a path does not exist
    """
    roots = [_normalize_path(p) for p in (paths or [os.getcwd()])]
    missing = [p for p in roots if not os.path.exists(p)]
    if missing:
        raise ValueError(
            f"Invalid input: {', '.join(missing)}\n"
            "Expected: existing files or directories"
        )
    return LocalAdapter(roots, config)


__all__ = ['LocalAdapter', 'create_adapter']
