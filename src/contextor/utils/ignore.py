"""
Ignore rule handling for contextor.

Rules use gitignore syntax and are evaluated in a fixed order, with the
last matching pattern deciding whether a path is ignored:

1. built-in defaults (version control metadata, dependency directories)
2. ``.*`` - every dot file and dot directory
3. the root's ``.gitignore``
4. runtime patterns (e.g. the output file)
5. user ignore patterns
6. user re-include patterns, applied as ``!pattern``
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

import pathspec

from ..core.models import Config
from .path_utils import PathUtils

logger = logging.getLogger(__name__)

DEFAULT_IGNORE_PATTERNS = [
    ".git",
    ".svn",
    ".hg",
    ".bzr",
    "CVS",
    ".gitignore",
    ".gitattributes",
    ".gitmodules",
    "node_modules",
]

DOT_PATHS_PATTERN = ".*"


def read_gitignore(root: Union[str, Path]) -> str:
    """
    Read ``<root>/.gitignore``.

    A missing file is not an error. Any other failure is logged and
    treated as an empty file.
    """
    gitignore_path = Path(root) / ".gitignore"
    try:
        return gitignore_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ""
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Error reading .gitignore file in {root}: {e}")
        return ""


class IgnoreResolver:
    """Immutable path predicate compiled from an ordered list of ignore rules."""

    def __init__(self, patterns: Iterable[str]):
        self._patterns = tuple(patterns)
        self._spec = pathspec.PathSpec.from_lines("gitwildmatch", self._patterns)

    @property
    def patterns(self) -> tuple:
        return self._patterns

    @classmethod
    def build(cls,
              defaults: Optional[Iterable[str]] = None,
              gitignore_text: Optional[str] = None,
              user_patterns: Optional[Iterable[str]] = None,
              reinclude_patterns: Optional[Iterable[str]] = None,
              extra_patterns: Optional[Iterable[str]] = None) -> "IgnoreResolver":
        """Assemble the rule list in evaluation order and compile it."""
        lines: List[str] = list(DEFAULT_IGNORE_PATTERNS if defaults is None else defaults)
        lines.append(DOT_PATHS_PATTERN)
        if gitignore_text:
            lines.extend(gitignore_text.splitlines())
        lines.extend(extra_patterns or [])
        lines.extend(user_patterns or [])
        lines.extend(f"!{pattern}" for pattern in reinclude_patterns or [])
        return cls(lines)

    @classmethod
    def for_root(cls, root: Union[str, Path], config: Config) -> "IgnoreResolver":
        """Build the resolver for one scan root from its .gitignore and the config."""
        return cls.build(
            gitignore_text=read_gitignore(root),
            user_patterns=config.ignore_patterns,
            reinclude_patterns=config.include_dot_files,
            extra_patterns=config.extra_ignore_patterns,
        )

    def matches(self, relative_path: str, is_directory: bool = False) -> bool:
        """
        Check whether a path relative to the scan root is ignored.

        Directories are checked with a trailing slash so that directory-only
        patterns (``build/``) and re-includes like ``.config/**`` apply to
        the directory itself.
        """
        path = PathUtils.normalize_path(relative_path).strip("/")
        if not path:
            return False
        if is_directory:
            path += "/"
        return self._spec.match_file(path)
