"""Local filesystem traversal."""
import logging
import os
from typing import Callable, List, Optional, Sequence, Tuple

from ..core.file_analyzer import FileAnalyzer
from ..core.models import Config, FileNode
from ..utils.ignore import IgnoreResolver
from ..utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


class LocalAdapter:
    """
    Walks one or more local roots and builds the FileNode tree.

    With a single directory root its entries are the top-level nodes. With
    several roots each directory root becomes a top-level directory named
    after it, and file roots become top-level leaves.
    """

    def __init__(self, roots: Sequence[str], config: Optional[Config] = None,
                 resolver_factory: Optional[Callable[[str, Config], IgnoreResolver]] = None):
        """Initialize local adapter with root paths."""
        if not roots:
            raise ValueError("At least one root path is required")

        self.config = config or Config()
        self.file_analyzer = FileAnalyzer(self.config)
        self.resolver_factory = resolver_factory or IgnoreResolver.for_root
        self.roots = [os.path.abspath(root) for root in roots]
        self.errors: List[str] = []

        for root in self.roots:
            if not os.path.exists(root):
                raise ValueError(f"Path does not exist: {root}")

    def traverse(self) -> Tuple[FileNode, ...]:
        """Traverse every root and return the combined tree."""
        nested = len(self.roots) > 1
        nodes: List[FileNode] = []

        for root in self.roots:
            name = os.path.basename(root.rstrip(os.sep))
            if os.path.isdir(root):
                logger.info(f"Processing directory: {root}")
                resolver = self.resolver_factory(root, self.config)
                children = self._traverse_directory(root, root, resolver, name if nested else "")
                if nested:
                    if children:
                        nodes.append(FileNode.directory(name, children))
                else:
                    nodes.extend(children)
            elif os.path.isfile(root):
                node = self._process_file(root, name)
                if node is not None:
                    nodes.append(node)
            else:
                self._record_error(f"Skipping {root}: not a regular file or directory")

        return tuple(nodes)

    def _traverse_directory(self, base_dir: str, current_dir: str,
                            resolver: IgnoreResolver, prefix: str) -> Tuple[FileNode, ...]:
        """Depth-first walk of one directory; empty directories are dropped."""
        logger.debug(f"Traversing directory: {current_dir}")
        try:
            with os.scandir(current_dir) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            self._record_error(f"Error listing contents of {current_dir}: {e}")
            return ()

        result: List[FileNode] = []
        for entry in entries:
            relative_path = PathUtils.relative_to(entry.path, base_dir)
            display_path = PathUtils.join(prefix, relative_path)

            try:
                if entry.is_symlink():
                    logger.debug(f"Skipping symlink: {relative_path}")
                    continue
                is_dir = entry.is_dir()
                is_file = entry.is_file()
            except OSError as e:
                self._record_error(f"Error reading {relative_path}: {e}")
                continue

            if resolver.matches(relative_path, is_directory=is_dir):
                logger.debug(f"Ignoring: {relative_path}")
                continue

            if is_dir:
                children = self._traverse_directory(base_dir, entry.path, resolver, prefix)
                if children:
                    result.append(FileNode.directory(display_path, children))
            elif is_file:
                node = self._process_file(entry.path, display_path)
                if node is not None:
                    result.append(node)

        return tuple(result)

    def _has_allowed_extension(self, file_path: str) -> bool:
        if self.config.extensions is None:
            return True
        return PathUtils.extension(file_path).lstrip('.') in self.config.extensions

    def _process_file(self, file_path: str, display_path: str) -> Optional[FileNode]:
        """Classify and read one file; None when it is skipped."""
        if not self._has_allowed_extension(file_path):
            logger.debug(f"Skipping file due to extension: {display_path}")
            return None

        if not self.file_analyzer.is_text_file(file_path):
            logger.debug(f"Skipping non-text file: {display_path}")
            return None

        content, error = self.file_analyzer.read_file_content(file_path)
        if content is None:
            self._record_error(f"{display_path}: {error}")
            return None

        logger.debug(f"Processing file: {display_path}")
        return FileNode.file(display_path, content)

    def _record_error(self, message: str) -> None:
        logger.warning(message)
        self.errors.append(message)
