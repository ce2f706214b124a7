"""FileNode tree building utilities."""

from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..core.models import FileNode
from .path_utils import PathUtils


class FileTreeBuilder:
    """Utilities for building and transforming FileNode trees.

    Trees are sequences of top-level FileNode objects. Nothing here mutates
    a node; transformations return new nodes for every changed ancestor.
    """

    @staticmethod
    def from_paths(
        files: Dict[str, str],
        token_data: Optional[Dict[str, int]] = None
    ) -> Tuple[FileNode, ...]:
        """
        Build a hierarchical tree from a mapping of file path to content.

        Directories are created in the order their first file appears.

        Args:
            files: Mapping of relative file paths to file contents
            token_data: Optional mapping of file paths to token counts

        Returns:
            Top-level FileNode tuple
        """
        token_data = token_data or {}

        # Nested ordered dicts: name -> subtree dict, or name -> file path
        root: Dict = {}
        for file_path in files:
            parts = PathUtils.normalize_and_split(file_path)
            current = root
            for part in parts[:-1]:
                current = current.setdefault(part, {})
            current[parts[-1]] = file_path

        def build(level: Dict, prefix: str) -> Tuple[FileNode, ...]:
            nodes = []
            for name, value in level.items():
                path = PathUtils.join(prefix, name)
                if isinstance(value, dict):
                    nodes.append(FileNode.directory(path, build(value, path)))
                else:
                    nodes.append(FileNode.file(path, files[value], token_data.get(value)))
            return tuple(nodes)

        return build(root, "")

    @staticmethod
    def flatten(nodes: Iterable[FileNode]) -> List[FileNode]:
        """Return every leaf of the tree in depth-first order."""
        leaves: List[FileNode] = []

        def _collect(level: Iterable[FileNode]) -> None:
            for node in level:
                if node.is_dir:
                    _collect(node.children)
                else:
                    leaves.append(node)

        _collect(nodes)
        return leaves

    @staticmethod
    def paths_from_tree(nodes: Iterable[FileNode]) -> List[str]:
        """Extract all file paths from a tree, in order."""
        return [leaf.path for leaf in FileTreeBuilder.flatten(nodes)]

    @staticmethod
    def total_tokens(nodes: Iterable[FileNode]) -> int:
        """Sum of leaf token counts; uncounted leaves contribute zero."""
        return sum(leaf.token_count or 0 for leaf in FileTreeBuilder.flatten(nodes))

    @staticmethod
    def partition(
        nodes: Sequence[FileNode],
        should_remove: Callable[[FileNode], bool]
    ) -> Tuple[Tuple[FileNode, ...], List[FileNode]]:
        """
        Split the tree into kept nodes and removed leaves.

        Ancestors of removed leaves are rebuilt bottom-up with fresh token
        totals, directories left without children are dropped, and the
        order of surviving siblings is preserved. Directories themselves are
        never reported as removed.

        Returns:
            (kept tree, removed leaves)
        """
        kept: List[FileNode] = []
        removed: List[FileNode] = []

        for node in nodes:
            if node.is_dir:
                children, child_removed = FileTreeBuilder.partition(node.children, should_remove)
                removed.extend(child_removed)
                if not children:
                    continue
                # Unchanged subtrees are shared as-is
                kept.append(node if not child_removed else node.with_children(children))
            elif should_remove(node):
                removed.append(node)
            else:
                kept.append(node)

        return tuple(kept), removed

    @staticmethod
    def prune_empty(nodes: Sequence[FileNode]) -> Tuple[FileNode, ...]:
        """Drop directories with no descendant leaves."""
        kept, _ = FileTreeBuilder.partition(nodes, lambda node: False)
        return kept

    @staticmethod
    def to_tree_string(nodes: Sequence[FileNode], show_tokens: bool = False) -> str:
        """Render the tree with box-drawing connectors."""
        lines: List[str] = []

        def format_recursive(level: Sequence[FileNode], prefix: str) -> None:
            for i, node in enumerate(level):
                is_last = i == len(level) - 1
                connector = "└── " if is_last else "├── "
                label = f"{node.name}/" if node.is_dir else node.name
                if show_tokens and node.token_count is not None:
                    label += f" ({node.token_count:,} tokens)"
                lines.append(f"{prefix}{connector}{label}")
                if node.is_dir:
                    format_recursive(node.children, prefix + ("    " if is_last else "│   "))

        format_recursive(tuple(nodes), "")
        return "\n".join(lines)
