"""
Output formatting for contextor.

Renders a filtered FileNode tree as one document:

- ``xml``: nested ``<directory>``/``<file>`` elements, or with ``flat=True``
  a ``<files>`` block of every leaf followed by a plain ``<file_list>``
- ``json``: a lossless mirror of the tree, or the flat leaf list plus paths
- ``codeblocks``: ``File: <path>`` headers with fenced contents
"""

import json
import logging
import re
from typing import Any, Callable, Dict, List, Sequence, Union

from .models import FileNode, OutputFormat
from ..utils.tree_builder import FileTreeBuilder

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

_BACKTICK_RUN = re.compile(r"`+")

# JSON already escapes '"'; the rest cannot appear outside string literals
_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "'": "\\u0027",
}


def get_available_formats() -> List[str]:
    return [fmt.value for fmt in OutputFormat]


def escape_xml(text: str) -> str:
    """Escape special XML characters."""
    if not text:
        return ""
    return (text
            .replace("&", "&amp;")
            .replace("<", "&lt;")
            .replace(">", "&gt;")
            .replace('"', "&quot;")
            .replace("'", "&apos;"))


def _dumps_json(data: Any) -> str:
    text = json.dumps(data, indent=2, ensure_ascii=False)
    for char, escaped in _JSON_ESCAPES.items():
        text = text.replace(char, escaped)
    return text


def _format_xml_recursive(nodes: Sequence[FileNode], indent_level: int) -> List[str]:
    lines: List[str] = []
    indent = "  " * indent_level

    for node in nodes:
        if node.is_dir:
            lines.append(f"{indent}<directory>")
            lines.append(f"{indent}  <path>{escape_xml(node.path)}</path>")
            lines.extend(_format_xml_recursive(node.children, indent_level + 1))
            lines.append(f"{indent}</directory>")
        else:
            lines.extend(_format_xml_file(node, indent))
    return lines


def _format_xml_file(node: FileNode, indent: str) -> List[str]:
    lines = [
        f"{indent}<file>",
        f"{indent}  <path>{escape_xml(node.path)}</path>",
        f"{indent}  <content>{escape_xml(node.content or '')}</content>",
    ]
    if node.token_count is not None:
        lines.append(f"{indent}  <tokenCount>{node.token_count}</tokenCount>")
    lines.append(f"{indent}</file>")
    return lines


def format_xml(nodes: Sequence[FileNode]) -> str:
    lines = [XML_DECLARATION, "<files>"]
    lines.extend(_format_xml_recursive(nodes, 1))
    lines.append("</files>")
    return "\n".join(lines)


def format_xml_flat(nodes: Sequence[FileNode]) -> str:
    leaves = FileTreeBuilder.flatten(nodes)
    lines = [XML_DECLARATION, "<context>", "  <files>"]
    for leaf in leaves:
        lines.extend(_format_xml_file(leaf, "    "))
    lines.append("  </files>")
    lines.append("  <file_list>")
    lines.extend(escape_xml(leaf.path) for leaf in leaves)
    lines.append("  </file_list>")
    lines.append("</context>")
    return "\n".join(lines)


def node_to_dict(node: FileNode) -> Dict[str, Any]:
    """Serializable mirror of one node and its subtree."""
    data: Dict[str, Any] = {"path": node.path, "isDirectory": node.is_dir}
    if node.is_dir:
        data["children"] = [node_to_dict(child) for child in node.children]
    else:
        data["content"] = node.content or ""
    if node.token_count is not None:
        data["tokenCount"] = node.token_count
    if node.error:
        data["error"] = node.error
    return data


def format_json(nodes: Sequence[FileNode]) -> str:
    return _dumps_json([node_to_dict(node) for node in nodes])


def format_json_flat(nodes: Sequence[FileNode]) -> str:
    leaves = FileTreeBuilder.flatten(nodes)
    return _dumps_json({
        "files": [node_to_dict(leaf) for leaf in leaves],
        "file_list": [leaf.path for leaf in leaves],
    })


def code_fence(content: str) -> str:
    """Backtick fence longer than any backtick run inside content."""
    longest = max((len(run) for run in _BACKTICK_RUN.findall(content)), default=0)
    return "`" * max(3, longest + 1)


def _format_codeblocks_recursive(nodes: Sequence[FileNode], indent_level: int) -> List[str]:
    parts: List[str] = []
    indent = "  " * indent_level

    for node in nodes:
        if node.is_dir:
            parts.append(f"{indent}Directory: {node.path}\n")
            parts.extend(_format_codeblocks_recursive(node.children, indent_level + 1))
        else:
            parts.append(f"{indent}File: {node.path}\n")
            if node.token_count is not None:
                parts.append(f"{indent}Token Count: {node.token_count}\n")
            content = node.content or ''
            fence = code_fence(content)
            parts.append(f"{indent}{fence}\n{content}\n{fence}\n\n")
    return parts


def format_codeblocks(nodes: Sequence[FileNode]) -> str:
    return "".join(_format_codeblocks_recursive(nodes, 0))


def format_codeblocks_flat(nodes: Sequence[FileNode]) -> str:
    return format_codeblocks(FileTreeBuilder.flatten(nodes))


_RENDERERS: Dict[OutputFormat, Callable[[Sequence[FileNode]], str]] = {
    OutputFormat.XML: format_xml,
    OutputFormat.JSON: format_json,
    OutputFormat.CODEBLOCKS: format_codeblocks,
}

_FLAT_RENDERERS: Dict[OutputFormat, Callable[[Sequence[FileNode]], str]] = {
    OutputFormat.XML: format_xml_flat,
    OutputFormat.JSON: format_json_flat,
    OutputFormat.CODEBLOCKS: format_codeblocks_flat,
}


def format_output(nodes: Sequence[FileNode], output_format: Union[str, OutputFormat],
                  flat: bool = False) -> str:
    """
    Serialize a tree in the requested format.

    Raises:
        UnsupportedFormatError: If output_format names no known format.
    """
    fmt = OutputFormat.from_name(output_format)
    logger.info(f"Formatting output in {fmt.value} format")
    renderers = _FLAT_RENDERERS if flat else _RENDERERS
    return renderers[fmt](tuple(nodes))
