"""Themed terminal output for the CLI summary.

All console output goes to stderr so the generated document can be piped
from stdout untouched.
"""

import os
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from rich.console import Console
from rich.text import Text
from rich.theme import Theme
from rich.tree import Tree

from ..core.models import FileNode


class StatusType(Enum):
    """Standard status types with associated symbols."""
    SUCCESS = ("[✓]", "success", "green")
    ERROR = ("[x]", "error", "red")
    WARNING = ("[!]", "warning", "yellow")
    INFO = ("[i]", "info", "cyan")


@dataclass
class ThemeColors:
    """Color definitions for a theme."""
    info: str
    warning: str
    error: str
    success: str
    highlight: str
    path: str
    number: str
    dim: str
    token_count: str
    heading: str = "bright_yellow"


THEMES = {
    'manhattan': ThemeColors(
        info='cyan',
        warning='yellow',
        error='red',
        success='green',
        highlight='bright_cyan',
        path='white',
        number='bright_blue',
        dim='bright_black',
        token_count='bright_blue',
    ),
    'green': ThemeColors(
        info='green',
        warning='yellow',
        error='red',
        success='bright_green',
        highlight='bold green',
        path='bright_green',
        number='green',
        dim='green',
        token_count='bright_white',
        heading='bright_cyan',
    ),
    'matrix': ThemeColors(
        info='bright_green',
        warning='yellow',
        error='red',
        success='green',
        highlight='bold bright_green',
        path='green',
        number='bright_green',
        dim='green',
        token_count='bright_white',
    ),
    'sunset': ThemeColors(
        info='orange3',
        warning='yellow',
        error='red3',
        success='green',
        highlight='bold orange1',
        path='wheat1',
        number='orange1',
        dim='grey50',
        token_count='orange1',
        heading='dark_orange3',
    ),
}

DEFAULT_THEME = 'manhattan'


def get_theme_names() -> list:
    return list(THEMES)


class ConsoleManager:
    """Rich console bound to stderr with one of the named themes."""

    def __init__(self, theme: Optional[str] = None, file: Optional[Any] = None):
        self.theme_name = theme or os.environ.get('CONTEXTOR_THEME', DEFAULT_THEME)
        self.theme_colors = THEMES.get(self.theme_name, THEMES[DEFAULT_THEME])
        self.console = Console(
            theme=self._create_rich_theme(),
            file=file or sys.stderr,
            highlight=False,
        )

    def _create_rich_theme(self) -> Theme:
        colors = self.theme_colors
        return Theme({
            'info': colors.info,
            'warning': colors.warning,
            'error': colors.error,
            'success': colors.success,
            'highlight': colors.highlight,
            'path': colors.path,
            'number': colors.number,
            'dim': colors.dim,
            'token_count': colors.token_count,
            'heading': colors.heading,
        })

    def print(self, *args, **kwargs):
        self.console.print(*args, **kwargs)

    def print_status(self, status: StatusType, message: str):
        """Print a status line with icon."""
        icon, style, _ = status.value
        text = Text()
        text.append(f"{icon} ", style=style)
        text.append(message)
        self.console.print(text)

    def print_error(self, message: str):
        self.print_status(StatusType.ERROR, message)

    def print_success(self, message: str):
        self.print_status(StatusType.SUCCESS, message)

    def print_info(self, message: str):
        self.print_status(StatusType.INFO, message)

    def print_warning(self, message: str):
        self.print_status(StatusType.WARNING, message)

    def print_metric(self, heading: str, value: Any):
        """Print a heading followed by a highlighted value."""
        text = Text()
        text.append(f"{heading}: ", style="heading")
        text.append(f"{value:,}" if isinstance(value, int) else str(value), style="number")
        self.console.print(text)

    def print_exception(self):
        self.console.print_exception()

    def print_file_tree(self, nodes: Sequence[FileNode], title: str = "Files"):
        """Render the kept tree with per-node token counts."""
        tree = Tree(Text(title, style="highlight"))
        self._add_nodes(tree, nodes)
        self.console.print(tree)

    def _add_nodes(self, branch: Tree, nodes: Sequence[FileNode]):
        for node in nodes:
            label = Text(node.name + ("/" if node.is_dir else ""), style="path")
            if node.token_count is not None:
                label.append(f" ({node.token_count:,} tokens)", style="token_count")
            child = branch.add(label)
            if node.is_dir:
                self._add_nodes(child, node.children)
