"""Core components for contextor."""

from .models import Config, FileNode, ContextResult, OutputFormat, TokenBudget, UnsupportedFormatError
from .file_analyzer import FileAnalyzer
from .tokenizer import TokenCounter, TokenizerCache, TokenizerError
from .filters import FilterPipeline
from .formatter import format_output
from .language import detect_language

__all__ = [
    "Config",
    "FileNode",
    "ContextResult",
    "OutputFormat",
    "TokenBudget",
    "UnsupportedFormatError",
    "FileAnalyzer",
    "TokenCounter",
    "TokenizerCache",
    "TokenizerError",
    "FilterPipeline",
    "format_output",
    "detect_language",
]
