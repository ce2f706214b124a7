"""
Core data models for contextor.

This module contains the fundamental data structures used throughout
the application for configuration, file representation, and pipeline results.
"""

import os
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


DEFAULT_TOKENIZER = "Xenova/gpt-4"

# Known tokenizer model identifiers and the models they correspond to.
TOKENIZER_OPTIONS: Dict[str, str] = {
    "Xenova/gpt-4": "gpt-4 / gpt-3.5-turbo / text-embedding-ada-002",
    "Xenova/text-davinci-003": "text-davinci-003 / text-davinci-002",
    "Xenova/gpt-3": "gpt-3",
    "Xenova/grok-1-tokenizer": "Grok-1",
    "Xenova/claude-tokenizer": "Claude",
    "Xenova/mistral-tokenizer-v3": "Mistral v3",
    "Xenova/mistral-tokenizer-v1": "Mistral v1",
    "Xenova/gemma-tokenizer": "Gemma",
    "Xenova/llama-3-tokenizer": "Llama 3",
    "Xenova/llama-tokenizer": "LLaMA / Llama 2",
    "Xenova/c4ai-command-r-v01-tokenizer": "Cohere Command-R",
    "Xenova/t5-small": "T5",
    "Xenova/bert-base-cased": "bert-base-cased",
    "cl100k_base": "tiktoken cl100k_base (gpt-4 / gpt-3.5-turbo)",
    "o200k_base": "tiktoken o200k_base (gpt-4o)",
}


def get_tokenizer_description(model_id: str) -> str:
    """Return a human readable description of a tokenizer model id."""
    return TOKENIZER_OPTIONS.get(model_id, "Unknown tokenizer")


class UnsupportedFormatError(ValueError):
    """Raised when an output format name is not one of the supported formats."""

    def __init__(self, name: str):
        self.name = name
        supported = ", ".join(f.value for f in OutputFormat)
        super().__init__(f"Unsupported format: {name} (expected one of: {supported})")


class OutputFormat(Enum):
    """Supported output encodings."""
    XML = "xml"
    JSON = "json"
    CODEBLOCKS = "codeblocks"

    @classmethod
    def from_name(cls, name: Union[str, "OutputFormat"]) -> "OutputFormat":
        """Resolve a format name, rejecting anything unknown."""
        if isinstance(name, OutputFormat):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            raise UnsupportedFormatError(str(name)) from None


def _split_csv(value: Union[str, List[str], Tuple[str, ...], None]) -> List[str]:
    """Accept either a comma-separated string or a sequence of strings."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(',')
    return [item.strip() for item in value if item and item.strip()]


@dataclass
class Config:
    """Configuration settings for contextor."""

    # Extension allowlist without leading dots; None means every text file
    extensions: Optional[List[str]] = None

    # Additional gitignore-style patterns to exclude
    ignore_patterns: List[str] = field(default_factory=list)

    # Dot files/directories to re-include (gitignore-style patterns)
    include_dot_files: List[str] = field(default_factory=list)

    # Runtime patterns, e.g. the output file itself
    extra_ignore_patterns: List[str] = field(default_factory=list)

    tokenizer: str = field(
        default_factory=lambda: os.getenv('CONTEXTOR_TOKENIZER', DEFAULT_TOKENIZER)
    )
    output_format: Union[str, OutputFormat] = field(
        default_factory=lambda: os.getenv('CONTEXTOR_FORMAT', OutputFormat.XML.value)
    )
    flat_output: bool = False

    disable_language_filter: bool = False
    disable_config_filter: bool = False
    disable_token_filter: bool = False

    # Token budget for the formatted document; None means unlimited
    max_tokens: Optional[int] = None

    # Encoding fallbacks
    encoding_fallbacks: List[str] = field(default_factory=lambda: [
        'utf-8', 'utf-8-sig', 'latin-1', 'cp1252'
    ])

    def __post_init__(self):
        if self.extensions is not None:
            exts = [ext.lstrip('.').lower() for ext in _split_csv(self.extensions)]
            self.extensions = exts or None
        self.ignore_patterns = _split_csv(self.ignore_patterns)
        self.include_dot_files = _split_csv(self.include_dot_files)
        self.extra_ignore_patterns = _split_csv(self.extra_ignore_patterns)

        # Unknown names are a caller mistake and fail here, not in the formatter
        self.output_format = OutputFormat.from_name(self.output_format)

        if self.tokenizer not in TOKENIZER_OPTIONS:
            logger.warning(
                f"Tokenizer '{self.tokenizer}' is not a known option; "
                "it will be resolved as a tiktoken encoding or Hugging Face model id"
            )

        if self.max_tokens is not None and self.max_tokens <= 0:
            self.max_tokens = None


@dataclass(frozen=True)
class FileNode:
    """Represents a file or directory kept by traversal.

    Nodes are immutable; every tree transformation returns new nodes.
    """

    path: str
    type: str  # 'file' or 'dir'
    content: Optional[str] = None
    children: Tuple['FileNode', ...] = ()
    token_count: Optional[int] = None
    error: Optional[str] = None

    @property
    def name(self) -> str:
        """Last component of the path."""
        return self.path.rstrip('/').rsplit('/', 1)[-1]

    def is_file(self) -> bool:
        """Check if this node represents a file."""
        return self.type == 'file'

    def is_directory(self) -> bool:
        """Check if this node represents a directory."""
        return self.type == 'dir'

    @property
    def is_dir(self) -> bool:
        """Alias for is_directory for compatibility."""
        return self.is_directory()

    @classmethod
    def file(cls, path: str, content: str, token_count: Optional[int] = None) -> 'FileNode':
        return cls(path=path, type='file', content=content, token_count=token_count)

    @classmethod
    def directory(cls, path: str, children) -> 'FileNode':
        """Build a directory node whose token count is the sum of its children."""
        children = tuple(children)
        counts = [child.token_count for child in children]
        total = sum(counts) if counts and all(c is not None for c in counts) else None
        return cls(path=path, type='dir', children=children, token_count=total)

    def with_children(self, children) -> 'FileNode':
        """Return a copy of this directory holding new children."""
        return FileNode.directory(self.path, children)

    def with_tokens(self, token_count: int, error: Optional[str] = None) -> 'FileNode':
        """Return a copy of this file annotated with a token count."""
        return replace(self, token_count=token_count, error=error)


@dataclass(frozen=True)
class RemovalBucket:
    """Leaves removed by each filter stage. A leaf appears in at most one bucket."""

    language_specific: Tuple[FileNode, ...] = ()
    configuration_files: Tuple[FileNode, ...] = ()
    token_anomaly: Tuple[FileNode, ...] = ()

    @property
    def total(self) -> int:
        return len(self.language_specific) + len(self.configuration_files) + len(self.token_anomaly)

    def counts(self) -> Dict[str, int]:
        return {
            'language_specific': len(self.language_specific),
            'configuration_files': len(self.configuration_files),
            'token_anomaly': len(self.token_anomaly),
        }


@dataclass
class ContextResult:
    """Result of running the context-extraction pipeline."""

    # Required fields first
    root_paths: List[str]
    files: Tuple[FileNode, ...]        # Filtered hierarchical tree
    removed: RemovalBucket
    detected_language: str
    output: str                        # Formatted document
    output_format: OutputFormat

    # Optional fields with defaults
    total_tokens_before: int = 0
    total_tokens_after: int = 0
    formatted_tokens: Optional[int] = None
    token_filter_applied: bool = False
    max_tokens: Optional[int] = None
    errors: List[str] = field(default_factory=list)

    @property
    def token_overhead(self) -> Optional[int]:
        """Tokens added by the output format on top of the file contents."""
        if self.formatted_tokens is None:
            return None
        return self.formatted_tokens - self.total_tokens_after

    @property
    def file_paths(self) -> List[str]:
        """Flat list of the kept file paths, in tree order."""
        paths: List[str] = []

        def collect(nodes):
            for node in nodes:
                if node.is_dir:
                    collect(node.children)
                else:
                    paths.append(node.path)

        collect(self.files)
        return paths

    def budget(self) -> Optional['TokenBudget']:
        """Token budget charged with the formatted document, if a limit is set."""
        if self.max_tokens is None or self.formatted_tokens is None:
            return None
        return TokenBudget(max_tokens=self.max_tokens, used_tokens=self.formatted_tokens)

    def exceeds_budget(self) -> bool:
        budget = self.budget()
        return budget is not None and budget.available_tokens < 0

    def has_errors(self) -> bool:
        """Check if any errors occurred during the run."""
        return len(self.errors) > 0

    def get_error_summary(self) -> str:
        """Get a summary of all errors."""
        if not self.errors:
            return "No errors encountered."
        return f"{len(self.errors)} errors encountered:\n" + "\n".join(f"- {e}" for e in self.errors)


@dataclass
class TokenBudget:
    """
    Tracks token usage against an LLM context limit.

    Used for reporting only; trimming a document to fit is left to the caller.
    """

    max_tokens: int
    used_tokens: int = 0
    reserved_tokens: int = 0  # For response, system prompts, etc.

    @property
    def available_tokens(self) -> int:
        """Calculate available tokens."""
        return self.max_tokens - self.used_tokens - self.reserved_tokens

    @property
    def usage_percentage(self) -> float:
        """Calculate token usage percentage."""
        return (self.used_tokens / self.max_tokens) * 100
