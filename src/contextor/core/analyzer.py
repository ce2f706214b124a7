"""Main context-extraction orchestrator."""
import logging
import os
import statistics
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn

from ..adapters import create_adapter
from .filters import FilterPipeline
from .formatter import format_output
from .models import Config, ContextResult, FileNode
from .tokenizer import TokenCounter, TokenizerCache, TokenizerError
from ..utils.tree_builder import FileTreeBuilder

logger = logging.getLogger(__name__)


class ContextAnalyzer:
    """Runs traversal, tokenization, filtering and formatting for a set of roots."""

    def __init__(self, config: Config, cache: Optional[TokenizerCache] = None,
                 show_progress: bool = False):
        """Initialize analyzer with configuration."""
        self.config = config
        self.token_counter = TokenCounter(config.tokenizer, cache)
        self.show_progress = show_progress

    def scan(self, paths: Optional[Sequence[str]] = None) -> Tuple[Tuple[FileNode, ...], List[str]]:
        """Traverse the roots; returns the raw tree and any traversal errors."""
        adapter = create_adapter(paths, self.config)
        files = adapter.traverse()
        logger.info("File processing complete")
        return files, list(adapter.errors)

    def tokenize(self, files: Sequence[FileNode]) -> Tuple[FileNode, ...]:
        """Annotate every node with token counts."""
        if not self.show_progress:
            return self.token_counter.annotate(files)

        total = len(FileTreeBuilder.flatten(files))
        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            TimeElapsedColumn(),
            transient=True,
        ) as progress:
            task = progress.add_task("Counting tokens", total=total)
            return self.token_counter.annotate(files, on_file=lambda _node: progress.advance(task))

    def analyze(self, paths: Optional[Sequence[str]] = None) -> ContextResult:
        """
        Run the whole pipeline.

        Args:
            paths: Files or directories to scan; the current directory when empty

        Returns:
            ContextResult with the formatted document and summary counts
        """
        files, errors = self.scan(paths)
        return self.process(files, root_paths=list(paths or [os.getcwd()]), errors=errors)

    def process(self, files: Sequence[FileNode], root_paths: Optional[List[str]] = None,
                errors: Optional[List[str]] = None) -> ContextResult:
        """Tokenize, filter and format an already traversed tree."""
        errors = list(errors or [])

        tokenized = self.tokenize(files)
        logger.info("Tokenization complete")
        errors.extend(f"{leaf.path}: {leaf.error}" for leaf in FileTreeBuilder.flatten(tokenized) if leaf.error)
        total_before = FileTreeBuilder.total_tokens(tokenized)

        filtered = FilterPipeline(self.config).apply(tokenized)
        logger.info("Filtering complete")
        total_after = FileTreeBuilder.total_tokens(filtered.files)

        output = format_output(filtered.files, self.config.output_format, flat=self.config.flat_output)

        # A failure here only loses the overhead figure, not the document
        formatted_tokens: Optional[int]
        try:
            formatted_tokens = self.token_counter.count(output).token_count
        except TokenizerError as e:
            logger.error(f"Error tokenizing formatted output: {e.cause}")
            errors.append(f"Formatted output: {e}")
            formatted_tokens = None

        logger.info("Output generated")
        return ContextResult(
            root_paths=root_paths or [],
            files=filtered.files,
            removed=filtered.removed,
            detected_language=filtered.detected_language,
            output=output,
            output_format=self.config.output_format,
            total_tokens_before=total_before,
            total_tokens_after=total_after,
            formatted_tokens=formatted_tokens,
            token_filter_applied=filtered.token_filter_applied,
            max_tokens=self.config.max_tokens,
            errors=errors,
        )

    def generate_token_report(self, result: ContextResult) -> str:
        """
        Generate a token report for the kept files.

        Two main views:
        1. Tree representation with token counts per directory and file
        2. Statistics plus the largest directories and files
        """
        leaves = FileTreeBuilder.flatten(result.files)
        if not leaves:
            return "No token data available.\n"

        token_data: Dict[str, int] = {leaf.path: leaf.token_count or 0 for leaf in leaves}

        report = "TOKEN ANALYSIS REPORT\n"
        report += "=" * 80 + "\n\n"

        total_tokens = sum(token_data.values())
        total_files = len(token_data)

        # 1. TREE VIEW
        report += "Directory Tree:\n"
        report += "-" * 80 + "\n"
        report += FileTreeBuilder.to_tree_string(result.files, show_tokens=True) + "\n"
        report += f"\nTOTAL: {total_tokens:,} tokens, {total_files} files\n"

        # 2. STATISTICS
        report += "\n" + "=" * 80 + "\n"
        report += "Token Statistics:\n"
        report += "-" * 80 + "\n"

        token_counts = list(token_data.values())
        report += f"Total tokens:  {total_tokens:,}\n"
        report += f"Total files:   {total_files}\n"
        report += f"Average:       {total_tokens // total_files:,} tokens/file\n"
        report += f"Median:        {int(statistics.median(token_counts)):,} tokens/file\n"
        report += f"Range:         {min(token_counts):,} - {max(token_counts):,} tokens\n"

        dir_totals: Dict[str, Dict[str, int]] = defaultdict(lambda: {"tokens": 0, "files": 0})
        for file_path, tokens in token_data.items():
            parts = file_path.split("/")
            for i in range(1, len(parts)):
                dir_path = "/".join(parts[:i])
                dir_totals[dir_path]["tokens"] += tokens
                dir_totals[dir_path]["files"] += 1

        if dir_totals:
            report += "\nTop 10 largest directories:\n"
            sorted_dirs = sorted(dir_totals.items(), key=lambda x: x[1]["tokens"], reverse=True)[:10]
            for dir_path, info in sorted_dirs:
                report += f"  {info['tokens']:>8,} tokens: {dir_path}/ ({info['files']} files)\n"

        report += "\nTop 10 largest files:\n"
        sorted_files = sorted(token_data.items(), key=lambda x: x[1], reverse=True)[:10]
        for file_path, tokens in sorted_files:
            report += f"  {tokens:>8,} tokens: {file_path}\n"

        report += "\n" + "=" * 80 + "\n"
        return report

    def save_results(self, result: ContextResult, output_file: str) -> str:
        """Write the formatted document; returns the absolute path written."""
        output_path = os.path.abspath(output_file)
        parent = os.path.dirname(output_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(result.output)
        return output_path
