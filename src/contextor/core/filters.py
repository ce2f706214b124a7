"""
Noise filters applied to the tokenized tree.

Three stages run in a fixed order, each over whatever survived the stage
before it:

1. LanguageFilter - build artifacts and lockfiles of the detected language
2. ConfigFileFilter - package manifests, build-system and IDE project files
3. TokenAnomalyFilter - files whose token count is a statistical outlier
"""

import fnmatch
import logging
import statistics
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .language import detect_language
from .models import Config, FileNode, RemovalBucket
from ..utils.path_utils import PathUtils
from ..utils.tree_builder import FileTreeBuilder

logger = logging.getLogger(__name__)

LANGUAGE_SPECIFIC_IGNORES: Dict[str, List[str]] = {
    "javascript": ["package-lock.json", "yarn.lock", "npm-debug.log"],
    "typescript": ["*.tsbuildinfo"],
    "python": ["Pipfile.lock", "*.pyc", "__pycache__/", "*.pyo", "*.pyd"],
    "java": ["*.class", "*.jar", "target/"],
    "csharp": ["bin/", "obj/", "*.csproj.user"],
    "cpp": ["*.o", "*.obj", "*.exe", "*.dll", "*.so", "*.dylib"],
    "php": ["vendor/", "composer.lock"],
    "ruby": ["Gemfile.lock", "*.gem"],
    "go": ["go.sum"],
    "rust": ["Cargo.lock", "target/"],
    "swift": ["*.swiftmodule", "*.swiftdoc", "*.swiftsourceinfo"],
    "kotlin": ["*.kotlin_module", "build/"],
    "scala": ["*.class", "target/"],
    "zig": ["zig-cache/", "zig-out/"],
}

CONFIGURATION_FILE_IGNORES: List[str] = [
    "package.json",
    "*.yaml",
    "*.yml",
    "*.toml",
    "*.ini",
    "*.config.js",
    "*.conf",
    "Makefile",
    "CMakeLists.txt",
    "*.vcxproj",
    "*.sln",
    "*.pbxproj",
    "*.xcodeproj",
    "*.gradle",
    "*.sbt",
    "*.cabal",
    "*.csproj",
    "*.vbproj",
    "*.fsproj",
    "*.zig.zon",
]

TOKEN_ANOMALY_THRESHOLD = 10_000  # Minimum tokens for a file to be considered an anomaly
TOTAL_TOKEN_THRESHOLD = 50_000    # Minimum total tokens to apply anomaly detection


@dataclass(frozen=True)
class StageResult:
    """Output of one filter stage."""
    kept: Tuple[FileNode, ...]
    removed: Tuple[FileNode, ...] = ()
    applied: bool = True


def matches_pattern(path: str, pattern: str) -> bool:
    """
    Glob-style match of one noise pattern against a file path.

    Patterns ending in "/" name a directory and match when any parent
    directory of the file matches; other patterns match the basename.
    """
    if pattern.endswith("/"):
        dir_pattern = pattern.rstrip("/")
        return any(fnmatch.fnmatchcase(part, dir_pattern) for part in PathUtils.parent_components(path))
    return fnmatch.fnmatchcase(PathUtils.basename(path), pattern)


class LanguageFilter:
    """Removes noise files specific to the detected project language."""

    def __init__(self, language: str):
        self.language = language
        self.patterns = LANGUAGE_SPECIFIC_IGNORES.get(language, [])

    def apply(self, nodes: Sequence[FileNode]) -> StageResult:
        kept, removed = FileTreeBuilder.partition(
            nodes, lambda leaf: any(matches_pattern(leaf.path, p) for p in self.patterns)
        )
        return StageResult(kept, tuple(removed))


class ConfigFileFilter:
    """Removes configuration and build-metadata files regardless of language."""

    def __init__(self, patterns: Optional[List[str]] = None):
        self.patterns = CONFIGURATION_FILE_IGNORES if patterns is None else patterns

    def apply(self, nodes: Sequence[FileNode]) -> StageResult:
        kept, removed = FileTreeBuilder.partition(
            nodes,
            lambda leaf: any(fnmatch.fnmatchcase(PathUtils.basename(leaf.path), p) for p in self.patterns)
        )
        return StageResult(kept, tuple(removed))


class TokenAnomalyFilter:
    """
    Drops files that are disproportionately large relative to the rest.

    Skipped entirely when the leaves total no more than ``total_threshold``
    tokens. Otherwise a leaf is removed when its count exceeds both
    ``mean + 2 * stdev`` (population) and ``min_tokens``. The statistics are
    computed once, over the leaves this stage receives.
    """

    def __init__(self, total_threshold: int = TOTAL_TOKEN_THRESHOLD,
                 min_tokens: int = TOKEN_ANOMALY_THRESHOLD):
        self.total_threshold = total_threshold
        self.min_tokens = min_tokens

    @staticmethod
    def compute_threshold(counts: Sequence[int]) -> float:
        """Anomaly threshold: mean plus two population standard deviations."""
        return statistics.fmean(counts) + 2 * statistics.pstdev(counts)

    def apply(self, nodes: Sequence[FileNode]) -> StageResult:
        counts = [leaf.token_count or 0 for leaf in FileTreeBuilder.flatten(nodes)]
        total = sum(counts)

        if total <= self.total_threshold:
            logger.info("Token count anomaly filter not applied due to low total token count.")
            return StageResult(tuple(nodes), (), applied=False)

        threshold = self.compute_threshold(counts)
        logger.debug(f"Token anomaly threshold: {threshold:.1f} tokens")

        def is_anomaly(leaf: FileNode) -> bool:
            tokens = leaf.token_count or 0
            return tokens > threshold and tokens > self.min_tokens

        kept, removed = FileTreeBuilder.partition(nodes, is_anomaly)
        return StageResult(kept, tuple(removed))


@dataclass
class FilterResult:
    """Filtered tree plus what each stage removed."""
    files: Tuple[FileNode, ...]
    removed: RemovalBucket = field(default_factory=RemovalBucket)
    detected_language: str = "unknown"
    token_filter_applied: bool = False


class FilterPipeline:
    """Runs the enabled filter stages in order."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()

    def apply(self, nodes: Sequence[FileNode], language: Optional[str] = None) -> FilterResult:
        """
        Filter the tree.

        Args:
            nodes: Tokenized tree
            language: Override for the detected language

        Returns:
            FilterResult with the kept tree and per-stage removals
        """
        logger.info("Applying filters to files")
        language = language or detect_language(nodes)
        logger.info(f"Detected language: {language}")

        files = tuple(nodes)
        language_removed: Tuple[FileNode, ...] = ()
        config_removed: Tuple[FileNode, ...] = ()
        anomaly_removed: Tuple[FileNode, ...] = ()
        token_filter_applied = False

        if not self.config.disable_language_filter:
            stage = LanguageFilter(language).apply(files)
            files, language_removed = stage.kept, stage.removed

        if not self.config.disable_config_filter:
            stage = ConfigFileFilter().apply(files)
            files, config_removed = stage.kept, stage.removed

        if not self.config.disable_token_filter:
            stage = TokenAnomalyFilter().apply(files)
            files, anomaly_removed = stage.kept, stage.removed
            token_filter_applied = stage.applied

        removed = RemovalBucket(
            language_specific=language_removed,
            configuration_files=config_removed,
            token_anomaly=anomaly_removed,
        )
        logger.info(
            "Files removed: "
            f"language-specific={len(language_removed)}, "
            f"configuration={len(config_removed)}, "
            f"token anomalies={len(anomaly_removed)}"
        )
        return FilterResult(files, removed, language, token_filter_applied)
