"""Tests for the noise filter stages and pipeline."""

import pytest

from contextor.core.filters import (
    ConfigFileFilter,
    FilterPipeline,
    LanguageFilter,
    TokenAnomalyFilter,
    matches_pattern,
)
from contextor.core.models import Config, FileNode
from contextor.utils.tree_builder import FileTreeBuilder


def build_tree(token_data):
    """Tree whose leaves carry the given token counts."""
    return FileTreeBuilder.from_paths({path: "" for path in token_data}, token_data)


def leaf_paths(nodes):
    return FileTreeBuilder.paths_from_tree(nodes)


def assert_no_empty_directories(nodes):
    for node in nodes:
        if node.is_dir:
            assert node.children, f"empty directory {node.path}"
            assert node.token_count == sum(child.token_count for child in node.children)
            assert_no_empty_directories(node.children)


class TestMatchesPattern:
    def test_basename_glob(self):
        assert matches_pattern("src/pkg/module.pyc", "*.pyc")
        assert not matches_pattern("src/pkg/module.py", "*.pyc")

    def test_exact_basename(self):
        assert matches_pattern("web/package-lock.json", "package-lock.json")
        assert not matches_pattern("web/package-lock.json.bak", "package-lock.json")

    def test_directory_pattern(self):
        assert matches_pattern("target/classes/App.class", "target/")
        assert matches_pattern("module/target/out.txt", "target/")
        assert not matches_pattern("target", "target/")
        assert not matches_pattern("src/targets/a.rs", "target/")


class TestLanguageFilter:
    def test_python_noise(self):
        tree = build_tree({
            "Pipfile.lock": 10,
            "src/app.py": 20,
            "src/__pycache__/app.cpython-312.pyc": 30,
        })

        result = LanguageFilter("python").apply(tree)

        assert leaf_paths(result.kept) == ["src/app.py"]
        assert [node.path for node in result.removed] == [
            "Pipfile.lock", "src/__pycache__/app.cpython-312.pyc",
        ]
        assert result.kept[0].token_count == 20
        assert_no_empty_directories(result.kept)

    def test_unknown_language_keeps_everything(self):
        tree = build_tree({"a.lock": 1, "b.md": 2})

        result = LanguageFilter("unknown").apply(tree)

        assert leaf_paths(result.kept) == ["a.lock", "b.md"]
        assert result.removed == ()

    def test_unchanged_subtrees_are_shared(self):
        tree = build_tree({"docs/a.md": 1, "Cargo.lock": 2})

        result = LanguageFilter("rust").apply(tree)

        assert result.kept[0] is tree[0]


class TestConfigFileFilter:
    def test_removes_configuration_files(self):
        tree = build_tree({
            "package.json": 5,
            "config/app.yaml": 5,
            "config/db.yml": 5,
            "Makefile": 5,
            "webpack.config.js": 5,
            "src/index.js": 5,
        })

        result = ConfigFileFilter().apply(tree)

        assert leaf_paths(result.kept) == ["src/index.js"]
        assert len(result.removed) == 5
        assert_no_empty_directories(result.kept)

    def test_directories_are_never_reported(self):
        tree = build_tree({"settings.toml/inner.txt": 3})

        result = ConfigFileFilter().apply(tree)

        assert leaf_paths(result.kept) == ["settings.toml/inner.txt"]
        assert result.removed == ()


class TestTokenAnomalyFilter:
    def test_threshold(self):
        assert TokenAnomalyFilter.compute_threshold([500, 1500]) == pytest.approx(2000.0)

    def test_small_corpus_is_not_filtered(self):
        tree = build_tree({"a.py": 1000, "b.py": 1000, "c.py": 3000})

        result = TokenAnomalyFilter().apply(tree)

        assert result.applied is False
        assert result.removed == ()
        assert leaf_paths(result.kept) == ["a.py", "b.py", "c.py"]

    def test_large_outlier_below_activation_floor_is_kept(self):
        token_data = {f"src/file{i:02d}.py": 1000 for i in range(28)}
        token_data["src/generated.py"] = 11_900

        result = TokenAnomalyFilter().apply(build_tree(token_data))

        assert result.applied is False
        assert "src/generated.py" in leaf_paths(result.kept)

    def test_outlier_removed_when_total_exceeds_floor(self):
        token_data = {f"src/file{i:02d}.py": 1000 for i in range(60)}
        token_data["vendor/bundle.js"] = 12_000

        result = TokenAnomalyFilter().apply(build_tree(token_data))

        assert result.applied is True
        assert [node.path for node in result.removed] == ["vendor/bundle.js"]
        assert [node.path for node in result.kept] == ["src"]
        assert result.kept[0].token_count == 60_000

    def test_minimum_tokens_floor(self):
        token_data = {f"src/file{i:02d}.py": 1000 for i in range(60)}
        token_data["src/big.py"] = 9_000

        result = TokenAnomalyFilter().apply(build_tree(token_data))

        assert result.applied is True
        assert result.removed == ()

    def test_statistics_computed_once(self):
        token_data = {f"src/file{i:02d}.py": 1000 for i in range(60)}
        token_data["gen/a.js"] = 20_000
        token_data["gen/b.js"] = 15_000

        result = TokenAnomalyFilter().apply(build_tree(token_data))

        assert [node.path for node in result.removed] == ["gen/a.js", "gen/b.js"]
        assert_no_empty_directories(result.kept)


class TestFilterPipeline:
    def tree(self):
        token_data = {
            "pyproject.toml": 50,
            "poetry/Pipfile.lock": 70,
            "src/a.py": 10,
            "src/b.py": 10,
            "src/__pycache__/a.cpython-312.pyc": 5,
        }
        return build_tree(token_data)

    def test_stages_run_in_order(self):
        result = FilterPipeline(Config()).apply(self.tree())

        assert result.detected_language == "python"
        assert leaf_paths(result.files) == ["src/a.py", "src/b.py"]
        assert [n.path for n in result.removed.language_specific] == [
            "poetry/Pipfile.lock", "src/__pycache__/a.cpython-312.pyc",
        ]
        assert [n.path for n in result.removed.configuration_files] == ["pyproject.toml"]
        assert result.removed.token_anomaly == ()
        assert result.token_filter_applied is False
        assert_no_empty_directories(result.files)

    def test_buckets_are_disjoint(self):
        tree = build_tree({"a.rs": 1, "b.rs": 1, "target/settings.toml": 1})

        result = FilterPipeline(Config()).apply(tree)

        assert [n.path for n in result.removed.language_specific] == ["target/settings.toml"]
        assert result.removed.configuration_files == ()
        assert result.removed.total == 1

    def test_disabled_stages(self):
        config = Config(disable_language_filter=True, disable_config_filter=True,
                        disable_token_filter=True)

        result = FilterPipeline(config).apply(self.tree())

        assert len(leaf_paths(result.files)) == 5
        assert result.removed.total == 0

    def test_language_override(self):
        result = FilterPipeline(Config()).apply(self.tree(), language="javascript")

        assert result.detected_language == "javascript"
        assert result.removed.language_specific == ()

    def test_input_tree_is_not_mutated(self):
        tree = self.tree()
        before = leaf_paths(tree)

        FilterPipeline(Config()).apply(tree)

        assert leaf_paths(tree) == before

    def test_filtering_twice_is_stable(self):
        first = FilterPipeline(Config()).apply(self.tree())
        second = FilterPipeline(Config()).apply(first.files)

        assert leaf_paths(second.files) == leaf_paths(first.files)
        assert second.removed.total == 0


def test_empty_tree():
    result = FilterPipeline(Config()).apply(())

    assert result.files == ()
    assert result.detected_language == "unknown"
