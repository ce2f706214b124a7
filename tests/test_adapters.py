"""Tests for local filesystem traversal."""

import os

import pytest
from unittest.mock import patch

from contextor.adapters import create_adapter, _normalize_path
from contextor.adapters.local import LocalAdapter
from contextor.core.models import Config
from contextor.utils.tree_builder import FileTreeBuilder


def paths(nodes):
    return FileTreeBuilder.paths_from_tree(nodes)


class TestLocalAdapter:
    def test_traverse_sample_repo(self, sample_repo):
        adapter = LocalAdapter([str(sample_repo)], Config())

        files = adapter.traverse()

        assert paths(files) == [
            "Pipfile.lock",
            "README.md",
            "pyproject.toml",
            "src/__init__.py",
            "src/__pycache__/main.cpython-312.pyc",
            "src/main.py",
            "src/utils/helpers.py",
            "tests/test_main.py",
        ]
        assert adapter.errors == []

    def test_directories_are_nested(self, sample_repo):
        files = LocalAdapter([str(sample_repo)]).traverse()

        src = next(node for node in files if node.path == "src")
        assert src.is_dir
        assert [child.path for child in src.children] == [
            "src/__init__.py", "src/__pycache__", "src/main.py", "src/utils",
        ]

    def test_empty_directories_are_pruned(self, sample_repo):
        (sample_repo / "empty" / "nested").mkdir()
        (sample_repo / "assets").mkdir()
        (sample_repo / "assets" / "logo.png").write_bytes(b'\x89PNG\r\n\x1a\n')

        files = LocalAdapter([str(sample_repo)]).traverse()

        top_level = [node.path for node in files]
        assert "empty" not in top_level
        assert "assets" not in top_level

    def test_extension_filter(self, sample_repo):
        files = LocalAdapter([str(sample_repo)], Config(extensions=".MD")).traverse()

        assert paths(files) == ["README.md"]

    def test_reinclude_dot_directory(self, sample_repo):
        config = Config(include_dot_files=".github/**")

        files = LocalAdapter([str(sample_repo)], config).traverse()

        assert ".github/ci.yml" in paths(files)
        assert ".env" not in paths(files)
        assert ".git/config" not in paths(files)

    def test_user_ignore_patterns(self, sample_repo):
        config = Config(ignore_patterns="tests/**,*.toml")

        files = LocalAdapter([str(sample_repo)], config).traverse()

        assert "tests/test_main.py" not in paths(files)
        assert "pyproject.toml" not in paths(files)

    def test_gitignore_is_honoured(self, sample_repo):
        files = LocalAdapter([str(sample_repo)]).traverse()

        assert "debug.log" not in paths(files)
        assert "build/out.py" not in paths(files)

    def test_file_contents_are_read(self, sample_repo):
        files = LocalAdapter([str(sample_repo)]).traverse()

        leaves = {leaf.path: leaf for leaf in FileTreeBuilder.flatten(files)}
        assert leaves["src/utils/helpers.py"].content == "def helper():\n    return 42"
        assert leaves["src/__init__.py"].content == ""
        assert leaves["src/main.py"].token_count is None

    def test_multiple_roots_are_named(self, sample_repo):
        roots = [str(sample_repo / "src"), str(sample_repo / "README.md")]

        files = LocalAdapter(roots).traverse()

        assert [node.path for node in files] == ["src", "README.md"]
        assert "src/utils/helpers.py" in paths(files)

    def test_single_file_root(self, sample_repo):
        files = LocalAdapter([str(sample_repo / "src" / "main.py")]).traverse()

        assert paths(files) == ["main.py"]

    def test_symlinks_are_skipped(self, sample_repo):
        target = sample_repo / "src" / "main.py"
        try:
            os.symlink(target, sample_repo / "link.py")
        except (OSError, NotImplementedError):
            pytest.skip("symlinks not supported")

        files = LocalAdapter([str(sample_repo)]).traverse()

        assert "link.py" not in paths(files)

    def test_unreadable_file_is_recorded(self, sample_repo):
        adapter = LocalAdapter([str(sample_repo)])

        with patch.object(adapter.file_analyzer, "read_file_content",
                          return_value=(None, "Permission denied")):
            files = adapter.traverse()

        assert files == ()
        assert any("Permission denied" in error for error in adapter.errors)

    def test_unlistable_directory_is_recorded(self, sample_repo):
        adapter = LocalAdapter([str(sample_repo)])

        with patch("contextor.adapters.local.os.scandir", side_effect=PermissionError("denied")):
            files = adapter.traverse()

        assert files == ()
        assert "Error listing contents" in adapter.errors[0]

    def test_empty_roots_rejected(self):
        with pytest.raises(ValueError):
            LocalAdapter([])

    def test_compiled_bytecode_is_skipped(self, temp_workspace):
        (temp_workspace / "a.js").write_text("let a = 1;\n")
        (temp_workspace / "b.js").write_text("let b = 2;\n")
        (temp_workspace / "__pycache__").mkdir()
        (temp_workspace / "__pycache__" / "m.cpython-312.pyc").write_bytes(
            b"\xcb\r\r\n\x00\x00\x00\x00" + b"\xe3" + b"\x00" * 31)

        adapter = LocalAdapter([str(temp_workspace)])

        assert paths(adapter.traverse()) == ["a.js", "b.js"]
        assert adapter.errors == []


class TestCreateAdapter:
    def test_missing_path(self, temp_workspace):
        with pytest.raises(ValueError, match="Invalid input"):
            create_adapter([str(temp_workspace / "nope")], Config())

    def test_defaults_to_current_directory(self, sample_repo, monkeypatch):
        monkeypatch.chdir(sample_repo)

        adapter = create_adapter([], Config())

        assert adapter.roots == [str(sample_repo.resolve())]

    def test_wsl_drive_paths(self):
        with patch("contextor.adapters.sys.platform", "linux"):
            assert _normalize_path("C:\\Users\\dev\\project") == "/mnt/c/Users/dev/project"
