"""Tests for ignore rule resolution."""

from unittest.mock import patch

from contextor.core.models import Config
from contextor.utils.ignore import DEFAULT_IGNORE_PATTERNS, IgnoreResolver, read_gitignore


class TestIgnoreResolver:
    def test_defaults(self):
        resolver = IgnoreResolver.build()

        assert resolver.matches(".git", is_directory=True)
        assert resolver.matches("node_modules", is_directory=True)
        assert resolver.matches("packages/web/node_modules", is_directory=True)
        assert resolver.matches("CVS", is_directory=True)
        assert not resolver.matches("src/main.py")

    def test_dot_paths_ignored_at_any_depth(self):
        resolver = IgnoreResolver.build()

        assert resolver.matches(".env")
        assert resolver.matches("src/.DS_Store")
        assert resolver.matches(".github", is_directory=True)
        assert resolver.matches(".github/workflows/ci.yml")

    def test_reinclude_dot_directory(self):
        resolver = IgnoreResolver.build(reinclude_patterns=[".config/**"])

        assert not resolver.matches(".config", is_directory=True)
        assert not resolver.matches(".config/settings.json")
        assert resolver.matches(".other/file.txt")

    def test_reinclude_single_dot_file(self):
        resolver = IgnoreResolver.build(reinclude_patterns=[".eslintrc.js"])

        assert not resolver.matches(".eslintrc.js")
        assert resolver.matches(".prettierrc")

    def test_gitignore_content(self):
        resolver = IgnoreResolver.build(gitignore_text="# comment\nbuild/\n*.log\n\n/dist\n")

        assert resolver.matches("build", is_directory=True)
        assert not resolver.matches("build")
        assert resolver.matches("logs/app.log")
        assert resolver.matches("dist", is_directory=True)
        assert not resolver.matches("packages/dist", is_directory=True)

    def test_user_patterns_after_gitignore(self):
        resolver = IgnoreResolver.build(gitignore_text="!keep.log\n", user_patterns=["*.log"])

        assert resolver.matches("keep.log")

    def test_extra_patterns(self):
        resolver = IgnoreResolver.build(extra_patterns=["/context.xml"])

        assert resolver.matches("context.xml")
        assert not resolver.matches("docs/context.xml")

    def test_empty_path_never_matches(self):
        assert not IgnoreResolver.build().matches("")

    def test_windows_separators(self):
        resolver = IgnoreResolver.build(user_patterns=["docs/**"])

        assert resolver.matches("docs\\guide.md")

    def test_custom_defaults(self):
        resolver = IgnoreResolver.build(defaults=["vendor"])

        assert resolver.matches("vendor", is_directory=True)
        assert not resolver.matches("node_modules", is_directory=True)

    def test_pattern_order(self):
        resolver = IgnoreResolver.build(
            gitignore_text="gi",
            user_patterns=["user"],
            reinclude_patterns=[".keep"],
            extra_patterns=["extra"],
        )

        assert resolver.patterns == tuple(DEFAULT_IGNORE_PATTERNS) + (".*", "gi", "extra", "user", "!.keep")


class TestForRoot:
    def test_reads_gitignore_and_config(self, temp_workspace):
        (temp_workspace / ".gitignore").write_text("*.tmp\n")
        config = Config(ignore_patterns="docs/**", include_dot_files=".github/**")

        resolver = IgnoreResolver.for_root(temp_workspace, config)

        assert resolver.matches("scratch.tmp")
        assert resolver.matches("docs/index.md")
        assert not resolver.matches(".github", is_directory=True)

    def test_missing_gitignore(self, temp_workspace, caplog):
        assert read_gitignore(temp_workspace) == ""
        assert "Error reading .gitignore" not in caplog.text

    def test_unreadable_gitignore(self, temp_workspace, caplog):
        (temp_workspace / ".gitignore").write_text("*.tmp")

        with patch("pathlib.Path.read_text", side_effect=PermissionError("denied")):
            assert read_gitignore(temp_workspace) == ""

        assert "Error reading .gitignore" in caplog.text
