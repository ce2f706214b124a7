import pytest
import tempfile
import shutil
from pathlib import Path

from contextor.core import tokenizer as tokenizer_module
from contextor.core.tokenizer import TokenizerCache


class WhitespaceEncoder:
    """Counts one token per whitespace-separated word."""

    def __init__(self):
        self.vocab = []

    def encode(self, text):
        ids = []
        for word in text.split():
            self.vocab.append(word)
            ids.append(len(self.vocab) - 1)
        return ids

    def decode(self, token_id):
        return self.vocab[token_id]


@pytest.fixture
def fake_loader():
    """Loader that records requested model ids and never touches the network."""
    calls = []

    def loader(model_id):
        calls.append(model_id)
        return WhitespaceEncoder()

    loader.calls = calls
    return loader


@pytest.fixture
def fake_cache(fake_loader):
    return TokenizerCache(loader=fake_loader)


@pytest.fixture(autouse=True)
def default_cache(monkeypatch, fake_cache):
    """Route every TokenCounter without an explicit cache to the fake tokenizer."""
    monkeypatch.setattr(tokenizer_module, "_default_cache", fake_cache)
    return fake_cache


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("CONTEXTOR_TOKENIZER", raising=False)
    monkeypatch.delenv("CONTEXTOR_FORMAT", raising=False)


@pytest.fixture
def temp_workspace():
    """Create a temporary directory for test files."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir)


@pytest.fixture
def sample_repo(temp_workspace):
    """Create a sample repository structure for testing."""
    repo_root = temp_workspace / "sample_repo"
    repo_root.mkdir()

    # Create directory structure
    (repo_root / "src").mkdir()
    (repo_root / "src" / "utils").mkdir()
    (repo_root / "src" / "__pycache__").mkdir()
    (repo_root / "tests").mkdir()
    (repo_root / "empty").mkdir()
    (repo_root / ".git").mkdir()
    (repo_root / ".github").mkdir()
    (repo_root / "node_modules").mkdir()
    (repo_root / "build").mkdir()

    # Create files
    (repo_root / "README.md").write_text("# Sample Repository\n\nTest repository for contextor")
    (repo_root / "pyproject.toml").write_text("[project]\nname = 'sample'\n")
    (repo_root / "Pipfile.lock").write_text('{"default": {}}')
    (repo_root / "src" / "__init__.py").write_text("")
    (repo_root / "src" / "main.py").write_text("def main():\n    print('Hello, World!')")
    (repo_root / "src" / "utils" / "helpers.py").write_text("def helper():\n    return 42")
    (repo_root / "src" / "__pycache__" / "main.cpython-312.pyc").write_text("cached")
    (repo_root / "tests" / "test_main.py").write_text("def test_main():\n    assert True")
    (repo_root / ".git" / "config").write_text("[core]\n    repositoryformatversion = 0")
    (repo_root / ".github" / "ci.yml").write_text("on: push")
    (repo_root / ".env").write_text("SECRET=1")
    (repo_root / "node_modules" / "index.js").write_text("module.exports = {}")
    (repo_root / "build" / "out.py").write_text("generated = True")
    (repo_root / ".gitignore").write_text("build/\n*.log\n")
    (repo_root / "debug.log").write_text("log line")

    # Create binary file
    (repo_root / "image.png").write_bytes(b'\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR')

    return repo_root
