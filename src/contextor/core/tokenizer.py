"""
Token counting functionality for contextor.

Tokenizers are identified by a model id. tiktoken encodings (``cl100k_base``)
and OpenAI model names (``gpt-4o``) are served by tiktoken; anything else is
treated as a Hugging Face tokenizer repository (``Xenova/gpt-4``) and loaded
through ``transformers``. Each model is loaded at most once per process.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import tiktoken

from .models import FileNode

logger = logging.getLogger(__name__)


class TokenizerError(Exception):
    """Raised when a tokenizer cannot be loaded or fails to encode text."""

    def __init__(self, model_id: str, cause: BaseException):
        self.model_id = model_id
        self.cause = cause
        super().__init__(f"Tokenizer '{model_id}' failed: {cause}")


@dataclass(frozen=True)
class TokenCount:
    """Result of encoding one piece of text."""
    token_count: int
    tokens: Optional[List[str]] = None


class TiktokenEncoder:
    """Adapts a tiktoken ``Encoding`` to the encoder interface."""

    def __init__(self, encoding):
        self.encoding = encoding

    def encode(self, text: str) -> List[int]:
        # Source files may legitimately contain special-token text
        return self.encoding.encode(text, disallowed_special=())

    def decode(self, token_id: int) -> str:
        return self.encoding.decode_single_token_bytes(token_id).decode('utf-8', errors='replace')


class HuggingFaceEncoder:
    """Adapts a ``transformers`` tokenizer to the encoder interface."""

    def __init__(self, tokenizer):
        self.tokenizer = tokenizer

    def encode(self, text: str) -> List[int]:
        return list(self.tokenizer.encode(text, add_special_tokens=False))

    def decode(self, token_id: int) -> str:
        return self.tokenizer.decode([token_id])


def load_tokenizer(model_id: str):
    """
    Load the tokenizer for a model id.

    This may download model files on first use, so callers should go
    through a TokenizerCache rather than calling it per file.
    """
    if model_id in tiktoken.list_encoding_names():
        return TiktokenEncoder(tiktoken.get_encoding(model_id))
    try:
        return TiktokenEncoder(tiktoken.encoding_for_model(model_id))
    except KeyError:
        pass

    from transformers import AutoTokenizer
    return HuggingFaceEncoder(AutoTokenizer.from_pretrained(model_id))


class TokenizerCache:
    """
    Process-wide store of loaded tokenizers keyed by model id.

    Entries are created on first use and never evicted. Loading is guarded
    by one lock per model id, so concurrent callers asking for the same
    model wait for a single load instead of racing. A failed load is kept
    too and re-raised on later lookups.
    """

    def __init__(self, loader: Optional[Callable[[str], Any]] = None):
        self._loader = loader or load_tokenizer
        self._tokenizers: Dict[str, Any] = {}
        self._failures: Dict[str, TokenizerError] = {}
        self._key_locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def __contains__(self, model_id: str) -> bool:
        return model_id in self._tokenizers

    def __len__(self) -> int:
        return len(self._tokenizers)

    def _lock_for(self, model_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._key_locks.get(model_id)
            if lock is None:
                lock = self._key_locks[model_id] = threading.Lock()
            return lock

    def get(self, model_id: str):
        """Return the tokenizer for model_id, loading it on first use."""
        tokenizer = self._tokenizers.get(model_id)
        if tokenizer is not None:
            return tokenizer

        with self._lock_for(model_id):
            if model_id in self._tokenizers:
                return self._tokenizers[model_id]
            if model_id in self._failures:
                raise self._failures[model_id]

            logger.info(f"Loading tokenizer for model: {model_id}")
            try:
                tokenizer = self._loader(model_id)
            except Exception as e:
                error = TokenizerError(model_id, e)
                self._failures[model_id] = error
                raise error from e
            self._tokenizers[model_id] = tokenizer
            return tokenizer


_default_cache = TokenizerCache()


def get_default_cache() -> TokenizerCache:
    """Return the cache shared by every TokenCounter in this process."""
    return _default_cache


class TokenCounter:
    """
    Handles token counting for text content.

    Args:
        model_id: Tokenizer model identifier (see TOKENIZER_OPTIONS).
        cache: Tokenizer cache to use; defaults to the process-wide cache.
    """

    def __init__(self, model_id: str, cache: Optional[TokenizerCache] = None):
        self.model_id = model_id
        self.cache = cache if cache is not None else get_default_cache()

    def count(self, text: str, include_tokens: bool = False) -> TokenCount:
        """
        Count tokens in the given text.

        Args:
            text: The text to count tokens for.
            include_tokens: Also return the decoded token strings.

        Returns:
            TokenCount for the text.

        Raises:
            TokenizerError: If the tokenizer cannot be loaded or encoding fails.
        """
        if not text:
            return TokenCount(0, [] if include_tokens else None)

        tokenizer = self.cache.get(self.model_id)
        try:
            ids = tokenizer.encode(text)
            tokens = [tokenizer.decode(i) for i in ids] if include_tokens else None
        except Exception as e:
            raise TokenizerError(self.model_id, e) from e
        return TokenCount(len(ids), tokens)

    def annotate(self, nodes: Iterable[FileNode],
                 on_file: Optional[Callable[[FileNode], None]] = None) -> Tuple[FileNode, ...]:
        """
        Return a copy of the tree with token counts on every node.

        A file whose tokenization fails keeps going with ``token_count=0``
        and an error note; directories are summed after their children.
        """
        annotated = []
        for node in nodes:
            if node.is_dir:
                annotated.append(node.with_children(self.annotate(node.children, on_file)))
                continue
            try:
                result = self.count(node.content or "")
                node = node.with_tokens(result.token_count)
            except TokenizerError as e:
                logger.warning(f"Error tokenizing file {node.path}: {e.cause}")
                node = node.with_tokens(0, error=str(e))
            if on_file is not None:
                on_file(node)
            annotated.append(node)
        return tuple(annotated)


def count_tokens(text: str, model_id: str) -> TokenCount:
    """Count tokens in text with the cached tokenizer for model_id."""
    return TokenCounter(model_id).count(text)
