"""
File analysis module for contextor.

This module handles individual file processing including:
- Text vs. non-text classification
- File content reading with encoding fallbacks
"""

import logging
import mimetypes
from pathlib import Path
from typing import Optional, Tuple, Union

from .models import Config
from ..utils.encodings import EncodingDetector

logger = logging.getLogger(__name__)

mimetypes.init()

SNIFF_SIZE = 1024

# MIME type prefixes considered text. Guesses come from the extension only,
# so binary types such as application/x-python-code (.pyc) must not appear here
TEXT_MIME_TYPES = (
    'text/',
    'application/json',
    'application/xml',
    'application/javascript',
    'application/x-sh',
    'application/toml',
    'application/yaml',
    'application/x-yaml',
    'application/sql',
)

# Extensions trusted as text when the MIME probe is silent or wrong
# (e.g. ``.ts`` is guessed as MPEG transport stream)
TEXT_EXTENSIONS = {
    '.js', '.mjs', '.cjs', '.jsx', '.ts', '.tsx', '.py', '.pyi',
    '.json', '.ndjson', '.md', '.txt', '.rst', '.html', '.css', '.scss',
    '.yml', '.yaml', '.toml', '.ini', '.cfg', '.xml', '.svg',
    '.c', '.h', '.cc', '.cpp', '.cxx', '.hpp', '.cs', '.java', '.kt', '.kts',
    '.scala', '.go', '.rs', '.rb', '.php', '.swift', '.zig', '.sh', '.sql',
    '.vue', '.svelte', '.lua', '.r', '.dart', '.ex', '.exs', '.erl',
}

_WHITESPACE_BYTES = {9, 10, 13}


def _is_printable_ascii(sample: bytes) -> bool:
    return all(32 <= byte <= 126 or byte in _WHITESPACE_BYTES for byte in sample)


class FileAnalyzer:
    """Handles text classification and content extraction."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self.encoding_detector = EncodingDetector(self.config.encoding_fallbacks)

    def is_text_file(self, file_path: Union[str, Path]) -> bool:
        """
        Decide whether a file is text.

        Checks, in order:
        1. MIME type guess reports a text-like type
        2. Extension is a known text extension
        3. First 1024 bytes are printable ASCII or tab/newline/carriage return

        Any failure means "not text".
        """
        try:
            mime_type, _ = mimetypes.guess_type(str(file_path))
            if mime_type and mime_type.startswith(TEXT_MIME_TYPES):
                return True

            if Path(file_path).suffix.lower() in TEXT_EXTENSIONS:
                return True

            with open(file_path, 'rb') as f:
                sample = f.read(SNIFF_SIZE)
            return _is_printable_ascii(sample)
        except Exception as e:
            logger.warning(f"Unable to determine file type for {file_path}. Assuming it's not a text file. ({e})")
            return False

    def read_file_content(self, file_path: Union[str, Path]) -> Tuple[Optional[str], Optional[str]]:
        """
        Read file content with multiple encoding fallbacks.

        Returns:
            Tuple of (content, error_message)
            If successful, content is the file text and error_message is None
            If failed, content is None and error_message describes the issue
        """
        try:
            with open(file_path, 'rb') as f:
                raw_content = f.read()
        except PermissionError:
            return None, "Permission denied"
        except FileNotFoundError:
            return None, "File vanished during scan"
        except OSError as e:
            return None, f"Error reading file: {e}"

        return self.encoding_detector.decode_bytes(raw_content, str(file_path))
