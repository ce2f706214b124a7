"""
Encoding detection and handling utilities.

Decodes raw file bytes by trying a BOM first and then a list of
fallback encodings in order.
"""

import codecs
import logging
from typing import List, Optional, Tuple


# Common encodings to try, ordered by likelihood
DEFAULT_ENCODINGS = [
    'utf-8',
    'utf-8-sig',  # UTF-8 with BOM
    'latin-1',
    'cp1252',     # Windows-1252
]

_BOMS = [
    (codecs.BOM_UTF32_LE, 'utf-32'),
    (codecs.BOM_UTF32_BE, 'utf-32'),
    (codecs.BOM_UTF8, 'utf-8-sig'),
    (codecs.BOM_UTF16_LE, 'utf-16'),
    (codecs.BOM_UTF16_BE, 'utf-16'),
]

# Set up module logger
logger = logging.getLogger(__name__)


class EncodingDetector:
    """Handles encoding detection and text decoding."""

    def __init__(self, fallback_encodings: Optional[List[str]] = None):
        """
        Initialize the encoding detector.

        Args:
            fallback_encodings: List of encodings to try. If None, uses defaults.
        """
        self.encodings = fallback_encodings or DEFAULT_ENCODINGS

    @staticmethod
    def detect_bom(content: bytes) -> Optional[str]:
        """Return the codec named by a leading byte order mark, if any."""
        for bom, encoding in _BOMS:
            if content.startswith(bom):
                return encoding
        return None

    def decode_bytes(self, content: bytes, file_path: Optional[str] = None) -> Tuple[Optional[str], Optional[str]]:
        """
        Attempt to decode bytes to string.

        Returns:
            Tuple of (decoded_text, error_message).
        """
        bom_encoding = self.detect_bom(content)
        if bom_encoding:
            try:
                return content.decode(bom_encoding), None
            except UnicodeDecodeError as e:
                logger.debug(f"BOM decode failed for {file_path}: {e}")

        for encoding in self.encodings:
            try:
                decoded = content.decode(encoding)
                logger.debug(f"Decoded {file_path} using {encoding}")
                return decoded, None
            except (UnicodeDecodeError, LookupError):
                continue

        return None, f"Unable to decode file with available encodings ({', '.join(self.encodings)})"
