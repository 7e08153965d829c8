"""
Cleaner Module - Text normalization and markup cleanup.
=======================================================

Two small transformations used throughout the pipeline:
- Query normalization (lowercase + trim) before pattern matching
- Superscript cleanup for extracted syllabus lines ("8^th^" -> "8th")
"""

import re
from dataclasses import dataclass
from typing import Optional


# ─────────────────────────────────────────────────────────────────────────────
# Cleaning Configuration
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CleanerConfig:
    """Configuration for markup cleanup."""

    # Longest suffix accepted in "<digits>^suffix^"
    max_suffix_length: int = 4
    # Longest token accepted in any other "^token^" span
    max_caret_token_length: int = 10


# ─────────────────────────────────────────────────────────────────────────────
# Text Cleaner Class
# ─────────────────────────────────────────────────────────────────────────────


class TextCleaner:
    """
    Normalizes queries and cleans markdown markup in extracted lines.

    Example:
        >>> cleaner = TextCleaner()
        >>> cleaner.normalize("  When is the EBO due? ")
        'when is the ebo due?'
        >>> cleaner.cleanup_superscripts("8^th^ grade")
        '8th grade'
    """

    def __init__(self, config: Optional[CleanerConfig] = None):
        self.config = config or CleanerConfig()

        self._ordinal_superscript = re.compile(
            rf"(\d+)\^([a-z]{{1,{self.config.max_suffix_length}}})\^", re.IGNORECASE
        )
        self._caret_span = re.compile(
            rf"\^([^^\s]{{1,{self.config.max_caret_token_length}}})\^"
        )

    def normalize(self, text: Optional[str]) -> str:
        """Lowercase and trim text for pattern matching."""
        if not text:
            return ""
        return text.strip().lower()

    def cleanup_superscripts(self, text: str) -> str:
        """
        Convert markdown superscripts into inline text.

        Ordinal suffixes attached to a number are joined to it; any other
        short caret-delimited span loses its carets. Text without caret
        markup is returned unchanged.
        """
        if "^" not in text:
            return text
        result = self._ordinal_superscript.sub(r"\1\2", text)
        return self._caret_span.sub(r"\1", result)


# ─────────────────────────────────────────────────────────────────────────────
# Convenience Functions
# ─────────────────────────────────────────────────────────────────────────────


_default_cleaner: Optional[TextCleaner] = None


def get_cleaner() -> TextCleaner:
    """Get the default cleaner instance."""
    global _default_cleaner
    if _default_cleaner is None:
        _default_cleaner = TextCleaner()
    return _default_cleaner


def normalize_text(text: Optional[str]) -> str:
    """Lowercase and trim text using the default cleaner."""
    return get_cleaner().normalize(text)


def cleanup_superscripts(text: str) -> str:
    """Clean superscript markup using the default cleaner."""
    return get_cleaner().cleanup_superscripts(text)
