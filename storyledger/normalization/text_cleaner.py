"""Text cleanup for record-store free text.

Story copy, transcripts and bios come out of the record store with leftover rich-text HTML and
irregular whitespace. This module strips that noise and derives fixed-length excerpts. Removing
bracketed annotations such as transcript timestamps is opt-in (`strip_bracketed`).
"""

import re
from typing import Any, Optional

from loguru import logger

from storyledger.utils.config import NormalizationConfig


class TextCleaner:
    """Strip markup, collapse whitespace and build excerpts.

    Excerpt truncation is character-count based: text longer than ``excerpt_length`` is cut at
    exactly that many characters and the ellipsis is appended, so a 201-character body yields a
    203-character excerpt with the default settings.

    Example:
        >>> cleaner = TextCleaner()
        >>> cleaner.excerpt("<p>Hello   world</p>")
        'Hello world'
    """

    _TAG_RE = re.compile(r"<[^>]*>")
    _BRACKET_RE = re.compile(r"\[[^\]]*\]")
    _WHITESPACE_RE = re.compile(r"\s+")

    def __init__(self, config: Optional[NormalizationConfig] = None) -> None:
        """Initialize the text cleaner.

        Args:
            config: Normalization configuration. If None, uses default settings.
        """
        self.config = config or NormalizationConfig()
        logger.debug(
            "Initialized TextCleaner (excerpt_length={}, strip_bracketed={})",
            self.config.excerpt_length,
            self.config.strip_bracketed,
        )

    def clean(self, text: Any) -> str:
        """Return ``text`` with markup removed and whitespace collapsed.

        Non-string input yields an empty string.
        """
        if not isinstance(text, str) or not text:
            return ""

        text = self.strip_markup(text)
        return self.collapse_whitespace(text)

    def strip_markup(self, text: str) -> str:
        text = self._TAG_RE.sub("", text)
        if self.config.strip_bracketed:
            text = self._BRACKET_RE.sub("", text)
        return text

    def collapse_whitespace(self, text: str) -> str:
        return self._WHITESPACE_RE.sub(" ", text).strip()

    def excerpt(self, text: Any, limit: Optional[int] = None) -> str:
        """Build an excerpt of at most ``limit`` characters plus the ellipsis marker."""
        limit = self.config.excerpt_length if limit is None else limit
        cleaned = self.clean(text)
        if len(cleaned) > limit:
            return cleaned[:limit] + self.config.ellipsis
        return cleaned
