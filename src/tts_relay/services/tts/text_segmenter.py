"""
Plain-text segmentation for the speech endpoint.

The speech endpoint only accepts short inputs, so untimed text is cut into
bounded chunks before synthesis. Sentences are the unit of work:

    "Hello world. This is a test!"  →  ["Hello world", "This is a test"]
                                     →  ["Hello world. This is a test."]

Sentences are packed greedily into chunks of at most ``max_chars``
characters. Each closed chunk ends with a period; sentences inside a chunk
are re-joined with ". " because runs of sentence punctuation collapse into
one split point. A sentence that cannot fit in any chunk on its own is cut
into fixed-size slices, which are emitted without a period.

Usage:
    segmenter = TextSegmenter(max_chars=200)
    chunks = segmenter.segment(text)
"""

import re
from typing import Iterable, List, Optional

_TERMINATOR = "."
_JOINER = ". "


class TextSegmenter:
    """
    Split untimed text into synthesis-sized chunks.

    Attributes:
        max_chars: Upper bound for every emitted chunk (default: 200)
        delimiters: Characters treated as one sentence-ending class
    """

    DEFAULT_DELIMITERS = ".!?"

    def __init__(
        self,
        max_chars: int = 200,
        delimiters: Optional[str] = None,
    ):
        if max_chars < 2:
            raise ValueError("max_chars must leave room for the trailing period")
        self.max_chars = max_chars
        self.delimiters = delimiters or self.DEFAULT_DELIMITERS
        self._delimiter_pattern = self._compile_pattern(self.delimiters)

    @staticmethod
    def _compile_pattern(delimiters: str) -> re.Pattern:
        """Compile a pattern that treats a run of delimiters as one split point."""
        return re.compile(f"[{re.escape(delimiters)}]+")

    def sentences(self, text: str) -> List[str]:
        """Split text into trimmed, non-empty sentence units."""
        units = (unit.strip() for unit in self._delimiter_pattern.split(text))
        return [unit for unit in units if unit]

    def segment(self, text: str) -> List[str]:
        """
        Pack sentence units into chunks.

        Args:
            text: Untimed input text

        Returns:
            Chunks in input order. Only hard-split slices of an oversized
            sentence may reach ``max_chars`` without a trailing period.
        """
        chunks: List[str] = []
        current = ""

        for unit in self.sentences(text):
            candidate = f"{current}{_JOINER}{unit}" if current else unit
            if len(candidate) + len(_TERMINATOR) <= self.max_chars:
                current = candidate
                continue

            if current:
                chunks.append(current + _TERMINATOR)
                current = ""

            if len(unit) + len(_TERMINATOR) > self.max_chars:
                chunks.extend(self._hard_split(unit))
            else:
                current = unit

        if current:
            chunks.append(current + _TERMINATOR)

        return chunks

    def _hard_split(self, unit: str) -> Iterable[str]:
        for start in range(0, len(unit), self.max_chars):
            piece = unit[start:start + self.max_chars].strip()
            if piece:
                yield piece


def split_text_into_chunks(text: str, max_chars: int = 200) -> List[str]:
    """Convenience wrapper around :class:`TextSegmenter`."""
    return TextSegmenter(max_chars=max_chars).segment(text)


__all__ = ["TextSegmenter", "split_text_into_chunks"]
