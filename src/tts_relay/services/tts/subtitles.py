"""SubRip (SRT) parsing into timed segments.

Parsing is lenient at block level: a block that does not look like a cue is
logged and skipped, the remaining blocks are still parsed. The result is
always ordered by start time.
"""

from __future__ import annotations

import logging
import math
import re

from .types import TimedSegment

logger = logging.getLogger(__name__)

_BLOCK_SEPARATOR = re.compile(r"\n[ \t]*\n")
_TIMING_SEPARATOR = "-->"


def parse_timestamp(value: str) -> float:
    """Convert ``HH:MM:SS,mmm`` into seconds.

    The sub-second part is optional and defaults to zero. A dot is accepted
    in place of the comma. Raises ``ValueError`` for anything else.
    """

    token = value.strip().replace(",", ".")
    parts = token.split(":")
    if len(parts) != 3:
        raise ValueError(f"Invalid subtitle timestamp: {value!r}")
    hours, minutes, seconds = parts
    if not hours.strip().isdigit() or not minutes.strip().isdigit():
        raise ValueError(f"Invalid subtitle timestamp: {value!r}")
    seconds_value = float(seconds) if seconds.strip() else 0.0
    if not math.isfinite(seconds_value) or seconds_value < 0:
        raise ValueError(f"Invalid subtitle timestamp: {value!r}")
    return int(hours) * 3600 + int(minutes) * 60 + seconds_value


def _parse_block(block: str) -> TimedSegment | None:
    lines = block.split("\n")
    if len(lines) < 3:
        return None

    try:
        index = int(lines[0].strip())
    except ValueError:
        return None
    if index < 0:
        return None

    start_token, sep, end_token = lines[1].partition(_TIMING_SEPARATOR)
    if not sep or not start_token.strip() or not end_token.strip():
        return None

    try:
        start = parse_timestamp(start_token)
        end = parse_timestamp(end_token)
    except ValueError:
        return None
    if end <= start:
        return None

    text = " ".join(lines[2:]).strip()
    return TimedSegment(index=index, start=start, end=end, text=text)


def parse_srt(content: str) -> list[TimedSegment]:
    """Parse subtitle text into segments sorted by start time.

    Returns an empty list when no block is well formed.
    """

    normalized = content.replace("\r\n", "\n").replace("\r", "\n").strip()
    if not normalized:
        return []

    segments: list[TimedSegment] = []
    skipped = 0
    for block in _BLOCK_SEPARATOR.split(normalized):
        segment = _parse_block(block.strip("\n"))
        if segment is None:
            skipped += 1
            continue
        segments.append(segment)

    if skipped:
        logger.debug("Skipped %d malformed subtitle block(s)", skipped)

    segments.sort(key=lambda segment: segment.start)
    return segments


__all__ = ["parse_srt", "parse_timestamp"]
