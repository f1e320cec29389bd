"""Merge per-segment audio into one track.

Two modes:

- simple: byte concatenation in segment order. Used for untimed text and
  whenever no transcoder is available.
- duration-aware: each segment is padded with silence or cut so that it
  fills its cue's slot, which runs until the next cue starts (the last cue
  keeps its own duration). Concatenating the slots in order puts segment
  ``i`` at offset ``start[i] - start[0]``. With ``align_to_zero`` the track
  also opens with ``start[0]`` seconds of silence so offsets match the
  subtitle clock.
"""

from __future__ import annotations

import logging
from typing import Sequence

from .errors import AssemblyError
from .transcoder import AudioTranscoder
from .types import AssembledTrack, AudioSegment, TimedSegment

logger = logging.getLogger(__name__)

# Shortest slot handed to the transcoder; cues sharing a start time would
# otherwise get a zero-length slot.
MIN_SLOT_SECONDS = 0.05


def _timeline_point(seconds: float, origin: float) -> float:
    return round(seconds - origin, 2)


def compute_slot_durations(timings: Sequence[TimedSegment], *, origin: float) -> list[float]:
    """Return the target duration of every cue's slot, in seconds.

    Slots are measured from a running cursor of the time already laid
    down, so a slot stretched to ``MIN_SLOT_SECONDS`` is paid back by the
    following slots instead of delaying every later cue. Boundaries are
    rounded to hundredths.
    """

    slots: list[float] = []
    cursor = _timeline_point(timings[0].start, origin) if timings else 0.0
    for position, timing in enumerate(timings):
        if position + 1 < len(timings):
            end = _timeline_point(timings[position + 1].start, origin)
        else:
            end = _timeline_point(timing.end, origin)
        slot = max(round(end - cursor, 2), MIN_SLOT_SECONDS)
        slots.append(slot)
        cursor = round(cursor + slot, 2)
    return slots


class AudioAssembler:
    """Produce an ``AssembledTrack`` from ordered audio segments."""

    def __init__(
        self,
        transcoder: AudioTranscoder | None = None,
        *,
        align_to_zero: bool = True,
    ) -> None:
        self._transcoder = transcoder
        self._align_to_zero = align_to_zero

    @property
    def supports_timing(self) -> bool:
        return self._transcoder is not None

    async def assemble(
        self,
        segments: Sequence[AudioSegment],
        timings: Sequence[TimedSegment] | None = None,
    ) -> AssembledTrack:
        if not segments:
            raise AssemblyError("No audio segments to assemble")

        if timings is None:
            return self._concatenate(segments)

        if len(timings) != len(segments):
            raise AssemblyError(
                f"Segment count mismatch: {len(segments)} audio segment(s) "
                f"for {len(timings)} cue(s)"
            )

        if self._transcoder is None:
            logger.warning(
                "No transcoder available; concatenating %d cue(s) without timing",
                len(segments),
            )
            track = self._concatenate(segments)
            return AssembledTrack(data=track.data, mode="simple", timing_dropped=True)

        return await self._assemble_timed(self._transcoder, segments, timings)

    @staticmethod
    def _concatenate(segments: Sequence[AudioSegment]) -> AssembledTrack:
        if len(segments) == 1:
            return AssembledTrack(data=segments[0].data, mode="simple")
        return AssembledTrack(
            data=b"".join(segment.data for segment in segments),
            mode="simple",
        )

    async def _assemble_timed(
        self,
        transcoder: AudioTranscoder,
        segments: Sequence[AudioSegment],
        timings: Sequence[TimedSegment],
    ) -> AssembledTrack:
        origin = 0.0 if self._align_to_zero else timings[0].start
        slots = compute_slot_durations(timings, origin=origin)

        parts: list[bytes] = []
        lead_in = _timeline_point(timings[0].start, origin)
        if lead_in >= MIN_SLOT_SECONDS:
            parts.append(await transcoder.silence(lead_in))

        for segment, slot in zip(segments, slots):
            logger.debug("Fitting segment %d to %.2fs", segment.index, slot)
            parts.append(await transcoder.pad_or_trim(segment.data, slot))

        data = await transcoder.concatenate(parts)
        logger.info(
            "Assembled %d cue(s) into %.2fs timed track",
            len(segments),
            lead_in + sum(slots),
        )
        return AssembledTrack(data=data, mode="duration_aware")


__all__ = ["AudioAssembler", "MIN_SLOT_SECONDS", "compute_slot_durations"]
