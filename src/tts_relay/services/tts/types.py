"""Value types passed between the speech pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

InputType = Literal["text", "srt"]

MP3_MIME_TYPE = "audio/mpeg"


@dataclass(frozen=True)
class TimedSegment:
    """One subtitle cue: ordinal, start/end in seconds, and its spoken text."""

    index: int
    start: float
    end: float
    text: str

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class AudioSegment:
    """Encoded audio returned by the speech endpoint for one segment."""

    index: int
    data: bytes = field(repr=False)


@dataclass(frozen=True)
class AssembledTrack:
    """The single merged audio stream produced for a run.

    ``timing_dropped`` is true when cue timing was available but could not
    be reproduced because the deployment has no transcoding capability.
    """

    data: bytes = field(repr=False)
    mode: Literal["simple", "duration_aware"]
    mime_type: str = MP3_MIME_TYPE
    timing_dropped: bool = False


@dataclass(frozen=True)
class SpeechJob:
    """A caller submission after transport decoding."""

    text: str
    voice: str
    input_type: InputType
    credential: str


@dataclass(frozen=True)
class DeliveredOutput:
    """What a delivery strategy hands back to the transport layer."""

    url: str | None = None
    audio_base64: str | None = None
    mime_type: str = MP3_MIME_TYPE
    timing_preserved: bool = True


__all__ = [
    "AssembledTrack",
    "AudioSegment",
    "DeliveredOutput",
    "InputType",
    "MP3_MIME_TYPE",
    "SpeechJob",
    "TimedSegment",
]
