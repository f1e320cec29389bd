"""Per-segment synthesis against the remote speech endpoint."""

from __future__ import annotations

import logging
from typing import Protocol

from .errors import SynthesisError
from .types import AudioSegment

logger = logging.getLogger(__name__)


class SpeechBackend(Protocol):
    async def synthesize(self, text: str, voice_id: str, credential: str) -> bytes:
        ...


class SegmentSynthesizer:
    """Turn one text segment into audio, attributing failures to its index.

    Success is all-or-nothing per segment: either non-empty audio comes back
    or ``SynthesisError`` is raised with the segment index attached.
    """

    def __init__(self, backend: SpeechBackend) -> None:
        self._backend = backend

    async def synthesize(
        self,
        text: str,
        voice_id: str,
        credential: str,
        index: int,
    ) -> AudioSegment:
        try:
            audio = await self._backend.synthesize(text, voice_id, credential)
        except Exception as exc:
            logger.error("Error generating segment %d: %s", index, exc)
            raise SynthesisError(index, str(exc)) from exc

        if not audio:
            logger.error("Speech endpoint returned no audio for segment %d", index)
            raise SynthesisError(index, "empty audio payload")

        logger.info("Synthesized segment %d (%d bytes)", index, len(audio))
        return AudioSegment(index=index, data=audio)


__all__ = ["SegmentSynthesizer", "SpeechBackend"]
