"""
Speech pipeline orchestration.

One run is strictly sequential and stops at the first failure:

    validate → parse/segment → synthesize (0..n-1, paced) → assemble → deliver

Synthesis calls are issued one at a time in segment order with a fixed
pause between consecutive calls. Nothing synthesized by a failed run is
kept or returned.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

from .assembler import AudioAssembler
from .delivery import OutputDelivery
from .errors import AssemblyError, NothingToProcessError, SpeechValidationError
from .subtitles import parse_srt
from .synthesizer import SegmentSynthesizer
from .text_segmenter import TextSegmenter
from .types import AssembledTrack, AudioSegment, DeliveredOutput, SpeechJob, TimedSegment
from .voices import is_known_voice

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class SpeechPlan:
    """Texts to synthesize, in order, with their cues when the input was timed."""

    texts: tuple[str, ...]
    timings: Optional[tuple[TimedSegment, ...]] = None


class SpeechPipeline:
    """
    Run a speech job end to end.

    Attributes:
        synthesizer: Per-segment synthesis against the speech endpoint
        assembler: Merges segment audio into one track
        delivery: Turns the track into a URL or an inline payload
    """

    def __init__(
        self,
        synthesizer: SegmentSynthesizer,
        assembler: AudioAssembler,
        delivery: OutputDelivery,
        *,
        max_text_chars: int = 5000,
        chunk_max_chars: int = 200,
        pacing_seconds: float = 0.5,
        sleep: Sleep = asyncio.sleep,
    ):
        self.synthesizer = synthesizer
        self.assembler = assembler
        self.delivery = delivery
        self.max_text_chars = max_text_chars
        self.segmenter = TextSegmenter(max_chars=chunk_max_chars)
        self.pacing_seconds = pacing_seconds
        self._sleep = sleep

    def validate(self, job: SpeechJob) -> None:
        """Reject malformed jobs before any external call is made."""
        if not job.credential or not job.credential.strip():
            raise SpeechValidationError("Speech endpoint cookie is required")
        if not job.text or len(job.text) > self.max_text_chars:
            raise SpeechValidationError(
                f"Text must be between 1 and {self.max_text_chars} characters"
            )
        if not is_known_voice(job.voice):
            raise SpeechValidationError("Invalid voice selected")
        if job.input_type not in ("text", "srt"):
            raise SpeechValidationError("Input type must be 'text' or 'srt'")

    def plan(self, job: SpeechJob) -> SpeechPlan:
        """Derive the ordered synthesis inputs for a job."""
        if job.input_type == "srt":
            cues = tuple(cue for cue in parse_srt(job.text) if cue.text.strip())
            plan = SpeechPlan(texts=tuple(cue.text.strip() for cue in cues), timings=cues)
        else:
            chunks = (chunk.strip() for chunk in self.segmenter.segment(job.text))
            plan = SpeechPlan(texts=tuple(chunk for chunk in chunks if chunk))

        if not plan.texts:
            raise NothingToProcessError()
        return plan

    async def synthesize_all(self, texts: Sequence[str], job: SpeechJob) -> list[AudioSegment]:
        """Synthesize every text in order; the first failure aborts the run."""
        segments: list[AudioSegment] = []
        last = len(texts) - 1
        for index, text in enumerate(texts):
            segments.append(
                await self.synthesizer.synthesize(text, job.voice, job.credential, index)
            )
            if index < last and self.pacing_seconds > 0:
                await self._sleep(self.pacing_seconds)
        return segments

    async def render(self, job: SpeechJob) -> AssembledTrack:
        """Plan, synthesize and assemble an already validated job."""
        plan = self.plan(job)
        logger.info(
            "Starting %s run: %d segment(s), voice=%s",
            job.input_type,
            len(plan.texts),
            job.voice,
        )

        audio = await self.synthesize_all(plan.texts, job)
        if len(audio) != len(plan.texts):
            raise AssemblyError(
                f"Expected {len(plan.texts)} audio segment(s), got {len(audio)}"
            )

        return await self.assembler.assemble(audio, plan.timings)

    async def execute(self, job: SpeechJob) -> DeliveredOutput:
        """Run an already validated job and deliver its track."""
        start_time = time.monotonic()
        track = await self.render(job)
        output = await self.delivery.deliver(track)

        elapsed = (time.monotonic() - start_time) * 1000
        logger.info(
            "Completed %s run in %.0fms (%s assembly, %s delivery)",
            job.input_type,
            elapsed,
            track.mode,
            self.delivery.name,
        )
        return output

    async def run(self, job: SpeechJob) -> DeliveredOutput:
        self.validate(job)
        return await self.execute(job)


__all__ = ["SpeechPipeline", "SpeechPlan"]
