"""Tests for audio assembly."""

from __future__ import annotations

import pytest

from conftest import FakeTranscoder
from tts_relay.services.tts.assembler import (
    MIN_SLOT_SECONDS,
    AudioAssembler,
    compute_slot_durations,
)
from tts_relay.services.tts.errors import AssemblyError, TranscodingError
from tts_relay.services.tts.types import AudioSegment, TimedSegment


def _segments(*payloads: bytes) -> list[AudioSegment]:
    return [AudioSegment(index=i, data=data) for i, data in enumerate(payloads)]


def _cue(index: int, start: float, end: float) -> TimedSegment:
    return TimedSegment(index=index, start=start, end=end, text=f"cue {index}")


@pytest.mark.asyncio
async def test_no_segments_is_an_error():
    with pytest.raises(AssemblyError):
        await AudioAssembler().assemble([])


@pytest.mark.asyncio
async def test_single_segment_is_returned_unchanged():
    track = await AudioAssembler().assemble(_segments(b"only-one"))

    assert track.data == b"only-one"
    assert track.mode == "simple"
    assert track.mime_type == "audio/mpeg"


@pytest.mark.asyncio
async def test_simple_mode_concatenates_in_order():
    track = await AudioAssembler().assemble(_segments(b"a", b"b", b"c"))

    assert track.data == b"abc"
    assert track.timing_dropped is False


@pytest.mark.asyncio
async def test_timings_without_transcoder_fall_back_to_simple():
    cues = [_cue(1, 1.0, 5.0), _cue(2, 6.0, 10.0)]

    track = await AudioAssembler().assemble(_segments(b"x", b"y"), cues)

    assert track.data == b"xy"
    assert track.mode == "simple"
    assert track.timing_dropped is True


@pytest.mark.asyncio
async def test_duration_aware_places_segments_on_the_subtitle_clock(fake_transcoder):
    cues = [_cue(1, 1.0, 5.0), _cue(2, 6.0, 10.0)]
    assembler = AudioAssembler(fake_transcoder)

    track = await assembler.assemble(_segments(b"hello", b"world"), cues)

    assert track.mode == "duration_aware"
    assert fake_transcoder.silences == [1.0]
    assert fake_transcoder.padded == [(b"hello", 5.0), (b"world", 4.0)]
    assert track.data == b"[silence@1.00][hello@5.00][world@4.00]"
    total = sum(fake_transcoder.silences) + sum(d for _, d in fake_transcoder.padded)
    assert total == pytest.approx(10.0)


@pytest.mark.asyncio
async def test_duration_aware_without_zero_alignment_skips_lead_in(fake_transcoder):
    cues = [_cue(1, 1.0, 5.0), _cue(2, 6.0, 10.0)]
    assembler = AudioAssembler(fake_transcoder, align_to_zero=False)

    await assembler.assemble(_segments(b"hello", b"world"), cues)

    assert fake_transcoder.silences == []
    assert [d for _, d in fake_transcoder.padded] == [5.0, 4.0]


@pytest.mark.asyncio
async def test_overlapping_cues_are_cut_at_the_next_start(fake_transcoder):
    cues = [_cue(1, 0.0, 5.0), _cue(2, 3.0, 6.0)]

    await AudioAssembler(fake_transcoder).assemble(_segments(b"a", b"b"), cues)

    assert fake_transcoder.silences == []
    assert [d for _, d in fake_transcoder.padded] == [3.0, 3.0]


@pytest.mark.asyncio
async def test_count_mismatch_is_an_error(fake_transcoder):
    cues = [_cue(1, 0.0, 1.0)]

    with pytest.raises(AssemblyError, match="mismatch"):
        await AudioAssembler(fake_transcoder).assemble(_segments(b"a", b"b"), cues)


@pytest.mark.asyncio
async def test_transcoder_failure_propagates():
    assembler = AudioAssembler(FakeTranscoder(fail_on_pad=True))

    with pytest.raises(TranscodingError):
        await assembler.assemble(_segments(b"a"), [_cue(1, 0.0, 1.0)])


def test_slot_offsets_follow_cue_starts():
    cues = [_cue(1, 2.0, 3.0), _cue(2, 4.5, 6.0), _cue(3, 7.25, 9.0)]

    slots = compute_slot_durations(cues, origin=2.0)

    assert slots == [2.5, 2.75, 1.75]
    offsets = [sum(slots[:i]) for i in range(len(slots))]
    assert offsets == pytest.approx([c.start - cues[0].start for c in cues])


def test_cues_sharing_a_start_get_minimum_slot():
    cues = [_cue(1, 1.0, 2.0), _cue(2, 1.0, 3.0)]

    assert compute_slot_durations(cues, origin=0.0) == [MIN_SLOT_SECONDS, 1.95]


@pytest.mark.asyncio
async def test_tied_starts_do_not_delay_later_cues(fake_transcoder):
    cues = [_cue(i, 1.0, 2.0) for i in range(1, 6)] + [_cue(6, 5.0, 6.0)]
    payloads = [f"seg{i}".encode() for i in range(6)]

    await AudioAssembler(fake_transcoder).assemble(_segments(*payloads), cues)

    durations = fake_transcoder.silences + [d for _, d in fake_transcoder.padded]
    offsets = [round(sum(durations[: i + 1]), 2) for i in range(len(durations))]
    assert offsets[:5] == pytest.approx([1.0, 1.05, 1.1, 1.15, 1.2])
    assert offsets[5] == pytest.approx(5.0)
    assert sum(durations) == pytest.approx(6.0)
