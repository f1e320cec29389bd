"""Tests for the speech pipeline."""

from __future__ import annotations

import base64

import pytest

from conftest import FakeSpeechBackend
from tts_relay.services.output_retention import OutputRetentionStore
from tts_relay.services.tts.assembler import AudioAssembler
from tts_relay.services.tts.delivery import PersistToRetentionStore, ReturnInline
from tts_relay.services.tts.errors import (
    NothingToProcessError,
    SpeechValidationError,
    SynthesisError,
)
from tts_relay.services.tts.pipeline import SpeechPipeline
from tts_relay.services.tts.synthesizer import SegmentSynthesizer
from tts_relay.services.tts.types import SpeechJob

SRT = (
    "1\n00:00:01,000 --> 00:00:05,000\nHello\n\n"
    "2\n00:00:06,000 --> 00:00:10,000\nWorld\n"
)


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _job(text: str = "Hello world. This is a test!", **overrides) -> SpeechJob:
    values = {
        "text": text,
        "voice": "BV074_streaming",
        "input_type": "text",
        "credential": "sessionid=abc",
    }
    values.update(overrides)
    return SpeechJob(**values)


def _pipeline(backend, *, transcoder=None, delivery=None, sleep=None, **kwargs):
    return SpeechPipeline(
        SegmentSynthesizer(backend),
        AudioAssembler(transcoder),
        delivery or ReturnInline(),
        sleep=sleep or RecordingSleep(),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_short_text_is_synthesized_once(speech_backend):
    output = await _pipeline(speech_backend).run(_job())

    assert speech_backend.calls == [
        ("Hello world. This is a test.", "BV074_streaming", "sessionid=abc")
    ]
    assert base64.b64decode(output.audio_base64) == b"<audio:0>"
    assert output.mime_type == "audio/mpeg"
    assert output.timing_preserved is True


@pytest.mark.asyncio
async def test_segments_are_paced_but_not_after_the_last(speech_backend):
    sleep = RecordingSleep()
    pipeline = _pipeline(speech_backend, sleep=sleep, chunk_max_chars=22)

    output = await pipeline.run(_job("First sentence here. Second sentence here. Third one."))

    assert [call[0] for call in speech_backend.calls] == [
        "First sentence here.",
        "Second sentence here.",
        "Third one.",
    ]
    assert sleep.calls == [0.5, 0.5]
    assert base64.b64decode(output.audio_base64) == b"<audio:0><audio:1><audio:2>"


@pytest.mark.asyncio
async def test_srt_run_follows_cue_timing(speech_backend, fake_transcoder):
    pipeline = _pipeline(speech_backend, transcoder=fake_transcoder)

    output = await pipeline.run(_job(SRT, input_type="srt"))

    assert [call[0] for call in speech_backend.calls] == ["Hello", "World"]
    assert fake_transcoder.silences == [1.0]
    assert fake_transcoder.padded == [(b"<audio:0>", 5.0), (b"<audio:1>", 4.0)]
    assert output.timing_preserved is True


@pytest.mark.asyncio
async def test_srt_without_transcoder_reports_dropped_timing(speech_backend):
    output = await _pipeline(speech_backend).run(_job(SRT, input_type="srt"))

    assert base64.b64decode(output.audio_base64) == b"<audio:0><audio:1>"
    assert output.timing_preserved is False


def test_blank_cues_are_not_synthesized(speech_backend):
    srt = SRT + (
        "\n3\n00:00:11,000 --> 00:00:12,000\n\u00a0\n\n"
        "4\n00:00:13,000 --> 00:00:14,000\nAgain\n"
    )
    pipeline = _pipeline(speech_backend)

    plan = pipeline.plan(_job(srt, input_type="srt"))

    assert plan.texts == ("Hello", "World", "Again")
    assert [cue.index for cue in plan.timings] == [1, 2, 4]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"credential": ""}, "cookie is required"),
        ({"credential": "   "}, "cookie is required"),
        ({"text": ""}, "between 1 and 5000"),
        ({"text": "x" * 5001}, "between 1 and 5000"),
        ({"voice": "robot_voice"}, "Invalid voice"),
        ({"input_type": "xml"}, "Input type"),
    ],
)
async def test_invalid_jobs_never_reach_the_endpoint(speech_backend, overrides, message):
    with pytest.raises(SpeechValidationError, match=message) as excinfo:
        await _pipeline(speech_backend).run(_job(**overrides))

    assert excinfo.value.status_code == 400
    assert speech_backend.calls == []


@pytest.mark.asyncio
async def test_text_at_the_length_limit_is_accepted(speech_backend):
    await _pipeline(speech_backend).run(_job("word " * 1000))

    assert speech_backend.calls


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "text, input_type",
    [
        ("...!!!", "text"),
        ("not a subtitle file", "srt"),
        ("1\n00:00:01,000 --> 00:00:02,000\n   \n", "srt"),
    ],
)
async def test_nothing_to_process(speech_backend, text, input_type):
    with pytest.raises(NothingToProcessError):
        await _pipeline(speech_backend).run(_job(text, input_type=input_type))

    assert speech_backend.calls == []


@pytest.mark.asyncio
async def test_failure_stops_the_run_and_delivers_nothing(tmp_path):
    backend = FakeSpeechBackend(fail_at=2)
    store = OutputRetentionStore(tmp_path)
    sleep = RecordingSleep()
    pipeline = _pipeline(
        backend,
        delivery=PersistToRetentionStore(store),
        sleep=sleep,
        chunk_max_chars=12,
    )
    text = "One here. Two here. Three now. Four now. Five now."

    with pytest.raises(SynthesisError) as excinfo:
        await pipeline.run(_job(text))

    assert excinfo.value.index == 2
    assert excinfo.value.status_code == 502
    assert len(backend.calls) == 3
    assert len(sleep.calls) == 2
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_persist_delivery_returns_url(speech_backend, tmp_path):
    store = OutputRetentionStore(tmp_path, url_prefix="/tts-outputs")
    pipeline = _pipeline(speech_backend, delivery=PersistToRetentionStore(store))

    output = await pipeline.run(_job())

    assert output.url.startswith("/tts-outputs/tts-")
    assert output.audio_base64 is None
    (stored,) = tmp_path.glob("*.mp3")
    assert stored.read_bytes() == b"<audio:0>"
