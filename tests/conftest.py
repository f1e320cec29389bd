import pathlib
import sys
from typing import Sequence

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from tts_relay.services.tts.errors import TranscodingError  # noqa: E402


class FakeSpeechBackend:
    """Stands in for the remote speech endpoint."""

    def __init__(self, fail_at: int | None = None, empty_at: int | None = None) -> None:
        self.fail_at = fail_at
        self.empty_at = empty_at
        self.calls: list[tuple[str, str, str]] = []

    async def synthesize(self, text: str, voice_id: str, credential: str) -> bytes:
        position = len(self.calls)
        self.calls.append((text, voice_id, credential))
        if position == self.fail_at:
            raise RuntimeError("upstream exploded")
        if position == self.empty_at:
            return b""
        return f"<audio:{position}>".encode()


class FakeTranscoder:
    """Records transcoding operations and renders them as readable bytes."""

    def __init__(self, fail_on_pad: bool = False) -> None:
        self.fail_on_pad = fail_on_pad
        self.padded: list[tuple[bytes, float]] = []
        self.silences: list[float] = []
        self.concatenated: list[list[bytes]] = []

    async def pad_or_trim(self, data: bytes, duration: float) -> bytes:
        if self.fail_on_pad:
            raise TranscodingError("ffmpeg exited with 1")
        self.padded.append((data, duration))
        return b"[" + data + f"@{duration:.2f}]".encode()

    async def silence(self, duration: float) -> bytes:
        self.silences.append(duration)
        return f"[silence@{duration:.2f}]".encode()

    async def concatenate(self, parts: Sequence[bytes]) -> bytes:
        self.concatenated.append(list(parts))
        return b"".join(parts)


@pytest.fixture
def speech_backend() -> FakeSpeechBackend:
    return FakeSpeechBackend()


@pytest.fixture
def fake_transcoder() -> FakeTranscoder:
    return FakeTranscoder()
