"""Audio transcoding capability used by duration-aware assembly.

The assembler only depends on the ``AudioTranscoder`` protocol. The ffmpeg
implementation shells out once per operation, working inside a temporary
directory that is removed on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from contextlib import suppress
from pathlib import Path
from typing import Protocol, Sequence

from ...config import Settings
from .errors import TranscodingError

logger = logging.getLogger(__name__)

SAMPLE_RATE = 22050
CHANNELS = 2
BITRATE = "96k"


class AudioTranscoder(Protocol):
    async def pad_or_trim(self, data: bytes, duration: float) -> bytes:
        """Return ``data`` silence-padded or cut to exactly ``duration`` seconds."""
        ...

    async def concatenate(self, parts: Sequence[bytes]) -> bytes:
        """Join already-normalized parts into one stream, in order."""
        ...

    async def silence(self, duration: float) -> bytes:
        """Return ``duration`` seconds of silence in the output format."""
        ...


def format_duration(seconds: float) -> str:
    return f"{max(seconds, 0.0):.2f}"


class FfmpegTranscoder:
    """``AudioTranscoder`` backed by the ffmpeg command-line tool."""

    def __init__(self, binary: str = "ffmpeg") -> None:
        self.binary = binary

    @staticmethod
    def is_available(binary: str = "ffmpeg") -> bool:
        return shutil.which(binary) is not None

    def _encode_args(self) -> list[str]:
        return [
            "-ar", str(SAMPLE_RATE),
            "-ac", str(CHANNELS),
            "-ab", BITRATE,
            "-f", "mp3",
        ]

    async def _run(self, args: list[str]) -> None:
        cmd = [self.binary, "-y", "-hide_banner", "-loglevel", "error", *args]
        logger.debug("Running %s", " ".join(cmd))
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise TranscodingError(f"Failed to start {self.binary}: {exc}") from exc

        try:
            _, stderr = await process.communicate()
        except asyncio.CancelledError:
            with suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            raise
        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            raise TranscodingError(
                f"{self.binary} exited with {process.returncode}: {detail or 'no output'}"
            )

    async def pad_or_trim(self, data: bytes, duration: float) -> bytes:
        if not data:
            raise TranscodingError("Cannot pad an empty audio segment")
        duration_str = format_duration(duration)
        with tempfile.TemporaryDirectory(prefix="tts-pad-") as tmp:
            source = Path(tmp) / "input.mp3"
            target = Path(tmp) / "padded.mp3"
            await asyncio.to_thread(source.write_bytes, data)
            await self._run(
                [
                    "-i", str(source),
                    "-af", f"apad=pad_dur={duration_str}",
                    "-t", duration_str,
                    *self._encode_args(),
                    str(target),
                ]
            )
            return await asyncio.to_thread(target.read_bytes)

    async def silence(self, duration: float) -> bytes:
        duration_str = format_duration(duration)
        channel_layout = "stereo" if CHANNELS == 2 else "mono"
        with tempfile.TemporaryDirectory(prefix="tts-silence-") as tmp:
            target = Path(tmp) / "silence.mp3"
            await self._run(
                [
                    "-f", "lavfi",
                    "-i", f"anullsrc=r={SAMPLE_RATE}:cl={channel_layout}",
                    "-t", duration_str,
                    *self._encode_args(),
                    str(target),
                ]
            )
            return await asyncio.to_thread(target.read_bytes)

    async def concatenate(self, parts: Sequence[bytes]) -> bytes:
        if not parts:
            raise TranscodingError("Nothing to concatenate")
        if len(parts) == 1:
            return parts[0]
        with tempfile.TemporaryDirectory(prefix="tts-concat-") as tmp:
            paths: list[str] = []
            for position, part in enumerate(parts):
                path = Path(tmp) / f"part_{position:04d}.mp3"
                await asyncio.to_thread(path.write_bytes, part)
                paths.append(str(path))
            target = Path(tmp) / "output.mp3"
            await self._run(
                [
                    "-i", f"concat:{'|'.join(paths)}",
                    "-acodec", "copy",
                    str(target),
                ]
            )
            return await asyncio.to_thread(target.read_bytes)


def create_transcoder(settings: Settings) -> AudioTranscoder | None:
    """Return the deployment's transcoder, or ``None`` for simple mode only."""

    if not settings.transcoding_enabled:
        logger.info("Audio transcoding disabled; subtitle timing will not be preserved")
        return None
    if not FfmpegTranscoder.is_available(settings.ffmpeg_path):
        logger.warning(
            "%s not found on PATH; subtitle timing will not be preserved",
            settings.ffmpeg_path,
        )
        return None
    return FfmpegTranscoder(settings.ffmpeg_path)


__all__ = ["AudioTranscoder", "FfmpegTranscoder", "create_transcoder", "format_duration"]
