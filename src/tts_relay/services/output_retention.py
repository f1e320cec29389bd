"""Bounded on-disk store for generated audio files."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

logger = logging.getLogger(__name__)

OUTPUT_SUFFIX = ".mp3"
OUTPUT_PREFIX = "tts-"


class OutputNotFound(LookupError):
    """Raised when a requested artifact is not in the store."""


@dataclass(frozen=True)
class StoredOutput:
    filename: str
    path: Path
    url: str


class OutputRetentionStore:
    """Keep the most recent ``max_files`` outputs, evicting oldest by mtime.

    Files are named ``tts-<epoch-ms>-<suffix>.mp3`` and served under
    ``url_prefix``.
    """

    def __init__(
        self,
        directory: Path,
        *,
        max_files: int = 50,
        url_prefix: str = "/tts-outputs",
    ) -> None:
        if max_files < 1:
            raise ValueError("max_files must be at least 1")
        self.directory = directory
        self.max_files = max_files
        self.url_prefix = "/" + url_prefix.strip("/")

    def _url_for(self, filename: str) -> str:
        return f"{self.url_prefix}/{filename}"

    async def save(self, data: bytes) -> StoredOutput:
        """Persist ``data`` and enforce the retention bound."""

        if not data:
            raise ValueError("Refusing to store an empty output")

        filename = f"{OUTPUT_PREFIX}{int(time.time() * 1000)}-{uuid4().hex[:8]}{OUTPUT_SUFFIX}"
        path = self.directory / filename

        def _write() -> None:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".part")
            tmp_path.write_bytes(data)
            tmp_path.replace(path)

        await asyncio.to_thread(_write)
        logger.info("Stored output %s (%d bytes)", filename, len(data))
        await self.enforce_limit()
        return StoredOutput(filename=filename, path=path, url=self._url_for(filename))

    def _list_outputs(self) -> list[Path]:
        if not self.directory.exists():
            return []
        return [
            entry
            for entry in self.directory.iterdir()
            if entry.is_file() and entry.suffix == OUTPUT_SUFFIX
        ]

    async def enforce_limit(self) -> int:
        """Delete the oldest outputs beyond ``max_files``; return how many were removed."""

        def _evict() -> int:
            outputs = []
            for entry in self._list_outputs():
                try:
                    outputs.append((entry.stat().st_mtime, entry))
                except FileNotFoundError:
                    continue
            excess = len(outputs) - self.max_files
            if excess <= 0:
                return 0
            outputs.sort(key=lambda item: item[0])
            removed = 0
            for _, entry in outputs[:excess]:
                try:
                    entry.unlink()
                    removed += 1
                except FileNotFoundError:
                    continue
            return removed

        removed = await asyncio.to_thread(_evict)
        if removed:
            logger.info("Evicted %d old output(s) from %s", removed, self.directory)
        return removed

    def resolve(self, filename: str) -> Path:
        """Return the path of a stored output, rejecting names outside the store."""

        candidate = Path(filename)
        if candidate.name != filename or candidate.suffix != OUTPUT_SUFFIX:
            raise OutputNotFound(filename)
        path = (self.directory / candidate.name).resolve()
        if not path.is_relative_to(self.directory.resolve()) or not path.is_file():
            raise OutputNotFound(filename)
        return path


__all__ = ["OutputNotFound", "OutputRetentionStore", "StoredOutput"]
