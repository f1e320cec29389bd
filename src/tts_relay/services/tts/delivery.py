"""Output-delivery strategies for an assembled track."""

from __future__ import annotations

import base64
from typing import Protocol

from ...config import Settings
from ..output_retention import OutputRetentionStore
from .types import AssembledTrack, DeliveredOutput


class OutputDelivery(Protocol):
    name: str

    async def deliver(self, track: AssembledTrack) -> DeliveredOutput:
        ...


class PersistToRetentionStore:
    """Write the track to the retention store and return its URL."""

    name = "persist"

    def __init__(self, store: OutputRetentionStore) -> None:
        self.store = store

    async def deliver(self, track: AssembledTrack) -> DeliveredOutput:
        stored = await self.store.save(track.data)
        return DeliveredOutput(
            url=stored.url,
            mime_type=track.mime_type,
            timing_preserved=not track.timing_dropped,
        )


class ReturnInline:
    """Return the track base64-encoded in the response body."""

    name = "inline"

    async def deliver(self, track: AssembledTrack) -> DeliveredOutput:
        return DeliveredOutput(
            audio_base64=base64.b64encode(track.data).decode("ascii"),
            mime_type=track.mime_type,
            timing_preserved=not track.timing_dropped,
        )


def create_delivery(
    settings: Settings, store: OutputRetentionStore | None
) -> OutputDelivery:
    if settings.delivery_mode == "inline":
        return ReturnInline()
    if store is None:
        raise ValueError("Persist delivery requires an output retention store")
    return PersistToRetentionStore(store)


__all__ = ["OutputDelivery", "PersistToRetentionStore", "ReturnInline", "create_delivery"]
