"""Known voice identifiers accepted by the speech endpoint."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Voice:
    id: str
    name: str


VOICES: tuple[Voice, ...] = (
    Voice("BV074_streaming", "Cô Gái Hoạt Ngôn"),
    Voice("BV075_streaming", "Thanh Niên Tự Tin"),
    Voice("vi_female_huong", "Giọng Nữ Phổ Thông"),
    Voice("BV421_vivn_streaming", "Nguồn Nhỏ Ngọt Ngào"),
    Voice("BV560_streaming", "Anh Dũng"),
    Voice("BV562_streaming", "Chí Mai"),
)

VOICE_IDS: frozenset[str] = frozenset(voice.id for voice in VOICES)

DEFAULT_VOICE_ID = VOICES[0].id


def is_known_voice(voice_id: str) -> bool:
    return voice_id in VOICE_IDS


__all__ = ["DEFAULT_VOICE_ID", "VOICES", "VOICE_IDS", "Voice", "is_known_voice"]
