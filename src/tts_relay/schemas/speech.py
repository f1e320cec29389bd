"""Request and response models for the speech API."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class SpeechRequest(BaseModel):
    """Submission payload.

    Fields default to empty values so that missing input is reported by the
    pipeline's own validation instead of a generic schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    text: str = ""
    voice: str = ""
    type: Literal["text", "srt"] = "text"
    cookie: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("cookie", "credential"),
    )
    recaptcha_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("recaptchaToken", "verificationToken"),
    )


class SpeechResponse(BaseModel):
    """Either ``url`` (retained artifact) or ``audioBase64`` (inline) is set."""

    url: Optional[str] = None
    audioBase64: Optional[str] = None
    mimeType: Optional[str] = None
    timingPreserved: Optional[bool] = None
    warning: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str


class VoiceResource(BaseModel):
    id: str
    name: str


class VoiceListResponse(BaseModel):
    voices: list[VoiceResource]
    default: str


__all__ = [
    "ErrorResponse",
    "SpeechRequest",
    "SpeechResponse",
    "VoiceListResponse",
    "VoiceResource",
]
