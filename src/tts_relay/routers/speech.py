"""Routes for speech submissions and generated audio retrieval."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse

from ..schemas.speech import (
    ErrorResponse,
    SpeechRequest,
    SpeechResponse,
    VoiceListResponse,
    VoiceResource,
)
from ..services.output_retention import OutputNotFound, OutputRetentionStore
from ..services.rate_limiter import SlidingWindowRateLimiter
from ..services.recaptcha import RecaptchaVerifier
from ..services.tts.errors import RateLimitExceeded, SpeechError
from ..services.tts.pipeline import SpeechPipeline
from ..services.tts.types import MP3_MIME_TYPE, SpeechJob
from ..services.tts.voices import DEFAULT_VOICE_ID, VOICES

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/tts", tags=["tts"])

GENERIC_FAILURE = "Failed to generate audio"
TIMING_DROPPED_WARNING = (
    "Subtitle timing could not be preserved on this server; "
    "segments were joined back to back"
)


def get_pipeline(request: Request) -> SpeechPipeline:
    pipeline = getattr(request.app.state, "speech_pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=500, detail="Speech pipeline unavailable")
    return pipeline


def get_rate_limiter(request: Request) -> SlidingWindowRateLimiter:
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        raise HTTPException(status_code=500, detail="Rate limiter unavailable")
    return limiter


def get_verifier(request: Request) -> RecaptchaVerifier | None:
    return getattr(request.app.state, "recaptcha_verifier", None)


def get_retention_store(request: Request) -> OutputRetentionStore:
    store = getattr(request.app.state, "retention_store", None)
    if store is None:
        raise HTTPException(status_code=404, detail="Output not found")
    return store


def client_identity(request: Request) -> str:
    """Caller address as seen by the ASGI server.

    Proxy headers are not read here; uvicorn rewrites the peer address from
    ``X-Forwarded-For`` only for proxies listed in ``FORWARDED_ALLOW_IPS``.
    """
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.get("/voices", response_model=VoiceListResponse)
async def list_voices() -> VoiceListResponse:
    return VoiceListResponse(
        voices=[VoiceResource(id=voice.id, name=voice.name) for voice in VOICES],
        default=DEFAULT_VOICE_ID,
    )


@router.post(
    "",
    response_model=SpeechResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def create_speech(
    payload: SpeechRequest,
    request: Request,
    pipeline: SpeechPipeline = Depends(get_pipeline),
    limiter: SlidingWindowRateLimiter = Depends(get_rate_limiter),
    verifier: RecaptchaVerifier | None = Depends(get_verifier),
):
    caller = client_identity(request)
    job = SpeechJob(
        text=payload.text,
        voice=payload.voice,
        input_type=payload.type,
        credential=(payload.cookie or "").strip(),
    )

    try:
        pipeline.validate(job)
        if verifier is not None:
            await verifier.verify(payload.recaptcha_token, remote_ip=caller)
        if not await limiter.admit(caller):
            raise RateLimitExceeded()
        output = await pipeline.execute(job)
    except SpeechError as exc:
        logger.warning("TTS request from %s rejected (%d): %s", caller, exc.status_code, exc)
        return _error_response(exc.status_code, exc.public_message)
    except Exception:
        logger.exception("TTS processing error")
        return _error_response(500, GENERIC_FAILURE)

    response = SpeechResponse(url=output.url)
    if output.audio_base64 is not None:
        response.audioBase64 = output.audio_base64
        response.mimeType = output.mime_type
    if not output.timing_preserved:
        response.timingPreserved = False
        response.warning = TIMING_DROPPED_WARNING
    return response


def build_outputs_router(url_prefix: str) -> APIRouter:
    """Router serving retained outputs under ``url_prefix``."""

    outputs_router = APIRouter(prefix="/" + url_prefix.strip("/"), tags=["tts"])

    @outputs_router.get("/{filename}")
    async def download_output(
        filename: str,
        store: OutputRetentionStore = Depends(get_retention_store),
    ) -> FileResponse:
        try:
            path = store.resolve(filename)
        except OutputNotFound as exc:
            raise HTTPException(status_code=404, detail="Output not found") from exc
        return FileResponse(
            path,
            media_type=MP3_MIME_TYPE,
            headers={"Cache-Control": "public, max-age=3600"},
        )

    return outputs_router


__all__ = [
    "build_outputs_router",
    "client_identity",
    "get_pipeline",
    "get_rate_limiter",
    "get_retention_store",
    "get_verifier",
    "router",
]
