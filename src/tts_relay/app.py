"""Application factory for the FastAPI service."""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager, suppress
from pathlib import Path

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import PROJECT_ROOT, Settings, get_settings
from .routers.speech import build_outputs_router
from .routers.speech import router as speech_router
from .services.output_retention import OutputRetentionStore
from .services.rate_limiter import SlidingWindowRateLimiter
from .services.recaptcha import RecaptchaVerifier
from .services.speech_client import SpeechClient
from .services.tts.assembler import AudioAssembler
from .services.tts.delivery import create_delivery
from .services.tts.pipeline import SpeechPipeline
from .services.tts.synthesizer import SegmentSynthesizer
from .services.tts.transcoder import create_transcoder

RATE_LIMIT_PURGE_SECONDS = 300


def _configure_logging() -> None:
    """Configure logging based on LOG_LEVEL environment variable."""
    # Load .env file first to ensure LOG_FILE is available
    load_dotenv()

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)
    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = []

    log_file = os.getenv("LOG_FILE")
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    # Always add console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    logging.getLogger("tts_relay").setLevel(log_level)
    logging.getLogger("uvicorn").setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(log_level)
    logging.getLogger("uvicorn.error").setLevel(log_level)

    # httpx logs every request at INFO, including the speech endpoint URL
    if log_level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def _resolve_under(base: Path, p: Path) -> Path:
    # Allow absolute paths as-is (useful for tests and external mounts).
    if p.is_absolute():
        return p.resolve()
    resolved = (base / p).resolve()
    if not resolved.is_relative_to(base):
        raise ValueError(f"Configured path {resolved} escapes project root {base}")
    return resolved


def create_app(settings: Settings | None = None) -> FastAPI:
    # Configure logging first thing
    _configure_logging()

    settings = settings or get_settings()

    http_client = httpx.AsyncClient(timeout=settings.speech_timeout_seconds)
    speech_client = SpeechClient(settings, http_client=http_client)

    transcoder = create_transcoder(settings)
    assembler = AudioAssembler(transcoder)

    retention_store: OutputRetentionStore | None = None
    if settings.delivery_mode == "persist":
        retention_store = OutputRetentionStore(
            _resolve_under(PROJECT_ROOT, settings.outputs_dir),
            max_files=settings.outputs_max_files,
            url_prefix=settings.outputs_url_prefix,
        )
    delivery = create_delivery(settings, retention_store)

    pipeline = SpeechPipeline(
        SegmentSynthesizer(speech_client),
        assembler,
        delivery,
        max_text_chars=settings.text_max_chars,
        chunk_max_chars=settings.chunk_max_chars,
        pacing_seconds=settings.synthesis_pacing_seconds,
    )

    rate_limiter = SlidingWindowRateLimiter(
        settings.rate_limit_requests,
        settings.rate_limit_window_seconds,
    )

    verifier: RecaptchaVerifier | None = None
    if settings.recaptcha_enabled:
        verifier = RecaptchaVerifier(settings, http_client=http_client)
        if settings.recaptcha_secret_key is None:
            logging.error(
                "RECAPTCHA_ENABLED is set without RECAPTCHA_SECRET_KEY; "
                "all submissions will be rejected"
            )

    purge_task: asyncio.Task | None = None

    async def _rate_limit_purge_loop() -> None:
        while True:
            await asyncio.sleep(RATE_LIMIT_PURGE_SECONDS)
            try:
                await rate_limiter.purge()
            except Exception as exc:
                logging.warning("Rate limiter purge failed: %s", exc)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        nonlocal purge_task
        if retention_store is not None:
            try:
                await retention_store.enforce_limit()
            except OSError as exc:
                logging.warning("Initial output retention sweep failed: %s", exc)
        purge_task = asyncio.create_task(_rate_limit_purge_loop())
        try:
            yield
        finally:
            if purge_task is not None:
                purge_task.cancel()
                with suppress(asyncio.CancelledError):
                    await purge_task
            await http_client.aclose()

    app = FastAPI(
        title="TTS Relay",
        version="0.1.0",
        description="Text and subtitle to speech relay with timed audio assembly.",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.speech_pipeline = pipeline
    app.state.rate_limiter = rate_limiter
    app.state.recaptcha_verifier = verifier
    app.state.retention_store = retention_store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        logging.getLogger(__name__).debug("Rejected malformed request: %s", exc.errors())
        return JSONResponse(status_code=400, content={"error": "Invalid request"})

    app.include_router(speech_router)
    if retention_store is not None:
        app.include_router(build_outputs_router(settings.outputs_url_prefix))

    @app.get("/health", tags=["health"])
    async def healthcheck() -> dict[str, str | bool]:
        return {
            "status": "ok",
            "delivery_mode": settings.delivery_mode,
            "timed_assembly": assembler.supports_timing,
            "verification": verifier is not None,
        }

    return app


__all__ = ["create_app"]
