"""Application configuration using environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import AliasChoices, AnyHttpUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

DEFAULT_SPEECH_API_URL = (
    "https://api16-normal-c-useast1a.tiktokv.com/media/api/text/speech/invoke/"
)
DEFAULT_SPEECH_USER_AGENT = (
    "com.zhiliaoapp.musically/2022600030 (Linux; U; Android 7.1.2; es_ES; "
    "SM-G988N; Build/NRD90M;tt-ok/3.12.13.1)"
)


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Remote speech endpoint
    speech_api_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl(DEFAULT_SPEECH_API_URL),
        validation_alias=AliasChoices("SPEECH_API_URL", "speech_api_url"),
    )
    speech_user_agent: str = Field(
        default=DEFAULT_SPEECH_USER_AGENT,
        validation_alias=AliasChoices("SPEECH_USER_AGENT", "speech_user_agent"),
    )
    speech_app_id: str = Field(
        default="1233",
        validation_alias=AliasChoices("SPEECH_APP_ID", "speech_app_id"),
    )
    speech_timeout_seconds: float = Field(
        default=30.0,
        ge=1,
        validation_alias=AliasChoices("SPEECH_TIMEOUT", "speech_timeout_seconds"),
    )
    synthesis_pacing_seconds: float = Field(
        default=0.5,
        ge=0,
        validation_alias=AliasChoices(
            "SYNTHESIS_PACING_SECONDS",
            "synthesis_pacing_seconds",
        ),
    )

    # Input limits
    chunk_max_chars: int = Field(
        default=200,
        ge=1,
        validation_alias=AliasChoices("CHUNK_MAX_CHARS", "chunk_max_chars"),
    )
    text_max_chars: int = Field(
        default=5000,
        ge=1,
        validation_alias=AliasChoices("TEXT_MAX_CHARS", "text_max_chars"),
    )

    # Output delivery
    delivery_mode: Literal["persist", "inline"] = Field(
        default="persist",
        validation_alias=AliasChoices("DELIVERY_MODE", "delivery_mode"),
    )
    outputs_dir: Path = Field(
        default_factory=lambda: Path("public/tts-outputs"),
        validation_alias=AliasChoices("OUTPUTS_DIR", "outputs_dir"),
    )
    outputs_url_prefix: str = Field(
        default="/tts-outputs",
        validation_alias=AliasChoices("OUTPUTS_URL_PREFIX", "outputs_url_prefix"),
    )
    outputs_max_files: int = Field(
        default=50,
        ge=1,
        validation_alias=AliasChoices("OUTPUTS_MAX_FILES", "outputs_max_files"),
    )

    # Audio transcoding (duration-aware assembly)
    ffmpeg_path: str = Field(
        default="ffmpeg",
        validation_alias=AliasChoices("FFMPEG_PATH", "ffmpeg_path"),
    )
    transcoding_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("TRANSCODING_ENABLED", "transcoding_enabled"),
    )

    # Bot verification (optional per deployment)
    recaptcha_enabled: bool = Field(
        default=False,
        validation_alias=AliasChoices("RECAPTCHA_ENABLED", "recaptcha_enabled"),
    )
    recaptcha_secret_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("RECAPTCHA_SECRET_KEY", "recaptcha_secret_key"),
    )
    recaptcha_min_score: float = Field(
        default=0.5,
        ge=0,
        le=1,
        validation_alias=AliasChoices("RECAPTCHA_MIN_SCORE", "recaptcha_min_score"),
    )
    recaptcha_verify_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl(
            "https://www.google.com/recaptcha/api/siteverify"
        ),
        validation_alias=AliasChoices("RECAPTCHA_VERIFY_URL", "recaptcha_verify_url"),
    )

    # Per-client admission
    rate_limit_requests: int = Field(
        default=5,
        ge=1,
        validation_alias=AliasChoices("RATE_LIMIT_REQUESTS", "rate_limit_requests"),
    )
    rate_limit_window_seconds: float = Field(
        default=60.0,
        gt=0,
        validation_alias=AliasChoices(
            "RATE_LIMIT_WINDOW_SECONDS",
            "rate_limit_window_seconds",
        ),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()  # pyright: ignore[reportCallIssue]


__all__ = ["Settings", "get_settings"]
