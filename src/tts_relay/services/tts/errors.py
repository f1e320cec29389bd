"""Error taxonomy for speech submissions.

Every error carries the HTTP status the router answers with and a message
that is safe to show to the caller. Internal detail stays in the exception
chain and the logs.
"""

from __future__ import annotations


class SpeechError(RuntimeError):
    """Base error for a failed speech run."""

    status_code: int = 500
    public_message: str = "Failed to generate audio"
    # When true the constructor message is itself caller-safe.
    expose_message: bool = False

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)
        if message is not None and self.expose_message:
            self.public_message = message


class SpeechValidationError(SpeechError):
    """Raised when the submission is malformed or out of bounds."""

    status_code = 400
    public_message = "Invalid request"
    expose_message = True


class VerificationError(SpeechError):
    """Raised when the bot-verification token is missing or rejected."""

    status_code = 403
    public_message = "Verification failed"
    expose_message = True


class VerificationMisconfigured(SpeechError):
    """Raised when bot verification is enabled without a server secret."""

    status_code = 500
    public_message = "Verification is not configured on server"


class RateLimitExceeded(SpeechError):
    """Raised when a caller exceeds the admission threshold."""

    status_code = 429
    public_message = "Too many requests, please try again later"


class NothingToProcessError(SpeechError):
    """Raised when parsing or segmenting yields no usable text."""

    status_code = 400
    public_message = "No valid text to process"


class SynthesisError(SpeechError):
    """Raised when the speech endpoint fails for one segment."""

    status_code = 502

    def __init__(self, index: int, reason: str | None = None) -> None:
        self.index = index
        self.reason = reason
        super().__init__(f"Failed to generate audio for segment {index}")
        self.public_message = f"Failed to generate audio for segment {index}"

    def __str__(self) -> str:
        if self.reason:
            return f"{self.public_message}: {self.reason}"
        return self.public_message


class AssemblyError(SpeechError):
    """Raised when synthesized segments cannot be merged."""

    status_code = 500
    public_message = "Failed to assemble audio"


class TranscodingError(AssemblyError):
    """Raised when the external transcoder fails on a segment."""


__all__ = [
    "AssemblyError",
    "NothingToProcessError",
    "RateLimitExceeded",
    "SpeechError",
    "SpeechValidationError",
    "SynthesisError",
    "TranscodingError",
    "VerificationError",
    "VerificationMisconfigured",
]
