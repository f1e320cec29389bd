import base64
import binascii
import logging
from typing import Optional

import httpx

from tts_relay.config import Settings

logger = logging.getLogger(__name__)


class SpeechEndpointError(RuntimeError):
    """Raised when the remote speech endpoint does not return usable audio."""


class SpeechClient:
    """
    Client for the remote text-to-speech endpoint.

    The endpoint takes a form-encoded request authenticated by the caller's
    session cookie and answers with JSON carrying base64 MP3 audio in
    ``data.v_str``. Any transport error, non-success status, or empty audio
    payload is raised as ``SpeechEndpointError``.

    The ``httpx.AsyncClient`` is shared for connection pooling and is owned
    by the application; pass one in or let the client create its own.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_url = str(settings.speech_api_url)
        self.user_agent = settings.speech_user_agent
        self.app_id = settings.speech_app_id
        self.timeout = settings.speech_timeout_seconds
        self._http_client = http_client
        self._owns_client = http_client is None

    def get_http_client(self) -> httpx.AsyncClient:
        """Get the pooled HTTP client, creating it on first use."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
            logger.info("Created httpx.AsyncClient for speech endpoint")
        return self._http_client

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
            logger.info("Closed speech endpoint HTTP client")

    async def synthesize(self, text: str, voice_id: str, credential: str) -> bytes:
        """
        Synthesize text with the given voice.
        Returns decoded audio bytes, never empty.
        """
        data = {
            "text_speaker": voice_id,
            "req_text": text,
            "speaker_map_type": "0",
            "aid": self.app_id,
        }
        headers = {
            "User-Agent": self.user_agent,
            "Accept-Encoding": "gzip,deflate,compress",
            "Cookie": credential,
            "Content-Type": "application/x-www-form-urlencoded",
        }

        client = self.get_http_client()
        try:
            response = await client.post(
                self.api_url,
                data=data,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise SpeechEndpointError(
                f"Speech endpoint HTTP error: {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise SpeechEndpointError(f"Speech endpoint request failed: {e}") from e
        except ValueError as e:
            raise SpeechEndpointError("Speech endpoint returned invalid JSON") from e

        if not isinstance(body, dict):
            raise SpeechEndpointError("Speech endpoint returned an unexpected payload")

        status_code = body.get("status_code", 0)
        payload = body.get("data") or {}
        encoded = payload.get("v_str") if isinstance(payload, dict) else None

        if status_code not in (0, None) or not encoded:
            message = body.get("message") or body.get("status_msg") or "empty audio"
            raise SpeechEndpointError(
                f"Empty audio response from speech endpoint ({message}) - "
                "check the cookie or try a different voice"
            )

        try:
            audio = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise SpeechEndpointError("Speech endpoint returned undecodable audio") from e
        if not audio:
            raise SpeechEndpointError("Speech endpoint returned empty audio")

        logger.debug(f"Speech endpoint returned {len(audio)} bytes for text: {text[:50]}...")
        return audio


__all__ = ["SpeechClient", "SpeechEndpointError"]
