"""Tests for the remote speech endpoint client."""

from __future__ import annotations

import base64
from urllib.parse import parse_qs

import httpx
import pytest

from tts_relay.config import Settings
from tts_relay.services.speech_client import SpeechClient, SpeechEndpointError

API_URL = "https://speech.test/invoke/"


def _make_client(handler) -> tuple[SpeechClient, httpx.AsyncClient]:
    settings = Settings(speech_api_url=API_URL, speech_app_id="1233")
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SpeechClient(settings, http_client=http_client), http_client


def _audio_body(audio: bytes) -> dict:
    return {
        "status_code": 0,
        "data": {"v_str": base64.b64encode(audio).decode("ascii")},
    }


@pytest.mark.asyncio
async def test_synthesize_posts_form_and_decodes_audio():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["cookie"] = request.headers.get("cookie")
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json=_audio_body(b"ID3-mp3-bytes"))

    client, http_client = _make_client(handler)
    async with http_client:
        audio = await client.synthesize("Xin chao.", "BV075_streaming", "sessionid=abc")

    assert audio == b"ID3-mp3-bytes"
    assert seen["url"] == API_URL
    assert seen["cookie"] == "sessionid=abc"
    assert seen["form"] == {
        "text_speaker": ["BV075_streaming"],
        "req_text": ["Xin chao."],
        "speaker_map_type": ["0"],
        "aid": ["1233"],
    }


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json=["unexpected"]),
        httpx.Response(200, json={"status_code": 1, "message": "login required"}),
        httpx.Response(200, json={"status_code": 0, "data": {}}),
        httpx.Response(200, json={"status_code": 0, "data": {"v_str": "%%%not-base64"}}),
    ],
)
async def test_synthesize_rejects_unusable_responses(response):
    client, http_client = _make_client(lambda request: response)

    async with http_client:
        with pytest.raises(SpeechEndpointError):
            await client.synthesize("Hello.", "BV074_streaming", "sessionid=abc")


@pytest.mark.asyncio
async def test_synthesize_wraps_transport_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client, http_client = _make_client(handler)
    async with http_client:
        with pytest.raises(SpeechEndpointError, match="request failed"):
            await client.synthesize("Hello.", "BV074_streaming", "sessionid=abc")


@pytest.mark.asyncio
async def test_aclose_leaves_shared_client_open():
    client, http_client = _make_client(lambda request: httpx.Response(200, json={}))

    await client.aclose()

    assert not http_client.is_closed
    await http_client.aclose()
