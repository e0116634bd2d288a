import httpx
import pytest
from fastapi import HTTPException

import adjourn.main as main
import adjourn.transcribe as transcribe
from adjourn.transcribe import base_mime_type, get_transcribe_client, transcribe_audio, validate_audio
from tests.utils import app_client, build_mock_transport


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setattr(transcribe, "GROQ_API_KEY", "test-key")


def test_base_mime_type_drops_codecs():
    assert base_mime_type("audio/webm;codecs=opus") == "audio/webm"
    assert base_mime_type(None) == ""


def test_validate_audio():
    assert validate_audio("audio/ogg", 10) == "audio/ogg"
    with pytest.raises(HTTPException):
        validate_audio("video/mp4", 10)
    with pytest.raises(HTTPException):
        validate_audio("audio/wav", transcribe.MAX_AUDIO_BYTES + 1)
    with pytest.raises(HTTPException):
        validate_audio("audio/wav", 0)


@pytest.mark.asyncio
async def test_transcribe_audio(api_key):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/audio/transcriptions")
        assert request.headers["authorization"] == "Bearer test-key"
        body = request.content
        assert b"whisper-large-v3" in body
        assert b'filename="note.webm"' in body
        return httpx.Response(200, json={"text": "Dear diary"})

    async with httpx.AsyncClient(
        transport=build_mock_transport(handler), base_url="http://groq/openai/v1"
    ) as client:
        text = await transcribe_audio("note.webm", b"\x1a\x45", "audio/webm;codecs=opus", client)

    assert text == "Dear diary"


@pytest.mark.asyncio
async def test_transcribe_audio_rate_limited(api_key):
    transport = build_mock_transport(lambda request: httpx.Response(429, json={}))
    async with httpx.AsyncClient(transport=transport, base_url="http://groq") as client:
        with pytest.raises(HTTPException) as exc_info:
            await transcribe_audio("note.wav", b"RIFF", "audio/wav", client)

    assert exc_info.value.status_code == 429


@pytest.mark.asyncio
async def test_transcribe_endpoint(api_key):
    groq = httpx.AsyncClient(
        transport=build_mock_transport(
            lambda request: httpx.Response(200, json={"text": "Hello from voice"})
        ),
        base_url="http://groq",
    )
    async with app_client({get_transcribe_client: lambda: groq}) as client:
        ok = await client.post(
            "/v1/transcribe",
            files={"file": ("note.webm", b"\x1a\x45\xdf\xa3", "audio/webm;codecs=opus")},
        )
        rejected = await client.post(
            "/v1/transcribe",
            files={"file": ("clip.avi", b"RIFF", "video/x-msvideo")},
        )
    await groq.aclose()

    assert ok.status_code == 200
    assert ok.json() == {"text": "Hello from voice", "success": True}
    assert rejected.status_code == 400


class OversizedUpload:
    filename = "long.wav"
    content_type = "audio/wav"
    size = transcribe.MAX_AUDIO_BYTES + 1

    async def read(self, size: int = -1) -> bytes:
        raise AssertionError("oversized upload must not be read")


@pytest.mark.asyncio
async def test_transcribe_rejects_oversized_upload_before_reading(api_key):
    with pytest.raises(HTTPException) as exc_info:
        await main.transcribe(OversizedUpload(), owner_id="user-123", client=None)

    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "File size exceeds 25MB limit"
