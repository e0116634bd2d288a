import logging
import os

import httpx
from fastapi import Depends, HTTPException

GROQ_API_KEY = os.getenv("GROQ_API_KEY", "").strip()
TRANSCRIBE_BASE_URL = os.getenv("TRANSCRIBE_BASE_URL", "https://api.groq.com/openai/v1")
TRANSCRIBE_MODEL = os.getenv("TRANSCRIBE_MODEL", "whisper-large-v3")
TRANSCRIBE_TIMEOUT = float(os.getenv("TRANSCRIBE_TIMEOUT", "60"))
TRANSCRIBE_LANGUAGE = "en"

MAX_AUDIO_BYTES = 25 * 1024 * 1024
ALLOWED_AUDIO_TYPES = frozenset(
    {
        "audio/wav",
        "audio/mp3",
        "audio/mp4",
        "audio/mpeg",
        "audio/mpga",
        "audio/m4a",
        "audio/ogg",
        "audio/webm",
        "audio/flac",
    }
)

LOGGER = logging.getLogger(__name__)

_transcribe_client: httpx.AsyncClient | None = None


async def startup_transcribe_client() -> None:
    global _transcribe_client
    if _transcribe_client is None:
        # transport retries cover connection failures only
        _transcribe_client = httpx.AsyncClient(
            base_url=TRANSCRIBE_BASE_URL,
            timeout=httpx.Timeout(TRANSCRIBE_TIMEOUT),
            transport=httpx.AsyncHTTPTransport(retries=2),
        )


async def shutdown_transcribe_client() -> None:
    global _transcribe_client
    if _transcribe_client is not None:
        await _transcribe_client.aclose()
        _transcribe_client = None


def get_transcribe_client() -> httpx.AsyncClient:
    if _transcribe_client is None:
        raise RuntimeError("Transcription client is not initialized")
    return _transcribe_client


def base_mime_type(content_type: str | None) -> str:
    """Drop codec parameters, e.g. ``audio/webm;codecs=opus`` -> ``audio/webm``."""
    return (content_type or "").split(";")[0].strip().lower()


def validate_audio(content_type: str | None, size: int) -> str:
    if size == 0:
        raise HTTPException(status_code=400, detail="No audio file provided")
    if size > MAX_AUDIO_BYTES:
        raise HTTPException(status_code=400, detail="File size exceeds 25MB limit")
    mime_type = base_mime_type(content_type)
    if mime_type not in ALLOWED_AUDIO_TYPES:
        raise HTTPException(
            status_code=400,
            detail=(
                "Unsupported file type. Supported: "
                "flac, mp3, mp4, mpeg, mpga, m4a, ogg, wav, webm"
            ),
        )
    return mime_type


async def transcribe_audio(
    filename: str,
    data: bytes,
    content_type: str | None,
    client: httpx.AsyncClient = Depends(get_transcribe_client),
) -> str:
    if not GROQ_API_KEY:
        raise HTTPException(status_code=500, detail="Invalid API key configuration")

    mime_type = validate_audio(content_type, len(data))
    try:
        response = await client.post(
            "/audio/transcriptions",
            headers={"Authorization": f"Bearer {GROQ_API_KEY}"},
            data={
                "model": TRANSCRIBE_MODEL,
                "language": TRANSCRIBE_LANGUAGE,
                "temperature": "0",
                "response_format": "json",
            },
            files={"file": (filename or "audio", data, mime_type)},
        )
    except httpx.HTTPError as exc:
        LOGGER.exception("Transcription request failed")
        raise HTTPException(
            status_code=502, detail="Failed to transcribe audio. Please try again."
        ) from exc

    if response.status_code == 429:
        raise HTTPException(
            status_code=429, detail="Rate limit exceeded. Please try again later."
        )
    if response.status_code != 200:
        LOGGER.error(
            "Transcription request failed (%s): %s",
            response.status_code,
            response.text[:200],
        )
        raise HTTPException(
            status_code=502, detail="Failed to transcribe audio. Please try again."
        )
    return response.json().get("text", "")
