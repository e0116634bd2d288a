import logging
import os
from typing import Any

import httpx
from fastapi import Depends, HTTPException

from .rate_limit import FixedWindowRateLimiter

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "").strip()
GEMINI_BASE_URL = os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com")
MUSE_MODEL = os.getenv("MUSE_MODEL", "gemini-2.0-flash-exp")
MUSE_TIMEOUT = float(os.getenv("MUSE_TIMEOUT", "30"))
MUSE_REQUESTS_PER_HOUR = int(os.getenv("MUSE_REQUESTS_PER_HOUR", "10"))
MUSE_MAX_CONTENT_CHARS = 2000

LOGGER = logging.getLogger(__name__)

_muse_client: httpx.AsyncClient | None = None
_muse_rate_limiter = FixedWindowRateLimiter(MUSE_REQUESTS_PER_HOUR, 60 * 60)


async def startup_muse_client() -> None:
    global _muse_client
    if _muse_client is None:
        _muse_client = httpx.AsyncClient(
            base_url=GEMINI_BASE_URL, timeout=httpx.Timeout(MUSE_TIMEOUT)
        )


async def shutdown_muse_client() -> None:
    global _muse_client
    if _muse_client is not None:
        await _muse_client.aclose()
        _muse_client = None


def get_muse_client() -> httpx.AsyncClient:
    if _muse_client is None:
        raise RuntimeError("Muse client is not initialized")
    return _muse_client


def get_muse_rate_limiter() -> FixedWindowRateLimiter:
    return _muse_rate_limiter


def truncate_content(content: str, max_chars: int = MUSE_MAX_CONTENT_CHARS) -> str:
    if len(content) <= max_chars:
        return content
    return f"{content[:max_chars]}..."


def build_muse_prompt(content: str, context: str | None = None) -> str:
    lines = [
        "You are Muse, a thoughtful journaling companion. Based on this journal "
        "entry, provide a brief, empathetic response that encourages reflection "
        "or offers gentle insight.",
        "",
    ]
    if context:
        lines.append(f"Context: {context}")
        lines.append("")
    lines.append(f"Entry: {truncate_content(content)}")
    lines.append("")
    lines.append("Response (keep under 100 words, be warm and encouraging):")
    return "\n".join(lines)


def _response_text(payload: dict[str, Any]) -> str:
    for candidate in payload.get("candidates") or []:
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text") or "" for part in parts).strip()
        if text:
            return text
    return ""


async def generate_reflection(
    content: str,
    context: str | None = None,
    client: httpx.AsyncClient = Depends(get_muse_client),
) -> str:
    if not GEMINI_API_KEY:
        raise HTTPException(status_code=500, detail="AI service not configured")

    payload = {"contents": [{"parts": [{"text": build_muse_prompt(content, context)}]}]}
    try:
        response = await client.post(
            f"/v1beta/models/{MUSE_MODEL}:generateContent",
            json=payload,
            headers={"x-goog-api-key": GEMINI_API_KEY},
        )
    except httpx.HTTPError as exc:
        LOGGER.exception("Muse request failed")
        raise HTTPException(
            status_code=502, detail="AI service temporarily unavailable"
        ) from exc
    if response.status_code != 200:
        LOGGER.error(
            "Muse request failed (%s): %s", response.status_code, response.text[:200]
        )
        raise HTTPException(status_code=502, detail="AI service temporarily unavailable")

    text = _response_text(response.json())
    if not text:
        raise HTTPException(status_code=502, detail="AI service returned no response")
    return text
