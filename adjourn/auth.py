import logging
import os
from typing import Any

import httpx
from fastapi import Depends, Header, HTTPException, Query, WebSocketException, status

AUTH_URL = os.getenv("AUTH_URL", "").rstrip("/")
AUTH_API_KEY = os.getenv("AUTH_API_KEY", "")
AUTH_TIMEOUT = float(os.getenv("AUTH_TIMEOUT", "10"))

_auth_client: httpx.AsyncClient | None = None
_logger = logging.getLogger(__name__)


async def startup_auth_client() -> None:
    global _auth_client
    if _auth_client is None:
        _auth_client = httpx.AsyncClient(
            base_url=AUTH_URL, timeout=httpx.Timeout(AUTH_TIMEOUT)
        )


async def shutdown_auth_client() -> None:
    global _auth_client
    if _auth_client is not None:
        await _auth_client.aclose()
        _auth_client = None


def get_auth_client() -> httpx.AsyncClient:
    if _auth_client is None:
        raise RuntimeError("Auth client is not initialized")
    return _auth_client


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer "):].strip()
    return token or None


async def fetch_user(token: str, client: httpx.AsyncClient) -> dict[str, Any] | None:
    """Ask the auth provider who owns ``token``. None if it is not valid."""
    headers = {"Authorization": f"Bearer {token}"}
    if AUTH_API_KEY:
        headers["apikey"] = AUTH_API_KEY
    try:
        response = await client.get("/auth/v1/user", headers=headers)
    except httpx.HTTPError:
        _logger.exception("Auth provider request failed")
        return None
    if response.status_code != 200:
        return None
    user = response.json()
    if not user.get("id"):
        return None
    return user


async def get_current_owner(
    authorization: str | None = Header(default=None),
    client: httpx.AsyncClient = Depends(get_auth_client),
) -> str:
    token = _bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    user = await fetch_user(token, client)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    return str(user["id"])


async def get_websocket_owner(
    token: str | None = Query(default=None),
    client: httpx.AsyncClient = Depends(get_auth_client),
) -> str:
    user = await fetch_user(token, client) if token else None
    if user is None:
        raise WebSocketException(code=status.WS_1008_POLICY_VIOLATION)
    return str(user["id"])
