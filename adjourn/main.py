import logging
import os
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID
from zoneinfo import ZoneInfo

import httpx
from fastapi import (
    Depends,
    FastAPI,
    File,
    HTTPException,
    Query,
    UploadFile,
    WebSocket,
    WebSocketDisconnect,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.websockets import WebSocketState
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import (
    get_current_owner,
    get_websocket_owner,
    shutdown_auth_client,
    startup_auth_client,
)
from .autosave import AUTOSAVE_QUIET_PERIOD, AutosaveReconciler
from .database import get_session, shutdown_db, startup_db
from .muse import (
    generate_reflection,
    get_muse_client,
    get_muse_rate_limiter,
    shutdown_muse_client,
    startup_muse_client,
)
from .rate_limit import FixedWindowRateLimiter
from .schemas import (
    DayOverview,
    JournalEntry,
    JournalEntryCreate,
    JournalEntryPage,
    JournalEntrySave,
    JournalEntryUpdate,
    LiveEditMessage,
    MuseRequest,
    MuseResponse,
    Photo,
    PhotoCreate,
    PhotoUpdate,
    Streaks,
    Transcription,
)
from .services import EntryService, PhotoService
from .transcribe import (
    MAX_AUDIO_BYTES,
    get_transcribe_client,
    shutdown_transcribe_client,
    startup_transcribe_client,
    transcribe_audio,
    validate_audio,
)

LOGGER = logging.getLogger(__name__)

ADJOURN_TIMEZONE = os.getenv("ADJOURN_TIMEZONE", "UTC")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await startup_auth_client()
    await startup_muse_client()
    await startup_transcribe_client()
    await startup_db()
    yield
    await shutdown_auth_client()
    await shutdown_muse_client()
    await shutdown_transcribe_client()
    await shutdown_db()


app = FastAPI(title="Adjourn API", lifespan=lifespan)

cors_origins = [origin.strip() for origin in os.getenv("CORS_ALLOW_ORIGINS", "").split(",") if origin.strip()]
if cors_origins:
    allow_all = "*" in cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else cors_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def local_now() -> datetime:
    return datetime.now(ZoneInfo(ADJOURN_TIMEZONE))


def local_today() -> date:
    return local_now().date()


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/v1/entries", response_model=JournalEntryPage)
async def list_entries(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    q: str | None = Query(default=None, max_length=200),
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
    owner_id: str = Depends(get_current_owner),
    session: AsyncSession = Depends(get_session),
):
    return await EntryService(session).list_entries(
        owner_id,
        limit=limit,
        offset=offset,
        query=q.strip() if q else None,
        start_date=start,
        end_date=end,
    )


@app.get("/v1/entries/month", response_model=dict[str, DayOverview])
async def month_overview(
    year: int = Query(..., ge=1970, le=9999),
    month: int = Query(..., ge=1, le=12),
    owner_id: str = Depends(get_current_owner),
    session: AsyncSession = Depends(get_session),
):
    return await EntryService(session).month_overview(owner_id, year, month)


@app.post("/v1/entries", response_model=JournalEntry, status_code=201)
async def create_entry(
    request: JournalEntryCreate,
    owner_id: str = Depends(get_current_owner),
    session: AsyncSession = Depends(get_session),
):
    content = request.content.strip()
    if not content:
        raise HTTPException(status_code=400, detail="Content is required")
    try:
        return await EntryService(session).create(
            owner_id, request.journal_date, content, request.mood
        )
    except IntegrityError as exc:
        raise HTTPException(
            status_code=409, detail="Journal entry already exists for this day"
        ) from exc


@app.patch("/v1/entries/id/{entry_id}", response_model=JournalEntry)
async def update_entry(
    entry_id: UUID,
    request: JournalEntryUpdate,
    owner_id: str = Depends(get_current_owner),
    session: AsyncSession = Depends(get_session),
):
    fields: dict[str, object] = {}
    if "content" in request.model_fields_set:
        content = (request.content or "").strip()
        if not content:
            raise HTTPException(status_code=400, detail="Content is required")
        fields["content"] = content
    if "mood" in request.model_fields_set:
        fields["mood"] = request.mood
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    entry = await EntryService(session).update_entry(owner_id, entry_id, fields)
    if entry is None:
        raise HTTPException(status_code=404, detail="Journal entry not found")
    return entry


@app.get("/v1/entries/{journal_date}", response_model=JournalEntry)
async def get_entry(
    journal_date: date,
    owner_id: str = Depends(get_current_owner),
    session: AsyncSession = Depends(get_session),
):
    entry = await EntryService(session).find_by_owner_and_date(owner_id, journal_date)
    if entry is None:
        raise HTTPException(status_code=404, detail="Journal entry not found")
    return entry


@app.put("/v1/entries/{journal_date}", response_model=JournalEntry)
async def save_entry(
    journal_date: date,
    request: JournalEntrySave,
    owner_id: str = Depends(get_current_owner),
    session: AsyncSession = Depends(get_session),
):
    content = request.content.strip()
    if not content:
        raise HTTPException(status_code=400, detail="Content is required")
    try:
        return await EntryService(session).save_for_date(
            owner_id, journal_date, content, request.mood
        )
    except IntegrityError as exc:
        raise HTTPException(
            status_code=409, detail="Journal entry was created concurrently; retry"
        ) from exc


@app.delete("/v1/entries/{journal_date}", status_code=204)
async def delete_entry(
    journal_date: date,
    owner_id: str = Depends(get_current_owner),
    session: AsyncSession = Depends(get_session),
):
    deleted = await EntryService(session).delete_for_date(owner_id, journal_date)
    if not deleted:
        raise HTTPException(status_code=404, detail="Journal entry not found")


@app.get("/v1/streaks", response_model=Streaks)
async def streaks(
    today: date | None = Query(default=None),
    owner_id: str = Depends(get_current_owner),
    session: AsyncSession = Depends(get_session),
):
    snapshot = await EntryService(session).get_streaks(owner_id, today or local_today())
    return {
        "current_streak": snapshot.current_streak,
        "longest_streak": snapshot.longest_streak,
        "total_entries": snapshot.total_entries,
    }


@app.get("/v1/entries/{journal_date}/photos", response_model=list[Photo])
async def list_photos(
    journal_date: date,
    owner_id: str = Depends(get_current_owner),
    session: AsyncSession = Depends(get_session),
):
    photos = await PhotoService(session).list_photos(owner_id, journal_date)
    if photos is None:
        raise HTTPException(status_code=404, detail="Journal entry not found")
    return photos


@app.post("/v1/entries/{journal_date}/photos", response_model=Photo, status_code=201)
async def add_photo(
    journal_date: date,
    request: PhotoCreate,
    owner_id: str = Depends(get_current_owner),
    session: AsyncSession = Depends(get_session),
):
    photo = await PhotoService(session).add_photo(
        owner_id, journal_date, request.model_dump()
    )
    if photo is None:
        raise HTTPException(status_code=404, detail="Journal entry not found")
    return photo


@app.patch("/v1/photos/{photo_id}", response_model=Photo)
async def update_photo(
    photo_id: UUID,
    request: PhotoUpdate,
    owner_id: str = Depends(get_current_owner),
    session: AsyncSession = Depends(get_session),
):
    photo = await PhotoService(session).update_caption(owner_id, photo_id, request.caption)
    if photo is None:
        raise HTTPException(status_code=404, detail="Photo not found")
    return photo


@app.delete("/v1/photos/{photo_id}", status_code=204)
async def delete_photo(
    photo_id: UUID,
    owner_id: str = Depends(get_current_owner),
    session: AsyncSession = Depends(get_session),
):
    removed = await PhotoService(session).delete_photo(owner_id, photo_id)
    if removed is None:
        raise HTTPException(status_code=404, detail="Photo not found")


@app.post("/v1/muse", response_model=MuseResponse)
async def muse(
    request: MuseRequest,
    owner_id: str = Depends(get_current_owner),
    limiter: FixedWindowRateLimiter = Depends(get_muse_rate_limiter),
    client: httpx.AsyncClient = Depends(get_muse_client),
):
    rate_limit = limiter.check(owner_id)
    if not rate_limit.allowed:
        LOGGER.info("Muse rate limit reached for owner=%s", owner_id)
        raise HTTPException(
            status_code=429,
            detail=f"Hourly AI request limit reached ({limiter.limit} requests/hour)",
        )
    if not request.content.strip():
        raise HTTPException(status_code=400, detail="Content is required")

    response = await generate_reflection(request.content, request.context, client)
    return {
        "response": response,
        "requests_remaining": rate_limit.remaining,
        "timestamp": datetime.now(timezone.utc),
    }


@app.post("/v1/transcribe", response_model=Transcription)
async def transcribe(
    file: UploadFile = File(...),
    owner_id: str = Depends(get_current_owner),
    client: httpx.AsyncClient = Depends(get_transcribe_client),
):
    if file.size is not None:
        validate_audio(file.content_type, file.size)
    data = await file.read(MAX_AUDIO_BYTES + 1)
    text = await transcribe_audio(file.filename or "audio", data, file.content_type, client)
    return {"text": text, "success": True}


def _live_status(reconciler: AutosaveReconciler, entry: dict[str, Any] | None = None) -> dict[str, Any]:
    message: dict[str, Any] = {
        "type": "status",
        "status": reconciler.status.value,
        "label": reconciler.status_label(),
    }
    if entry is not None:
        message["entry_id"] = str(entry["id"])
    return message


@app.websocket("/v1/entries/{journal_date}/live")
async def live_edit(
    websocket: WebSocket,
    journal_date: date,
    owner_id: str = Depends(get_websocket_owner),
    session: AsyncSession = Depends(get_session),
):
    """One autosave editing session per connection.

    Clients send ``{"type": "change", "content": ...}`` as the user types and
    ``{"type": "flush"}`` to save right away. The server answers with status
    messages whenever a save lands or fails.
    """
    await websocket.accept()

    async def send(message: dict[str, Any]) -> None:
        if websocket.client_state == WebSocketState.CONNECTED:
            await websocket.send_json(message)

    async def on_saved(entry: dict[str, Any]) -> None:
        await send(_live_status(reconciler, entry))

    async def on_error(exc: Exception) -> None:
        await send({"type": "error", "detail": "Save failed; changes are kept"})

    reconciler = await AutosaveReconciler.load(
        EntryService(session),
        owner_id=owner_id,
        journal_date=journal_date,
        quiet_period=AUTOSAVE_QUIET_PERIOD,
        clock=local_now,
        on_saved=on_saved,
        on_error=on_error,
    )
    await send(
        {
            "type": "loaded",
            "content": reconciler.known_saved_text,
            "status": reconciler.status.value,
        }
    )
    try:
        while True:
            try:
                message = LiveEditMessage.model_validate(await websocket.receive_json())
            except (ValidationError, ValueError):
                await send({"type": "error", "detail": "Invalid message"})
                continue
            if message.type == "change":
                reconciler.change(message.content or "")
                await send(_live_status(reconciler))
            else:
                try:
                    entry = await reconciler.flush()
                except Exception as exc:
                    LOGGER.warning(
                        "Live save failed for owner=%s date=%s: %s", owner_id, journal_date, exc
                    )
                    await on_error(exc)
                    continue
                if entry is None:
                    await send(_live_status(reconciler))
    except WebSocketDisconnect:
        pass
    finally:
        reconciler.close()
        await reconciler.drain()
