from __future__ import annotations

import asyncio
import inspect
import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Protocol, Union
from uuid import UUID

LOGGER = logging.getLogger(__name__)

AUTOSAVE_QUIET_PERIOD = float(os.getenv("AUTOSAVE_QUIET_PERIOD", "1.0"))


class EntryStore(Protocol):
    async def find_by_owner_and_date(
        self, owner_id: str, journal_date: date
    ) -> dict[str, Any] | None: ...

    async def create(
        self, owner_id: str, journal_date: date, content: str
    ) -> dict[str, Any]: ...

    async def update(self, entry_id: UUID, content: str) -> dict[str, Any]: ...


@dataclass(frozen=True)
class NoEntry:
    """Nothing persisted for this date yet; the next save creates."""


@dataclass(frozen=True)
class HasEntry:
    """An entry exists; every later save updates it."""

    entry_id: UUID


EntryState = Union[NoEntry, HasEntry]


class SaveStatus(str, Enum):
    DRAFT = "draft"
    UNSAVED = "unsaved"
    SAVING = "saving"
    SAVED = "saved"


SavedCallback = Callable[[dict[str, Any]], Union[Awaitable[None], None]]
ErrorCallback = Callable[[Exception], Union[Awaitable[None], None]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _notify(callback: Callable[[Any], Any] | None, value: Any) -> None:
    if callback is None:
        return
    result = callback(value)
    if inspect.isawaitable(result):
        await result


class AutosaveReconciler:
    """Debounced autosave for one (owner, date) editing session.

    Every draft change replaces the pending save. A save fires once the draft
    has been quiet for ``quiet_period`` seconds, and only when the trimmed
    draft is non-empty and differs from what was last persisted. Saves never
    overlap: a save that comes due while another is in flight waits for it
    and re-validates against the freshly saved text.
    """

    def __init__(
        self,
        store: EntryStore,
        *,
        owner_id: str,
        journal_date: date,
        entry: dict[str, Any] | None = None,
        quiet_period: float = AUTOSAVE_QUIET_PERIOD,
        clock: Callable[[], datetime] = _utcnow,
        on_saved: SavedCallback | None = None,
        on_error: ErrorCallback | None = None,
    ):
        self._store = store
        self.owner_id = owner_id
        self.journal_date = journal_date
        self._quiet_period = quiet_period
        self._clock = clock
        self._on_saved = on_saved
        self._on_error = on_error

        self._state: EntryState = HasEntry(entry["id"]) if entry else NoEntry()
        self.known_saved_text: str = (entry or {}).get("content") or ""
        self.draft_text: str = self.known_saved_text
        self.last_saved_at: datetime | None = None
        self.last_error: Exception | None = None

        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._lock = asyncio.Lock()
        self._saving = False
        self._closed = False

    @classmethod
    async def load(
        cls,
        store: EntryStore,
        *,
        owner_id: str,
        journal_date: date,
        **kwargs: Any,
    ) -> AutosaveReconciler:
        entry = await store.find_by_owner_and_date(owner_id, journal_date)
        return cls(
            store, owner_id=owner_id, journal_date=journal_date, entry=entry, **kwargs
        )

    @property
    def state(self) -> EntryState:
        return self._state

    @property
    def pending(self) -> bool:
        return self._timer is not None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def status(self) -> SaveStatus:
        if self._saving:
            return SaveStatus.SAVING
        if self._needs_save():
            return SaveStatus.UNSAVED
        if self.last_saved_at is not None:
            return SaveStatus.SAVED
        return SaveStatus.DRAFT

    def status_label(self) -> str:
        status = self.status
        if status is SaveStatus.SAVING:
            return "Saving..."
        if status is SaveStatus.SAVED and self.last_saved_at is not None:
            return f"Saved {self.last_saved_at.strftime('%H:%M:%S')}"
        if status is SaveStatus.UNSAVED:
            return "Unsaved"
        return "Draft"

    def change(self, text: str) -> None:
        """Record a new draft and (re)schedule the debounced save."""
        if self._closed:
            raise RuntimeError("Autosave session is closed")
        self.draft_text = text
        self._cancel_timer()
        if not self._needs_save():
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._quiet_period, self._fire)

    async def flush(self) -> dict[str, Any] | None:
        """Save immediately, skipping the quiet period. Store errors propagate."""
        if self._closed:
            raise RuntimeError("Autosave session is closed")
        self._cancel_timer()
        return await self._save()

    def close(self) -> None:
        """Tear the session down. No scheduled save fires afterwards."""
        self._closed = True
        self._cancel_timer()

    async def drain(self) -> None:
        """Wait for saves that have already fired to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _needs_save(self) -> bool:
        content = self.draft_text.strip()
        return bool(content) and content != self.known_saved_text.strip()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self._save_in_background())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _save_in_background(self) -> None:
        try:
            await self._save()
        except Exception as exc:
            LOGGER.warning(
                "Autosave failed for owner=%s date=%s: %s",
                self.owner_id,
                self.journal_date,
                exc,
            )
            await _notify(self._on_error, exc)

    async def _save(self) -> dict[str, Any] | None:
        async with self._lock:
            if self._closed:
                return None
            if not self._needs_save():
                return None
            content = self.draft_text.strip()
            self._saving = True
            try:
                entry = await self._persist(content)
            except Exception as exc:
                self.last_error = exc
                raise
            finally:
                self._saving = False
            self.known_saved_text = content
            self.last_saved_at = self._clock()
            self.last_error = None
        await _notify(self._on_saved, entry)
        return entry

    async def _persist(self, content: str) -> dict[str, Any]:
        if isinstance(self._state, NoEntry):
            existing = await self._store.find_by_owner_and_date(
                self.owner_id, self.journal_date
            )
            if existing is not None:
                self._state = HasEntry(existing["id"])

        if isinstance(self._state, HasEntry):
            return await self._store.update(self._state.entry_id, content)

        entry = await self._store.create(self.owner_id, self.journal_date, content)
        self._state = HasEntry(entry["id"])
        return entry
