import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID, uuid4

import httpx

from adjourn.auth import get_current_owner
from adjourn.database import get_session
from adjourn.main import app

TEST_OWNER = "user-123"


def build_mock_transport(handler):
    return httpx.MockTransport(handler)


def make_entry(
    journal_date: date,
    content: str | None = "Wrote a little.",
    *,
    owner_id: str = TEST_OWNER,
    entry_id: UUID | None = None,
) -> dict[str, Any]:
    stamp = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    return {
        "id": entry_id or uuid4(),
        "owner_id": owner_id,
        "journal_date": journal_date,
        "content": content,
        "mood": None,
        "created_at": stamp,
        "updated_at": stamp,
    }


class StoreUnavailable(Exception):
    pass


class FakeEntryStore:
    """In-memory entry store that records every call it receives."""

    def __init__(self, *, delay: float = 0.0):
        self.entries: dict[tuple[str, date], dict[str, Any]] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.delay = delay
        self.fail_next = 0
        self.active = 0
        self.max_active = 0

    def seed(self, owner_id: str, journal_date: date, content: str) -> dict[str, Any]:
        entry = make_entry(journal_date, content, owner_id=owner_id)
        self.entries[(owner_id, journal_date)] = entry
        return entry

    @property
    def writes(self) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] in {"create", "update"}]

    async def find_by_owner_and_date(self, owner_id, journal_date):
        self.calls.append(("find", owner_id, journal_date))
        return self.entries.get((owner_id, journal_date))

    async def create(self, owner_id, journal_date, content):
        self.calls.append(("create", journal_date, content))
        await self._write()
        entry = make_entry(journal_date, content, owner_id=owner_id)
        self.entries[(owner_id, journal_date)] = entry
        return entry

    async def update(self, entry_id, content):
        self.calls.append(("update", entry_id, content))
        await self._write()
        for entry in self.entries.values():
            if entry["id"] == entry_id:
                entry["content"] = content
                return entry
        raise LookupError(entry_id)

    async def _write(self) -> None:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.fail_next:
                self.fail_next -= 1
                raise StoreUnavailable("store unavailable")
        finally:
            self.active -= 1


async def override_owner() -> str:
    return TEST_OWNER


async def override_session() -> AsyncIterator[object]:
    yield object()


@asynccontextmanager
async def app_client(overrides: dict | None = None, *, authenticated: bool = True):
    if authenticated:
        app.dependency_overrides[get_current_owner] = override_owner
    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides.update(overrides or {})
    asgi_transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(transport=asgi_transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
