from __future__ import annotations

from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..repositories import EntryRepository, PhotoRepository


class PhotoService:
    """Photo metadata attached to a day's entry."""

    def __init__(self, session: AsyncSession):
        self._session = session
        self._entries = EntryRepository()
        self._repo = PhotoRepository()

    async def list_photos(
        self, owner_id: str, journal_date: date
    ) -> list[dict[str, Any]] | None:
        """Photos for the day's entry, or None when there is no entry."""
        entry = await self._entries.get_by_date(self._session, owner_id, journal_date)
        if entry is None:
            return None
        return await self._repo.list_for_entry(self._session, owner_id, entry["id"])

    async def add_photo(
        self,
        owner_id: str,
        journal_date: date,
        fields: dict[str, Any],
    ) -> dict[str, Any] | None:
        entry = await self._entries.get_by_date(self._session, owner_id, journal_date)
        if entry is None:
            return None
        return await self._repo.add(
            self._session, owner_id=owner_id, entry_id=entry["id"], **fields
        )

    async def update_caption(
        self, owner_id: str, photo_id: UUID, caption: str | None
    ) -> dict[str, Any] | None:
        caption = (caption or "").strip() or None
        return await self._repo.update_caption(
            self._session, owner_id, photo_id, caption
        )

    async def delete_photo(self, owner_id: str, photo_id: UUID) -> dict[str, Any] | None:
        return await self._repo.delete(self._session, owner_id, photo_id)
