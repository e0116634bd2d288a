from __future__ import annotations

import calendar
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..journal_text import build_preview, count_words
from ..repositories import EntryRepository
from ..streaks import StreakSnapshot, compute_streaks


class EntryService:
    """Service layer for journal entries and the streaks derived from them.

    Also serves as the entry store behind an autosave session:
    ``find_by_owner_and_date``, ``create`` and ``update`` match what
    ``AutosaveReconciler`` expects.
    """

    def __init__(self, session: AsyncSession):
        self._session = session
        self._repo = EntryRepository()

    async def find_by_owner_and_date(
        self, owner_id: str, journal_date: date
    ) -> dict[str, Any] | None:
        return await self._repo.get_by_date(self._session, owner_id, journal_date)

    async def create(
        self,
        owner_id: str,
        journal_date: date,
        content: str,
        mood: int | None = None,
    ) -> dict[str, Any]:
        return await self._repo.create(
            self._session,
            owner_id=owner_id,
            journal_date=journal_date,
            content=content,
            mood=mood,
        )

    async def update(self, entry_id: UUID, content: str) -> dict[str, Any]:
        entry = await self._repo.update(self._session, entry_id, {"content": content})
        if entry is None:
            raise LookupError(f"Journal entry {entry_id} no longer exists")
        return entry

    async def save_for_date(
        self,
        owner_id: str,
        journal_date: date,
        content: str,
        mood: int | None = None,
    ) -> dict[str, Any]:
        """Create the day's entry or update the one that already exists."""
        fields: dict[str, Any] = {"content": content}
        if mood is not None:
            fields["mood"] = mood
        existing = await self._repo.get_by_date(self._session, owner_id, journal_date)
        if existing is not None:
            updated = await self._repo.update(
                self._session, existing["id"], fields, owner_id=owner_id
            )
            if updated is not None:
                return updated
        return await self.create(owner_id, journal_date, content, mood)

    async def update_entry(
        self,
        owner_id: str,
        entry_id: UUID,
        fields: dict[str, Any],
    ) -> dict[str, Any] | None:
        return await self._repo.update(
            self._session, entry_id, fields, owner_id=owner_id
        )

    async def delete_for_date(self, owner_id: str, journal_date: date) -> bool:
        return await self._repo.delete_by_date(self._session, owner_id, journal_date)

    async def list_entries(
        self,
        owner_id: str,
        *,
        limit: int = 20,
        offset: int = 0,
        query: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> dict[str, Any]:
        """List entries with a preview and word count for each."""
        entries, total = await self._repo.list_entries(
            self._session,
            owner_id,
            limit=limit,
            offset=offset,
            query=query,
            start_date=start_date,
            end_date=end_date,
        )
        photo_counts = await self._repo.photo_counts(
            self._session, [entry["id"] for entry in entries]
        )
        summaries = [
            {
                **entry,
                "preview": build_preview(entry["content"]),
                "word_count": count_words(entry["content"]),
                "has_photos": photo_counts.get(entry["id"], 0) > 0,
            }
            for entry in entries
        ]
        return {"entries": summaries, "total_count": total}

    async def month_overview(
        self, owner_id: str, year: int, month: int
    ) -> dict[str, dict[str, Any]]:
        """Calendar view data keyed by ``YYYY-MM-DD``; days without entries are absent."""
        _, last_day = calendar.monthrange(year, month)
        entries, _ = await self._repo.list_entries(
            self._session,
            owner_id,
            limit=last_day,
            start_date=date(year, month, 1),
            end_date=date(year, month, last_day),
        )
        photo_counts = await self._repo.photo_counts(
            self._session, [entry["id"] for entry in entries]
        )
        return {
            entry["journal_date"].isoformat(): {
                "has_entry": True,
                "has_photos": photo_counts.get(entry["id"], 0) > 0,
                "word_count": count_words(entry["content"]),
            }
            for entry in entries
        }

    async def get_streaks(self, owner_id: str, today: date) -> StreakSnapshot:
        dates = await self._repo.list_dates(self._session, owner_id)
        return compute_streaks(dates, today)
