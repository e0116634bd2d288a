from __future__ import annotations

from datetime import date
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import JournalEntry, Photo


def _entry_to_dict(entry: JournalEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "owner_id": entry.owner_id,
        "journal_date": entry.journal_date,
        "content": entry.content,
        "mood": entry.mood,
        "created_at": entry.created_at,
        "updated_at": entry.updated_at,
    }


class EntryRepository:
    """Repository for journal entry database operations.

    Every query is scoped to one owner. ``journal_date`` is unique per owner,
    so a date is enough to address an entry.
    """

    async def get_by_date(
        self,
        session: AsyncSession,
        owner_id: str,
        journal_date: date,
    ) -> dict[str, Any] | None:
        result = await session.execute(
            select(JournalEntry).where(
                JournalEntry.owner_id == owner_id,
                JournalEntry.journal_date == journal_date,
            )
        )
        entry = result.scalar_one_or_none()
        return _entry_to_dict(entry) if entry else None

    async def create(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        journal_date: date,
        content: str,
        mood: int | None = None,
    ) -> dict[str, Any]:
        """Insert an entry. Raises IntegrityError if the date is taken."""
        entry = JournalEntry(
            id=uuid4(),
            owner_id=owner_id,
            journal_date=journal_date,
            content=content,
            mood=mood,
        )
        session.add(entry)
        try:
            await session.commit()
            await session.refresh(entry)
        except Exception:
            # keep the session usable for the next write
            await session.rollback()
            raise
        return _entry_to_dict(entry)

    async def update(
        self,
        session: AsyncSession,
        entry_id: UUID,
        fields: dict[str, Any],
        *,
        owner_id: str | None = None,
    ) -> dict[str, Any] | None:
        """Apply ``fields`` to an entry and bump ``updated_at``."""
        filters = [JournalEntry.id == entry_id]
        if owner_id is not None:
            filters.append(JournalEntry.owner_id == owner_id)
        result = await session.execute(select(JournalEntry).where(*filters))
        entry = result.scalar_one_or_none()
        if entry is None:
            return None
        for key, value in fields.items():
            setattr(entry, key, value)
        entry.updated_at = func.now()
        try:
            await session.commit()
            await session.refresh(entry)
        except Exception:
            await session.rollback()
            raise
        return _entry_to_dict(entry)

    async def delete_by_date(
        self,
        session: AsyncSession,
        owner_id: str,
        journal_date: date,
    ) -> bool:
        result = await session.execute(
            delete(JournalEntry).where(
                JournalEntry.owner_id == owner_id,
                JournalEntry.journal_date == journal_date,
            )
        )
        await session.commit()
        return result.rowcount > 0

    async def list_entries(
        self,
        session: AsyncSession,
        owner_id: str,
        *,
        limit: int = 20,
        offset: int = 0,
        query: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> tuple[list[dict[str, Any]], int]:
        """List entries newest first. Returns the page and the unpaged count."""
        filters = [JournalEntry.owner_id == owner_id]
        if query:
            filters.append(JournalEntry.content.icontains(query, autoescape=True))
        if start_date is not None:
            filters.append(JournalEntry.journal_date >= start_date)
        if end_date is not None:
            filters.append(JournalEntry.journal_date <= end_date)

        count_result = await session.execute(
            select(func.count()).select_from(JournalEntry).where(*filters)
        )
        total = count_result.scalar_one() or 0

        result = await session.execute(
            select(JournalEntry)
            .where(*filters)
            .order_by(JournalEntry.journal_date.desc())
            .offset(offset)
            .limit(limit)
        )
        return [_entry_to_dict(entry) for entry in result.scalars().all()], total

    async def list_dates(self, session: AsyncSession, owner_id: str) -> list[date]:
        """All dates the owner has written on, newest first."""
        result = await session.execute(
            select(JournalEntry.journal_date)
            .where(JournalEntry.owner_id == owner_id)
            .order_by(JournalEntry.journal_date.desc())
        )
        return list(result.scalars().all())

    async def photo_counts(
        self,
        session: AsyncSession,
        entry_ids: list[UUID],
    ) -> dict[UUID, int]:
        if not entry_ids:
            return {}
        result = await session.execute(
            select(Photo.entry_id, func.count())
            .where(Photo.entry_id.in_(entry_ids))
            .group_by(Photo.entry_id)
        )
        return {entry_id: count for entry_id, count in result.all()}
