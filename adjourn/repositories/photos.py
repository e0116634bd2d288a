from __future__ import annotations

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Photo


def _photo_to_dict(photo: Photo) -> dict[str, Any]:
    return {
        "id": photo.id,
        "owner_id": photo.owner_id,
        "entry_id": photo.entry_id,
        "url": photo.url,
        "caption": photo.caption,
        "width": photo.width,
        "height": photo.height,
        "file_size": photo.file_size,
        "created_at": photo.created_at,
    }


class PhotoRepository:
    """Repository for photo metadata. Image bytes live in object storage."""

    async def list_for_entry(
        self,
        session: AsyncSession,
        owner_id: str,
        entry_id: UUID,
    ) -> list[dict[str, Any]]:
        result = await session.execute(
            select(Photo)
            .where(Photo.owner_id == owner_id, Photo.entry_id == entry_id)
            .order_by(Photo.created_at.asc())
        )
        return [_photo_to_dict(photo) for photo in result.scalars().all()]

    async def add(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        entry_id: UUID,
        url: str,
        caption: str | None = None,
        width: int | None = None,
        height: int | None = None,
        file_size: int | None = None,
    ) -> dict[str, Any]:
        photo = Photo(
            id=uuid4(),
            owner_id=owner_id,
            entry_id=entry_id,
            url=url,
            caption=caption,
            width=width,
            height=height,
            file_size=file_size,
        )
        session.add(photo)
        await session.commit()
        await session.refresh(photo)
        return _photo_to_dict(photo)

    async def update_caption(
        self,
        session: AsyncSession,
        owner_id: str,
        photo_id: UUID,
        caption: str | None,
    ) -> dict[str, Any] | None:
        result = await session.execute(
            select(Photo).where(Photo.id == photo_id, Photo.owner_id == owner_id)
        )
        photo = result.scalar_one_or_none()
        if photo is None:
            return None
        photo.caption = caption
        await session.commit()
        await session.refresh(photo)
        return _photo_to_dict(photo)

    async def delete(
        self,
        session: AsyncSession,
        owner_id: str,
        photo_id: UUID,
    ) -> dict[str, Any] | None:
        """Delete a photo row, returning it so the caller can drop the stored file."""
        result = await session.execute(
            select(Photo).where(Photo.id == photo_id, Photo.owner_id == owner_id)
        )
        photo = result.scalar_one_or_none()
        if photo is None:
            return None
        removed = _photo_to_dict(photo)
        await session.delete(photo)
        await session.commit()
        return removed
