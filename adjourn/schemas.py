from datetime import date, datetime
from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, Field

Mood = Annotated[int, Field(ge=1, le=5)]


class JournalEntryCreate(BaseModel):
    journal_date: date
    content: str = Field(min_length=1)
    mood: Mood | None = None


class JournalEntrySave(BaseModel):
    content: str
    mood: Mood | None = None


class JournalEntryUpdate(BaseModel):
    content: str | None = None
    mood: Mood | None = None


class JournalEntry(BaseModel):
    id: UUID
    owner_id: str
    journal_date: date
    content: str | None = None
    mood: int | None = None
    created_at: datetime
    updated_at: datetime


class JournalEntrySummary(BaseModel):
    id: UUID
    journal_date: date
    content: str | None = None
    mood: int | None = None
    created_at: datetime
    updated_at: datetime
    preview: str
    word_count: int
    has_photos: bool = False


class JournalEntryPage(BaseModel):
    entries: list[JournalEntrySummary]
    total_count: int


class DayOverview(BaseModel):
    has_entry: bool
    has_photos: bool
    word_count: int


class Streaks(BaseModel):
    current_streak: int
    longest_streak: int
    total_entries: int


class PhotoCreate(BaseModel):
    url: str = Field(min_length=1)
    caption: str | None = None
    width: int | None = Field(default=None, ge=1)
    height: int | None = Field(default=None, ge=1)
    file_size: int | None = Field(default=None, ge=0)


class PhotoUpdate(BaseModel):
    caption: str | None = None


class Photo(BaseModel):
    id: UUID
    owner_id: str
    entry_id: UUID
    url: str
    caption: str | None = None
    width: int | None = None
    height: int | None = None
    file_size: int | None = None
    created_at: datetime


class MuseRequest(BaseModel):
    content: str
    context: str | None = None


class MuseResponse(BaseModel):
    response: str
    requests_remaining: int
    timestamp: datetime


class Transcription(BaseModel):
    text: str
    success: bool = True


class LiveEditMessage(BaseModel):
    type: Literal["change", "flush"]
    content: str | None = None
