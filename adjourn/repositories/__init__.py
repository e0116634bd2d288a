from .entries import EntryRepository
from .photos import PhotoRepository

__all__ = ["EntryRepository", "PhotoRepository"]
