from .entries import EntryService
from .photos import PhotoService

__all__ = ["EntryService", "PhotoService"]
