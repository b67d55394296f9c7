"""Saved lessons and personal notes."""

from .store import (
    SAVED_LESSONS_KEY,
    USER_NOTES_KEY,
    LibraryError,
    LibraryStore,
    Note,
)

__all__ = [
    "SAVED_LESSONS_KEY",
    "USER_NOTES_KEY",
    "LibraryError",
    "LibraryStore",
    "Note",
]
