"""Local library of bookmarked lessons and personal notes.

Each storage key maps to one flat JSON list under the workspace ``library``
directory. Every mutation rewrites the whole list atomically.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, List, Mapping, MutableMapping, Optional

from ..lessons.models import Lesson

__all__ = [
    "SAVED_LESSONS_KEY",
    "USER_NOTES_KEY",
    "LibraryError",
    "Note",
    "LibraryStore",
]

SAVED_LESSONS_KEY = "saved-lessons"
USER_NOTES_KEY = "user-notes"

logger = logging.getLogger(__name__)


class LibraryError(RuntimeError):
    """Raised when library storage cannot be read or written."""


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Note:
    id: str
    title: str
    content: str
    last_modified: int

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "lastModified": self.last_modified,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Note":
        note_id = str(payload.get("id") or "").strip()
        if not note_id:
            raise LibraryError("Stored note is missing its id.")
        modified = payload.get("lastModified", 0)
        if isinstance(modified, bool) or not isinstance(
            modified, (int, float)
        ):
            raise LibraryError(f"Note {note_id} has an invalid timestamp.")
        return cls(
            id=note_id,
            title=str(payload.get("title") or ""),
            content=str(payload.get("content") or ""),
            last_modified=int(modified),
        )

    @property
    def display_title(self) -> str:
        return self.title.strip() or "Untitled Note"


class LibraryStore:
    """Read and write the saved-lesson and note lists."""

    def __init__(
        self,
        directory: Path,
        *,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._directory = Path(directory)
        self._clock = clock

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, key: str) -> Path:
        return self._directory / f"{key}.json"

    # -- bookmarks ---------------------------------------------------------

    def saved_lessons(self) -> List[Lesson]:
        return [
            Lesson.from_dict(item)
            for item in self._read(SAVED_LESSONS_KEY)
            if isinstance(item, Mapping)
        ]

    def is_bookmarked(self, lesson: Lesson) -> bool:
        return any(lesson.same_lesson(saved) for saved in self.saved_lessons())

    def toggle_bookmark(self, lesson: Lesson) -> bool:
        """Save ``lesson`` first in the list, or remove it if already saved.

        Returns True when the lesson is bookmarked afterwards.
        """

        lessons = self.saved_lessons()
        remaining = [
            saved for saved in lessons if not lesson.same_lesson(saved)
        ]
        if len(remaining) != len(lessons):
            self._write(
                SAVED_LESSONS_KEY, [item.to_dict() for item in remaining]
            )
            logger.info(
                "Removed bookmark",
                extra={"topic": lesson.topic, "subject": lesson.subject},
            )
            return False
        self._write(
            SAVED_LESSONS_KEY,
            [lesson.to_dict()] + [item.to_dict() for item in lessons],
        )
        logger.info(
            "Saved bookmark",
            extra={"topic": lesson.topic, "subject": lesson.subject},
        )
        return True

    def get_saved_lesson(self, position: int) -> Lesson:
        lessons = self.saved_lessons()
        if not 0 <= position < len(lessons):
            raise LibraryError(f"No saved lesson at position {position + 1}.")
        return lessons[position]

    def delete_saved_lesson(self, position: int) -> Lesson:
        lessons = self.saved_lessons()
        if not 0 <= position < len(lessons):
            raise LibraryError(f"No saved lesson at position {position + 1}.")
        removed = lessons.pop(position)
        self._write(SAVED_LESSONS_KEY, [item.to_dict() for item in lessons])
        return removed

    # -- notes -------------------------------------------------------------

    def notes(self) -> List[Note]:
        return [
            Note.from_dict(item)
            for item in self._read(USER_NOTES_KEY)
            if isinstance(item, Mapping)
        ]

    def get_note(self, note_id: str) -> Note:
        for note in self.notes():
            if note.id == note_id:
                return note
        raise LibraryError(f"Note not found: {note_id}")

    def create_note(self, title: str = "", content: str = "") -> Note:
        """Add a note at the front of the list."""

        notes = self.notes()
        stamp = self._clock()
        taken = {note.id for note in notes}
        note_id = str(stamp)
        while note_id in taken:
            stamp += 1
            note_id = str(stamp)
        note = Note(
            id=note_id, title=title, content=content, last_modified=stamp
        )
        self._write(
            USER_NOTES_KEY, [note.to_dict()] + [n.to_dict() for n in notes]
        )
        logger.info("Created note", extra={"note_id": note.id})
        return note

    def update_note(
        self,
        note_id: str,
        *,
        title: Optional[str] = None,
        content: Optional[str] = None,
    ) -> Note:
        notes = self.notes()
        for position, note in enumerate(notes):
            if note.id != note_id:
                continue
            updated = replace(
                note,
                title=note.title if title is None else title,
                content=note.content if content is None else content,
                last_modified=self._clock(),
            )
            notes[position] = updated
            self._write(USER_NOTES_KEY, [n.to_dict() for n in notes])
            logger.info("Updated note", extra={"note_id": note_id})
            return updated
        raise LibraryError(f"Note not found: {note_id}")

    def delete_note(self, note_id: str) -> Note:
        notes = self.notes()
        remaining = [note for note in notes if note.id != note_id]
        if len(remaining) == len(notes):
            raise LibraryError(f"Note not found: {note_id}")
        self._write(USER_NOTES_KEY, [n.to_dict() for n in remaining])
        logger.info("Deleted note", extra={"note_id": note_id})
        return next(note for note in notes if note.id == note_id)

    # -- storage -----------------------------------------------------------

    def _read(self, key: str) -> List[Any]:
        target = self.path_for(key)
        if not target.is_file():
            return []
        try:
            data = json.loads(target.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise LibraryError(
                f"Failed to parse library file: {target}"
            ) from exc
        if not isinstance(data, list):
            raise LibraryError(f"Library file must hold a list: {target}")
        return data

    def _write(self, key: str, items: List[Any]) -> None:
        try:
            _atomic_write_json(self.path_for(key), items)
        except OSError as exc:
            raise LibraryError(
                f"Failed to write library file {self.path_for(key)}: {exc}"
            ) from exc


def _atomic_write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        "w",
        delete=False,
        encoding="utf-8",
        dir=str(path.parent),
    )
    try:
        json.dump(payload, handle, indent=2, ensure_ascii=False)
        handle.flush()
        os.fsync(handle.fileno())
    finally:
        handle.close()
    os.replace(handle.name, path)
    try:
        path.chmod(0o600)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
