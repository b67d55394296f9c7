from __future__ import annotations

import json
from pathlib import Path

import pytest

from exam_coach.lessons.models import Lesson, LessonSection
from exam_coach.library.store import (
    SAVED_LESSONS_KEY,
    USER_NOTES_KEY,
    LibraryError,
    LibraryStore,
    Note,
)


class StepClock:
    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.value = start

    def __call__(self) -> int:
        return self.value


def make_lesson(topic: str, subject: str = "Accounting") -> Lesson:
    return Lesson(
        topic=topic,
        subject=subject,
        level="Foundation",
        sections=(LessonSection("Overview", f"All about {topic}."),),
    )


def test_empty_library_reads_as_empty(tmp_path: Path) -> None:
    store = LibraryStore(tmp_path / "library")
    assert store.saved_lessons() == []
    assert store.notes() == []
    assert store.path_for(SAVED_LESSONS_KEY).name == "saved-lessons.json"


def test_toggle_bookmark_prepends_then_removes(tmp_path: Path) -> None:
    store = LibraryStore(tmp_path)
    first = make_lesson("Leases")
    second = make_lesson("Provisions")

    assert store.toggle_bookmark(first) is True
    assert store.toggle_bookmark(second) is True
    assert [lesson.topic for lesson in store.saved_lessons()] == [
        "Provisions",
        "Leases",
    ]
    assert store.is_bookmarked(first)

    # same topic and subject identifies the bookmark
    assert store.toggle_bookmark(first.with_sections(())) is False
    assert [lesson.topic for lesson in store.saved_lessons()] == [
        "Provisions"
    ]
    assert not store.is_bookmarked(first)
    assert not store.is_bookmarked(make_lesson("Provisions", "Law"))


def test_saved_lessons_persist_as_flat_list(tmp_path: Path) -> None:
    store = LibraryStore(tmp_path)
    store.toggle_bookmark(make_lesson("Leases"))

    payload = json.loads(
        store.path_for(SAVED_LESSONS_KEY).read_text(encoding="utf-8")
    )
    assert payload == [
        {
            "topic": "Leases",
            "subject": "Accounting",
            "level": "Foundation",
            "sections": [
                {"title": "Overview", "content": "All about Leases."}
            ],
        }
    ]
    reloaded = LibraryStore(tmp_path).saved_lessons()
    assert reloaded == [make_lesson("Leases")]


def test_get_and_delete_saved_lesson_by_position(tmp_path: Path) -> None:
    store = LibraryStore(tmp_path)
    store.toggle_bookmark(make_lesson("Leases"))
    store.toggle_bookmark(make_lesson("Provisions"))

    assert store.get_saved_lesson(1).topic == "Leases"
    removed = store.delete_saved_lesson(0)
    assert removed.topic == "Provisions"
    assert [lesson.topic for lesson in store.saved_lessons()] == ["Leases"]

    with pytest.raises(LibraryError) as exc:
        store.get_saved_lesson(3)
    assert "No saved lesson at position 4." in str(exc.value)
    with pytest.raises(LibraryError):
        store.delete_saved_lesson(-1)


def test_create_note_prepends_and_avoids_id_collisions(
    tmp_path: Path,
) -> None:
    clock = StepClock()
    store = LibraryStore(tmp_path, clock=clock)

    first = store.create_note("Ind AS 116", "Lessee accounting")
    second = store.create_note()

    assert first.id == "1700000000000"
    assert second.id == "1700000000001"
    assert second.display_title == "Untitled Note"
    assert [note.id for note in store.notes()] == [second.id, first.id]


def test_update_note_changes_only_given_fields(tmp_path: Path) -> None:
    clock = StepClock()
    store = LibraryStore(tmp_path, clock=clock)
    note = store.create_note("Title", "Body")

    clock.value += 5000
    updated = store.update_note(note.id, content="New body")

    assert updated.title == "Title"
    assert updated.content == "New body"
    assert updated.last_modified == note.last_modified + 5000
    assert store.get_note(note.id) == updated

    with pytest.raises(LibraryError):
        store.update_note("missing", title="x")


def test_delete_note_returns_removed_note(tmp_path: Path) -> None:
    store = LibraryStore(tmp_path, clock=StepClock())
    note = store.create_note("Keep?", "No")

    assert store.delete_note(note.id) == note
    assert store.notes() == []
    with pytest.raises(LibraryError) as exc:
        store.get_note(note.id)
    assert "Note not found" in str(exc.value)
    with pytest.raises(LibraryError):
        store.delete_note(note.id)


def test_notes_serialize_with_last_modified_key(tmp_path: Path) -> None:
    store = LibraryStore(tmp_path, clock=StepClock(42))
    store.create_note("T", "C")
    payload = json.loads(
        store.path_for(USER_NOTES_KEY).read_text(encoding="utf-8")
    )
    assert payload == [
        {"id": "42", "title": "T", "content": "C", "lastModified": 42}
    ]


def test_corrupt_library_file_raises(tmp_path: Path) -> None:
    store = LibraryStore(tmp_path)
    store.path_for(USER_NOTES_KEY).write_text("{not json", encoding="utf-8")
    with pytest.raises(LibraryError) as exc:
        store.notes()
    assert "Failed to parse" in str(exc.value)

    store.path_for(SAVED_LESSONS_KEY).write_text("{}", encoding="utf-8")
    with pytest.raises(LibraryError) as exc:
        store.saved_lessons()
    assert "must hold a list" in str(exc.value)


@pytest.mark.parametrize(
    "payload",
    [
        {"title": "no id", "lastModified": 1},
        {"id": "1", "lastModified": "yesterday"},
        {"id": "1", "lastModified": True},
    ],
)
def test_note_from_dict_rejects_bad_records(payload) -> None:
    with pytest.raises(LibraryError):
        Note.from_dict(payload)
