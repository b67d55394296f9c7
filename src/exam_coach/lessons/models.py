"""Lesson value types."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, MutableMapping, Sequence


@dataclass(frozen=True)
class LessonSection:
    title: str
    content: str

    def to_dict(self) -> MutableMapping[str, Any]:
        return {"title": self.title, "content": self.content}


@dataclass(frozen=True)
class Lesson:
    """A titled lesson; sections grow while the stream is in flight."""

    topic: str
    subject: str
    level: str
    sections: tuple[LessonSection, ...] = field(default_factory=tuple)

    def with_sections(self, sections: Sequence[LessonSection]) -> "Lesson":
        return replace(self, sections=tuple(sections))

    def same_lesson(self, other: "Lesson") -> bool:
        """Bookmarks identify a lesson by its topic and subject."""

        return self.topic == other.topic and self.subject == other.subject

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "topic": self.topic,
            "subject": self.subject,
            "level": self.level,
            "sections": [section.to_dict() for section in self.sections],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Lesson":
        raw_sections = payload.get("sections") or []
        sections = tuple(
            LessonSection(
                title=str(item.get("title", "")),
                content=str(item.get("content", "")),
            )
            for item in raw_sections
            if isinstance(item, Mapping)
        )
        return cls(
            topic=str(payload.get("topic", "")),
            subject=str(payload.get("subject", "")),
            level=str(payload.get("level", "")),
            sections=sections,
        )
