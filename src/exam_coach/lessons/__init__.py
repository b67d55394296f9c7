"""Streamed lessons split into titled sections."""

from .models import Lesson, LessonSection
from .stream import (
    SECTION_MARKER,
    LessonStreamAssembler,
    StreamStatus,
    parse_sections,
)

__all__ = [
    "Lesson",
    "LessonSection",
    "SECTION_MARKER",
    "LessonStreamAssembler",
    "StreamStatus",
    "parse_sections",
]
