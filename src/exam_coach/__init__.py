"""Exam practice, streamed lessons and a personal study library."""

from .exam.models import ExamConfig, Question
from .exam.session import SessionEngine, SessionState, SessionStatus
from .lessons.models import Lesson, LessonSection
from .lessons.stream import LessonStreamAssembler, parse_sections

__all__ = [
    "ExamConfig",
    "Question",
    "SessionEngine",
    "SessionState",
    "SessionStatus",
    "Lesson",
    "LessonSection",
    "LessonStreamAssembler",
    "parse_sections",
]
