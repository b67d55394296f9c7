"""Value types shared by the exam session engine and its collaborators."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from ..core.errors import ConfigurationError

if TYPE_CHECKING:  # pragma: no cover
    from ..lessons.models import Lesson

OPTION_COUNT = 4


class Subject(str, Enum):
    ACCOUNTING = "Accounting"
    LAW = "Corporate & Other Laws"
    TAXATION = "Taxation"
    AUDITING = "Auditing & Assurance"
    FINANCIAL_MANAGEMENT = "Financial Management"
    IT_SM = "EIS & SM"
    ADVANCED_ACCOUNTING = "Advanced Accounting"


class DifficultyLevel(str, Enum):
    FOUNDATION = "Foundation"
    INTERMEDIATE = "Intermediate"
    FINAL = "Final"


class LearningStyle(str, Enum):
    CONCEPTUAL = "Simplify for Beginners (Conceptual)"
    EXAM_FOCUSED = "Exam Oriented (High Scoring)"
    IN_DEPTH = "Master Class (In-Depth)"


class Language(str, Enum):
    ENGLISH = "English"
    MALAYALAM = "Malayalam"


@dataclass(frozen=True)
class Question:
    """A single multiple-choice question as received from the generator."""

    id: str
    text: str
    options: tuple[str, ...]
    correct_option_index: int
    explanation: str

    def option(self, index: Optional[int]) -> Optional[str]:
        if index is None or not 0 <= index < len(self.options):
            return None
        return self.options[index]

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_option_index]


@dataclass(frozen=True)
class ExamConfig:
    """Parameters of one exam or practice attempt."""

    subject: str
    level: str
    question_count: int
    duration_minutes: int
    topic: Optional[str] = None
    language: str = Language.ENGLISH.value

    def validate(self) -> "ExamConfig":
        """Raise ``ConfigurationError`` if a required parameter is missing."""

        if not str(self.subject or "").strip():
            raise ConfigurationError("An exam subject is required.")
        if not str(self.level or "").strip():
            raise ConfigurationError("An exam level is required.")
        if not str(self.language or "").strip():
            raise ConfigurationError("A content language is required.")
        if self.question_count < 0:
            raise ConfigurationError("Question count cannot be negative.")
        if self.duration_minutes <= 0:
            raise ConfigurationError("Duration must be at least one minute.")
        return self

    @property
    def duration_seconds(self) -> int:
        return self.duration_minutes * 60

    @classmethod
    def for_simulation(
        cls,
        subject: str,
        level: str,
        question_count: int,
        language: str = Language.ENGLISH.value,
        *,
        minutes_per_question: float = 1.5,
        topic: Optional[str] = None,
    ) -> "ExamConfig":
        """Build a config whose duration scales with the question count."""

        duration = max(1, math.ceil(question_count * minutes_per_question))
        return cls(
            subject=subject,
            level=level,
            question_count=question_count,
            duration_minutes=duration,
            topic=topic,
            language=language,
        )

    @classmethod
    def from_lesson(
        cls,
        lesson: "Lesson",
        language: str = Language.ENGLISH.value,
        *,
        question_count: int = 5,
        duration_minutes: int = 5,
    ) -> "ExamConfig":
        """Build a practice quiz config seeded from a lesson's topic."""

        return cls(
            subject=lesson.subject,
            level=lesson.level,
            question_count=question_count,
            duration_minutes=duration_minutes,
            topic=lesson.topic,
            language=language,
        )
