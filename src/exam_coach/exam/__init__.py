"""Timed exam and practice sessions."""

from .models import (
    OPTION_COUNT,
    DifficultyLevel,
    ExamConfig,
    Language,
    LearningStyle,
    Question,
    Subject,
)
from .session import (
    DEFAULT_PASS_THRESHOLD,
    ReviewItem,
    SessionEngine,
    SessionState,
    SessionStatus,
    SessionSummary,
    percentage,
    score_answers,
    summarize_session,
)

__all__ = [
    "OPTION_COUNT",
    "DifficultyLevel",
    "ExamConfig",
    "Language",
    "LearningStyle",
    "Question",
    "Subject",
    "DEFAULT_PASS_THRESHOLD",
    "ReviewItem",
    "SessionEngine",
    "SessionState",
    "SessionStatus",
    "SessionSummary",
    "percentage",
    "score_answers",
    "summarize_session",
]
