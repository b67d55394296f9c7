"""Error taxonomy shared by the exam and lesson components."""

from __future__ import annotations

__all__ = [
    "ExamCoachError",
    "ConfigurationError",
    "GenerationFailure",
    "StreamInterruption",
    "SessionError",
]


class ExamCoachError(RuntimeError):
    """Base class for errors surfaced to the user."""


class ConfigurationError(ExamCoachError):
    """Raised when generation parameters or credentials are missing."""


class GenerationFailure(ExamCoachError):
    """Raised when the AI backend returns no data or invalid data."""


class StreamInterruption(ExamCoachError):
    """Raised when a lesson stream fails before the backend finishes it."""


class SessionError(ExamCoachError):
    """Raised when a session operation is requested in the wrong state."""
