"""Core shared helpers for exam-coach components."""

from __future__ import annotations

from .ai import load_client
from .errors import (
    ConfigurationError,
    ExamCoachError,
    GenerationFailure,
    SessionError,
    StreamInterruption,
)
from .logging import JsonLogFormatter, configure_logger
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    ensure_workspace,
)

__all__ = [
    "load_client",
    "ExamCoachError",
    "ConfigurationError",
    "GenerationFailure",
    "StreamInterruption",
    "SessionError",
    "configure_logger",
    "JsonLogFormatter",
    "ensure_workspace",
    "WorkspaceLayout",
    "WorkspaceError",
    "WORKSPACE_ENV",
]
