"""Shared testing fixtures and stubs for the exam-coach test suite."""

from .openai import OpenAIStub, stream_chunk  # noqa: F401
from .questions import (  # noqa: F401
    make_config,
    make_question,
    make_questions,
    make_record,
    make_records,
)
from .workspace import WorkspaceBuilder  # noqa: F401

__all__ = [
    "OpenAIStub",
    "WorkspaceBuilder",
    "make_config",
    "make_question",
    "make_questions",
    "make_record",
    "make_records",
    "stream_chunk",
]
