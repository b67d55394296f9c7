"""Streaming lesson generation over OpenAI chat completions."""

from __future__ import annotations

import logging
from typing import Any, Iterator, Optional

from openai import OpenAIError

from ..config import DEFAULT_AI_SETTINGS, AISettings
from ..core.ai import load_client
from ..core.errors import ConfigurationError, StreamInterruption
from ..exam.models import LearningStyle

__all__ = ["LESSON_SECTIONS", "build_lesson_prompt", "generate_lesson_stream"]

logger = logging.getLogger(__name__)

LESSON_SECTIONS = (
    ("Mastermind Overview", "A high-impact summary of the topic and why it "
     "matters."),
    ("Core Concept Decoded", "The main explanation, tailored to the "
     "teaching style."),
    ('The "Examiner\'s Favorite" Points', "Areas frequently asked in "
     "exams."),
    ("Practical Application / Case Study", "A real-world scenario or "
     "calculation."),
    ("Mastermind Memory Hook", "A mnemonic or trick to remember the "
     "concept."),
)

_STYLE_GUIDE = {
    LearningStyle.CONCEPTUAL.value: (
        "Use analogies and break jargon down into plain language. Focus on "
        "why things happen."
    ),
    LearningStyle.EXAM_FOCUSED.value: (
        "Focus on keywords, the sections and standards that fetch marks, "
        "presentation tips and common student mistakes."
    ),
    LearningStyle.IN_DEPTH.value: (
        "Give a deep analysis including exceptions, relevant case law and "
        "cross-references to other subjects."
    ),
}

_SYSTEM_PROMPT = (
    "You are an expert Chartered Accountancy tutor. You help students "
    "understand a topic and score well in the real exam."
)


def build_lesson_prompt(
    subject: str, level: str, topic: str, style: str, language: str
) -> str:
    """Return the user prompt asking for a sectioned Markdown lesson."""

    outline = "\n\n".join(
        f"## {title}\n({hint})" for title, hint in LESSON_SECTIONS
    )
    guide = _STYLE_GUIDE.get(style, "")
    return (
        f'Prepare a lesson on: "{topic}"\n'
        f'Subject: "{subject}"\n'
        f'Level: "{level}"\n'
        f'Teaching style: "{style}"\n'
        f"{guide}\n\n"
        f"Teach in {language}.\n\n"
        "Return formatted Markdown, not JSON. Structure the lesson strictly "
        "into these sections using level 2 headers (##):\n\n"
        f"{outline}\n\n"
        "Start directly with the first header."
    )


def generate_lesson_stream(
    subject: str,
    level: str,
    topic: str,
    style: str,
    language: str,
    *,
    client: Optional[Any] = None,
    settings: AISettings = DEFAULT_AI_SETTINGS,
) -> Iterator[str]:
    """Open a streaming completion and return an iterator of text fragments.

    Parameter and credential problems raise ``ConfigurationError`` here,
    before any fragment is produced. Failures while reading the stream raise
    ``StreamInterruption`` from the iterator.
    """

    if not topic or not topic.strip():
        raise ConfigurationError("A lesson topic is required.")
    if not subject or not level:
        raise ConfigurationError("Lesson subject and level are required.")
    resolved = client if client is not None else load_client(
        timeout=settings.request_timeout_seconds
    )
    prompt = build_lesson_prompt(
        subject, level, topic.strip(), style, language
    )
    try:
        stream = resolved.chat.completions.create(
            model=settings.model,
            messages=[
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            timeout=settings.request_timeout_seconds,
            stream=True,
        )
    except OpenAIError as exc:
        raise StreamInterruption(f"Failed to start the lesson: {exc}") from exc
    logger.info(
        "Opened lesson stream", extra={"topic": topic, "model": settings.model}
    )
    return _iter_fragments(stream)


def _iter_fragments(stream: Any) -> Iterator[str]:
    try:
        for chunk in stream:
            choices = getattr(chunk, "choices", None)
            if not choices:
                continue
            text = getattr(choices[0].delta, "content", None)
            if text:
                yield text
    except OpenAIError as exc:
        raise StreamInterruption(f"Connection interrupted: {exc}") from exc
