from __future__ import annotations

from types import SimpleNamespace

import pytest
from openai import OpenAIError

from exam_coach.core.errors import ConfigurationError, StreamInterruption
from exam_coach.exam.models import LearningStyle
from exam_coach.lessons import generator as generator_mod
from exam_coach.lessons.generator import (
    LESSON_SECTIONS,
    build_lesson_prompt,
    generate_lesson_stream,
)
from exam_coach.lessons.stream import LessonStreamAssembler, StreamStatus
from fixtures import OpenAIStub

STYLE = LearningStyle.EXAM_FOCUSED.value


def test_build_lesson_prompt_lists_every_section() -> None:
    prompt = build_lesson_prompt(
        "Taxation", "Intermediate", "GST input credit", STYLE, "Malayalam"
    )
    for title, _ in LESSON_SECTIONS:
        assert f"## {title}" in prompt
    assert 'Prepare a lesson on: "GST input credit"' in prompt
    assert "Teach in Malayalam." in prompt
    assert "common student mistakes" in prompt


def test_generate_lesson_stream_yields_text_fragments(openai_stub) -> None:
    openai_stub.queue_stream(["## Intro\n", None, "Hello", ""])

    fragments = list(
        generate_lesson_stream(
            "Taxation",
            "Final",
            "  Transfer pricing ",
            STYLE,
            "English",
            client=openai_stub,
        )
    )

    assert fragments == ["## Intro\n", "Hello"]
    call = openai_stub.calls[0]
    assert call["stream"] is True
    assert "Transfer pricing" in call["messages"][1]["content"]


def test_generate_lesson_stream_skips_chunks_without_choices() -> None:
    def _create(kwargs):
        return iter([SimpleNamespace(choices=[])])

    stub = OpenAIStub(side_effect=_create)
    stream = generate_lesson_stream(
        "Law", "Final", "Contracts", STYLE, "English", client=stub
    )
    assert list(stream) == []


@pytest.mark.parametrize(
    "subject, level, topic",
    [
        ("Law", "Final", ""),
        ("Law", "Final", "   "),
        ("", "Final", "Contracts"),
        ("Law", "", "Contracts"),
    ],
)
def test_generate_lesson_stream_requires_parameters(
    openai_stub, subject, level, topic
) -> None:
    with pytest.raises(ConfigurationError):
        generate_lesson_stream(
            subject, level, topic, STYLE, "English", client=openai_stub
        )
    assert openai_stub.calls == []


def test_generate_lesson_stream_wraps_open_failure() -> None:
    def _raise(kwargs):
        raise OpenAIError("unauthorized")

    with pytest.raises(StreamInterruption) as exc:
        generate_lesson_stream(
            "Law",
            "Final",
            "Contracts",
            STYLE,
            "English",
            client=OpenAIStub(side_effect=_raise),
        )
    assert "Failed to start the lesson" in str(exc.value)


def test_interrupted_stream_keeps_partial_lesson(openai_stub) -> None:
    openai_stub.queue_stream(
        ["## Overview\nSome", " text\n## Core\n"],
        error=OpenAIError("connection reset"),
    )
    assembler = LessonStreamAssembler()
    ticket = assembler.begin("Contracts", "Law", "Final")

    stream = generate_lesson_stream(
        "Law", "Final", "Contracts", STYLE, "English", client=openai_stub
    )
    lesson = assembler.consume(ticket, stream)

    assert assembler.status is StreamStatus.INTERRUPTED
    assert "Connection interrupted" in str(assembler.error)
    assert lesson is not None
    assert [s.title for s in lesson.sections] == ["Overview", "Core"]
    assert lesson.sections[0].content == "Some text"


def test_generate_lesson_stream_loads_client(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def _load_client(*, timeout=None):
        raise ConfigurationError("OPENAI_API_KEY not found in environment.")

    monkeypatch.setattr(generator_mod, "load_client", _load_client)
    with pytest.raises(ConfigurationError):
        generate_lesson_stream("Law", "Final", "Contracts", STYLE, "English")
