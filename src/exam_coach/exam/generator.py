"""AI-backed multiple-choice question generation.

One chat-completion request per exam. The reply must contain a JSON array of
exactly ``question_count`` questions, each with four options and a correct
index in range; anything else is a :class:`GenerationFailure` and no
question from the reply is used.
"""

from __future__ import annotations

import json
import logging
import re
from functools import partial
from typing import Any, List, Optional, Sequence, Tuple

from openai import OpenAIError

from ..config import DEFAULT_AI_SETTINGS, AISettings
from ..core.ai import load_client
from ..core.errors import GenerationFailure
from .models import OPTION_COUNT, ExamConfig, Question
from .session import QuestionGenerator

__all__ = [
    "build_question_prompts",
    "parse_questions",
    "generate_questions",
    "make_question_generator",
]

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are a strict examiner for the Institute of Chartered Accountants. "
    "You write scenario-based multiple-choice exam questions and reply with "
    "JSON only."
)

_SCHEMA_LINE = (
    '{"id": str, "text": str, "options": [str, str, str, str], '
    '"correctOptionIndex": int, "explanation": str}'
)


def build_question_prompts(config: ExamConfig) -> Tuple[str, str]:
    """Return the system and user prompts for ``config``."""

    focus = ""
    if config.topic and config.topic.strip():
        focus = f'Focus specifically on the topic: "{config.topic.strip()}".\n'
    user_prompt = (
        f'Create a simulated exam for the subject "{config.subject}" at the '
        f'"{config.level}" level.\n'
        f"{focus}"
        f"Generate {config.question_count} multiple-choice questions.\n\n"
        f"Write the question text, options and explanation in "
        f"{config.language}. Keep the JSON keys in English.\n\n"
        "Guidelines:\n"
        "1. Questions should be scenario-based or conceptual.\n"
        f"2. Provide exactly {OPTION_COUNT} distinct options per question.\n"
        "3. Mark the zero-based index of the correct option "
        f"(0-{OPTION_COUNT - 1}).\n"
        "4. Explain the correct answer, citing sections of law or "
        "accounting standards where relevant.\n\n"
        f"Schema (one object per question):\n{_SCHEMA_LINE}\n"
        "Return the response strictly as a JSON array."
    )
    return _SYSTEM_PROMPT, user_prompt


def _chat_completion_content(
    client: Any,
    *,
    settings: AISettings,
    system_prompt: str,
    user_prompt: str,
) -> str:
    try:
        resp = client.chat.completions.create(
            model=settings.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            timeout=settings.request_timeout_seconds,
        )
    except OpenAIError as exc:
        raise GenerationFailure(
            f"Failed to reach the question generator: {exc}"
        ) from exc
    if not getattr(resp, "choices", None):
        raise GenerationFailure("No response received from AI.")
    content = (resp.choices[0].message.content or "").strip()
    if not content:
        raise GenerationFailure("No response received from AI.")
    return content


def _extract_json_array(content: str) -> List[Any]:
    fenced = re.search(r"```(?:json)?\s*(.+?)```", content, re.DOTALL)
    payload = fenced.group(1) if fenced else content
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise GenerationFailure(
            "Failed to generate valid exam questions."
        ) from exc
    if isinstance(data, dict) and isinstance(data.get("questions"), list):
        data = data["questions"]
    if not isinstance(data, list):
        raise GenerationFailure("Failed to generate valid exam questions.")
    return data


def _parse_question(record: Any, position: int) -> Question:
    label = f"Question {position + 1}"
    if not isinstance(record, dict):
        raise GenerationFailure(f"{label} is not an object.")
    text = str(record.get("text") or "").strip()
    if not text:
        raise GenerationFailure(f"{label} has no text.")
    options = record.get("options")
    if not isinstance(options, list) or len(options) != OPTION_COUNT:
        raise GenerationFailure(
            f"{label} must have exactly {OPTION_COUNT} options."
        )
    cleaned = tuple(str(option).strip() for option in options)
    if not all(cleaned):
        raise GenerationFailure(f"{label} has an empty option.")
    correct = record.get("correctOptionIndex")
    if (
        isinstance(correct, bool)
        or not isinstance(correct, int)
        or not 0 <= correct < OPTION_COUNT
    ):
        raise GenerationFailure(
            f"{label} has an invalid correct option index."
        )
    return Question(
        id=str(record.get("id") or "").strip(),
        text=text,
        options=cleaned,
        correct_option_index=correct,
        explanation=str(record.get("explanation") or "").strip(),
    )


def parse_questions(records: Sequence[Any], count: int) -> List[Question]:
    """Validate raw question records, all or nothing.

    Missing or duplicate ids are replaced with positional ``q<n>`` ids,
    suffixed with ``-2``, ``-3`` and so on when another question already
    uses that id.
    """

    if len(records) != count:
        raise GenerationFailure(
            f"Expected {count} questions but received {len(records)}."
        )
    questions = [
        _parse_question(record, position)
        for position, record in enumerate(records)
    ]
    taken: set[str] = set()
    repairs: List[int] = []
    for position, question in enumerate(questions):
        if question.id and question.id not in taken:
            taken.add(question.id)
        else:
            repairs.append(position)
    for position in repairs:
        question = questions[position]
        candidate = f"q{position + 1}"
        suffix = 2
        while candidate in taken:
            candidate = f"q{position + 1}-{suffix}"
            suffix += 1
        taken.add(candidate)
        questions[position] = Question(
            id=candidate,
            text=question.text,
            options=question.options,
            correct_option_index=question.correct_option_index,
            explanation=question.explanation,
        )
    return questions


def generate_questions(
    config: ExamConfig,
    *,
    client: Optional[Any] = None,
    settings: AISettings = DEFAULT_AI_SETTINGS,
) -> List[Question]:
    """Generate ``config.question_count`` questions or raise.

    A count of zero short-circuits to an empty list without a request.
    """

    config.validate()
    if config.question_count == 0:
        return []
    resolved = client if client is not None else load_client(
        timeout=settings.request_timeout_seconds
    )
    system_prompt, user_prompt = build_question_prompts(config)
    content = _chat_completion_content(
        resolved,
        settings=settings,
        system_prompt=system_prompt,
        user_prompt=user_prompt,
    )
    try:
        questions = parse_questions(
            _extract_json_array(content), config.question_count
        )
    except GenerationFailure as exc:
        logger.warning(
            "Rejected generated questions",
            extra={"reason": str(exc), "response_chars": len(content)},
        )
        raise
    logger.info(
        "Generated questions",
        extra={"count": len(questions), "model": settings.model},
    )
    return questions


def make_question_generator(
    *,
    client: Optional[Any] = None,
    settings: AISettings = DEFAULT_AI_SETTINGS,
) -> QuestionGenerator:
    """Bind ``generate_questions`` for use as a session engine collaborator."""

    return partial(generate_questions, client=client, settings=settings)
