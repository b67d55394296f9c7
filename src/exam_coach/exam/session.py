"""Exam session engine and the state it owns.

The engine drives one attempt through ``idle -> loading -> active ->
finished``. State is an immutable :class:`SessionState` snapshot that the
engine replaces on every mutation, so the presentation layer can hold a
reference without being able to change it. All mutation goes through the
engine's methods; answer, flag and navigate requests that do not apply to the
current state are ignored rather than raised.

Question generation is a collaborator call. :meth:`SessionEngine.begin`
hands out a ticket for the pending request and only the latest ticket may
complete it, so a result that arrives after a restart or a newer start is
discarded.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Sequence

from ..core.errors import ConfigurationError, GenerationFailure, SessionError
from .models import ExamConfig, Question

__all__ = [
    "DEFAULT_PASS_THRESHOLD",
    "QuestionGenerator",
    "SessionStatus",
    "SessionState",
    "ReviewItem",
    "SessionSummary",
    "SessionEngine",
    "score_answers",
    "percentage",
    "summarize_session",
]

DEFAULT_PASS_THRESHOLD = 50

QuestionGenerator = Callable[[ExamConfig], Sequence[Question]]


class SessionStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    ACTIVE = "active"
    FINISHED = "finished"
    ERROR = "error"


def _frozen(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


def _empty() -> Mapping:
    return MappingProxyType({})


@dataclass(frozen=True)
class SessionState:
    """Read-only snapshot of an exam attempt."""

    status: SessionStatus = SessionStatus.IDLE
    questions: tuple[Question, ...] = ()
    current_index: int = 0
    answers: Mapping[int, int] = field(default_factory=_empty)
    flagged: Mapping[int, bool] = field(default_factory=_empty)
    start_time: Optional[float] = None
    time_remaining: int = 0
    score: int = 0
    finish_reason: Optional[str] = None
    error: Optional[str] = None

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def answered_count(self) -> int:
        return len(self.answers)

    @property
    def unanswered_count(self) -> int:
        return self.total_questions - self.answered_count

    @property
    def current_question(self) -> Optional[Question]:
        if not self.questions:
            return None
        return self.questions[self.current_index]

    def has_index(self, index: int) -> bool:
        return 0 <= index < len(self.questions)

    def selected_for(self, index: int) -> Optional[int]:
        return self.answers.get(index)

    def is_flagged(self, index: int) -> bool:
        return bool(self.flagged.get(index, False))


@dataclass(frozen=True)
class ReviewItem:
    """One question of a finished session, as shown on the results screen."""

    index: int
    question: Question
    selected: Optional[int]
    flagged: bool

    @property
    def is_correct(self) -> bool:
        return self.selected == self.question.correct_option_index

    @property
    def selected_text(self) -> Optional[str]:
        return self.question.option(self.selected)


@dataclass(frozen=True)
class SessionSummary:
    total_questions: int
    answered_questions: int
    correct_answers: int
    percentage: int
    pass_threshold: int
    items: tuple[ReviewItem, ...] = ()

    @property
    def passed(self) -> bool:
        return self.percentage >= self.pass_threshold


def score_answers(
    questions: Sequence[Question], answers: Mapping[int, int]
) -> int:
    """Count questions whose recorded answer matches the correct option."""

    return sum(
        1
        for index, question in enumerate(questions)
        if answers.get(index) == question.correct_option_index
    )


def percentage(correct: int, total: int) -> int:
    """Return ``correct / total`` as a rounded percentage; 0/0 is 0."""

    if total <= 0:
        return 0
    return math.floor(correct * 100 / total + 0.5)


def summarize_session(
    state: SessionState, *, pass_threshold: int = DEFAULT_PASS_THRESHOLD
) -> SessionSummary:
    """Build the results review for ``state``.

    A finished session reports its frozen score; any other state is scored
    from the answers recorded so far.
    """

    if state.status is SessionStatus.FINISHED:
        correct = state.score
    else:
        correct = score_answers(state.questions, state.answers)
    items = tuple(
        ReviewItem(
            index=index,
            question=question,
            selected=state.selected_for(index),
            flagged=state.is_flagged(index),
        )
        for index, question in enumerate(state.questions)
    )
    return SessionSummary(
        total_questions=state.total_questions,
        answered_questions=state.answered_count,
        correct_answers=correct,
        percentage=percentage(correct, state.total_questions),
        pass_threshold=pass_threshold,
        items=items,
    )


class SessionEngine:
    """Own the life cycle of one exam or practice attempt."""

    def __init__(
        self,
        generator: Optional[QuestionGenerator] = None,
        *,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._generator = generator
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)
        self._state = SessionState()
        self._config: Optional[ExamConfig] = None
        self._last_ticket = 0
        self._pending: Optional[int] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def config(self) -> Optional[ExamConfig]:
        return self._config

    @property
    def pending_ticket(self) -> Optional[int]:
        return self._pending

    # -- loading -----------------------------------------------------------

    def begin(self, config: ExamConfig) -> int:
        """Move to ``loading`` for ``config`` and return the request ticket.

        Calling ``begin`` while a request is pending supersedes it.
        """

        status = self._state.status
        if status in (SessionStatus.ACTIVE, SessionStatus.FINISHED):
            raise SessionError(
                f"Cannot start a new session while one is {status.value}; "
                "restart first."
            )
        config.validate()
        if self._pending is not None:
            self._logger.info(
                "Superseding pending question request",
                extra={"ticket": self._pending},
            )
        self._last_ticket += 1
        self._pending = self._last_ticket
        self._config = config
        self._state = SessionState(status=SessionStatus.LOADING)
        self._logger.info(
            "Requested questions",
            extra={
                "ticket": self._pending,
                "subject": config.subject,
                "level": config.level,
                "question_count": config.question_count,
                "topic": config.topic,
            },
        )
        return self._pending

    def load(self, ticket: int, questions: Sequence[Question]) -> bool:
        """Activate the session with ``questions`` if ``ticket`` is current."""

        if not self._accepts(ticket):
            self._logger.debug(
                "Discarded stale question result", extra={"ticket": ticket}
            )
            return False
        items = tuple(questions)
        if not items:
            return self.fail(ticket, "The generator returned no questions.")
        assert self._config is not None
        self._pending = None
        self._state = SessionState(
            status=SessionStatus.ACTIVE,
            questions=items,
            start_time=self._clock(),
            time_remaining=self._config.duration_seconds,
        )
        self._logger.info(
            "Session active",
            extra={
                "ticket": ticket,
                "question_count": len(items),
                "time_remaining": self._state.time_remaining,
            },
        )
        return True

    def fail(self, ticket: int, message: str) -> bool:
        """Return to ``idle`` with ``message`` if ``ticket`` is current."""

        if not self._accepts(ticket):
            self._logger.debug(
                "Discarded stale question failure", extra={"ticket": ticket}
            )
            return False
        self._pending = None
        self._state = SessionState(error=message)
        self._logger.warning(
            "Question generation failed",
            extra={"ticket": ticket, "error": message},
        )
        return True

    def start(self, config: ExamConfig) -> SessionState:
        """Run ``begin``, the configured generator, and ``load``/``fail``.

        Generation failures leave the engine idle with ``state.error`` set.
        A ``ConfigurationError`` from the generator resets the engine the
        same way and is then re-raised for the caller to surface.
        """

        if self._generator is None:
            raise ConfigurationError("No question generator is configured.")
        ticket = self.begin(config)
        try:
            questions = self._generator(config)
        except ConfigurationError as exc:
            self.fail(ticket, str(exc))
            raise
        except GenerationFailure as exc:
            self.fail(ticket, str(exc))
        except Exception as exc:
            self._logger.exception("Question generator raised")
            self.fail(ticket, f"Failed to generate exam questions: {exc}")
        else:
            self.load(ticket, questions)
        return self._state

    def _accepts(self, ticket: int) -> bool:
        return (
            self._state.status is SessionStatus.LOADING
            and ticket == self._pending
        )

    # -- active ------------------------------------------------------------

    def _active_index(self, index: int) -> bool:
        state = self._state
        return state.status is SessionStatus.ACTIVE and state.has_index(index)

    def submit_answer(self, index: int, option_index: int) -> bool:
        """Record ``option_index`` for question ``index``; last write wins."""

        if not self._active_index(index):
            return False
        answers = dict(self._state.answers)
        answers[index] = option_index
        self._state = replace(self._state, answers=_frozen(answers))
        return True

    def toggle_flag(self, index: int) -> bool:
        if not self._active_index(index):
            return False
        flagged = dict(self._state.flagged)
        flagged[index] = not self._state.is_flagged(index)
        self._state = replace(self._state, flagged=_frozen(flagged))
        return True

    def navigate_to(self, index: int) -> bool:
        if not self._active_index(index):
            return False
        self._state = replace(self._state, current_index=index)
        return True

    def next(self) -> bool:
        return self.navigate_to(self._state.current_index + 1)

    def previous(self) -> bool:
        return self.navigate_to(self._state.current_index - 1)

    def tick(self) -> bool:
        """Advance the countdown by one second.

        Has no effect unless the session is active with time left. The tick
        that reaches zero finalizes the session.
        """

        state = self._state
        if (
            state.status is not SessionStatus.ACTIVE
            or state.time_remaining <= 0
        ):
            return False
        remaining = state.time_remaining - 1
        self._state = replace(state, time_remaining=remaining)
        if remaining == 0:
            self.finalize(reason="timeout")
        return True

    def advance(self, seconds: float) -> int:
        """Apply one tick per whole elapsed second; return ticks applied."""

        applied = 0
        for _ in range(max(0, int(seconds))):
            if not self.tick():
                break
            applied += 1
        return applied

    def submit(self) -> int:
        """Score and finish the active session; return the score."""

        self.finalize(reason="submitted")
        return self._state.score

    def finalize(self, *, reason: str = "submitted") -> bool:
        """Compute the score once and move to ``finished``.

        Both explicit submission and timer expiry end up here. Only the first
        call while active has an effect.
        """

        state = self._state
        if state.status is not SessionStatus.ACTIVE:
            return False
        score = score_answers(state.questions, state.answers)
        self._state = replace(
            state,
            status=SessionStatus.FINISHED,
            score=score,
            finish_reason=reason,
        )
        self._logger.info(
            "Session finished",
            extra={
                "reason": reason,
                "score": score,
                "total": state.total_questions,
                "answered": state.answered_count,
                "time_remaining": state.time_remaining,
            },
        )
        return True

    # -- reset -------------------------------------------------------------

    def restart(self) -> SessionState:
        """Reset to the initial empty state, dropping any pending request."""

        self._pending = None
        self._config = None
        self._state = SessionState()
        return self._state

    def abort(self, message: str) -> SessionState:
        """Reset after a fatal backend failure, keeping only ``message``."""

        self._logger.error("Session aborted", extra={"error": message})
        self._pending = None
        self._state = SessionState(status=SessionStatus.ERROR, error=message)
        return self._state

    def summary(
        self, *, pass_threshold: int = DEFAULT_PASS_THRESHOLD
    ) -> SessionSummary:
        return summarize_session(self._state, pass_threshold=pass_threshold)
