"""Textual front end for the timed exam.

Question generation runs in a worker thread. Its result is posted back to
the event loop and applied with the ticket captured when the request was
made, so a result for a restarted attempt is dropped by the engine.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Optional, Sequence

from rich.console import Group
from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.css.query import NoMatches
from textual.timer import Timer
from textual.widgets import Button, Static

from ..core.errors import ConfigurationError, GenerationFailure
from .models import OPTION_COUNT, ExamConfig, Question
from .practice import OPTION_KEYS, format_clock, summary_renderables
from .session import (
    DEFAULT_PASS_THRESHOLD,
    QuestionGenerator,
    SessionEngine,
    SessionStatus,
)

logger = logging.getLogger(__name__)


class ExamApp(App):
    CSS_PATH = None
    CSS = """
#choices Button { width: 100%; }
#choices Button.selected { background: $accent; color: black; }
#timer { color: $warning; text-style: bold; }
#confirm { color: $error; }
#question { padding: 1 0; }
"""
    BINDINGS = [
        ("a", "select(0)", "A"),
        ("b", "select(1)", "B"),
        ("c", "select(2)", "C"),
        ("d", "select(3)", "D"),
        ("f", "flag", "Flag"),
        ("n", "next", "Next"),
        ("p", "prev", "Prev"),
        ("s", "submit", "Submit"),
        ("r", "restart", "Restart"),
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        config: ExamConfig,
        generator: QuestionGenerator,
        *,
        engine: Optional[SessionEngine] = None,
        pass_threshold: int = DEFAULT_PASS_THRESHOLD,
    ) -> None:
        super().__init__()
        self._config = config
        self._generator = generator
        self.engine = engine or SessionEngine(generator)
        self._pass_threshold = pass_threshold
        self._timer: Optional[Timer] = None
        self._confirm_pending = False

    def compose(self) -> ComposeResult:
        yield Static("", id="timer")
        yield Static("", id="question")
        with Vertical(id="choices"):
            for position in range(OPTION_COUNT):
                yield Button("", id=f"choice-{position}")
        with Horizontal(id="nav"):
            yield Button("Prev", id="prev")
            yield Button("Next", id="next")
            yield Button("Flag", id="flag")
            yield Button("Submit", id="submit")
        yield Static(self.status_text(), id="status")
        yield Static("", id="confirm")
        with Container(id="results"):
            yield Static("", id="summary")

    def on_mount(self) -> None:
        self.request_questions()

    # Pure helpers (usable without a running app)

    def request_questions(self) -> int:
        """Ask the engine for a new attempt and start generation."""

        ticket = self.engine.begin(self._config)
        self._confirm_pending = False
        if self.is_running:
            self.run_worker(
                partial(self._generate, ticket),
                name="generate-questions",
                thread=True,
                exclusive=True,
            )
        self._refresh_view()
        return ticket

    def apply_questions(
        self, ticket: int, questions: Sequence[Question]
    ) -> bool:
        applied = self.engine.load(ticket, questions)
        self._sync_timer()
        self._refresh_view()
        return applied

    def apply_failure(self, ticket: int, message: str) -> bool:
        applied = self.engine.fail(ticket, message)
        self._sync_timer()
        self._refresh_view()
        return applied

    def select_answer(self, option_index: int) -> bool:
        self._confirm_pending = False
        state = self.engine.state
        changed = self.engine.submit_answer(state.current_index, option_index)
        self._refresh_view()
        return changed

    def toggle_flag(self) -> bool:
        self._confirm_pending = False
        changed = self.engine.toggle_flag(self.engine.state.current_index)
        self._refresh_view()
        return changed

    def next_question(self) -> int:
        self._confirm_pending = False
        self.engine.next()
        self._refresh_view()
        return self.engine.state.current_index

    def prev_question(self) -> int:
        self._confirm_pending = False
        self.engine.previous()
        self._refresh_view()
        return self.engine.state.current_index

    def request_submit(self) -> bool:
        """Submit, asking for a second press while questions are unanswered.

        Returns True once the session has finished.
        """

        state = self.engine.state
        if state.status is not SessionStatus.ACTIVE:
            return False
        if state.unanswered_count and not self._confirm_pending:
            self._confirm_pending = True
            self._refresh_view()
            return False
        self._confirm_pending = False
        self.engine.submit()
        self._sync_timer()
        self._refresh_view()
        return True

    def tick(self) -> bool:
        ticked = self.engine.tick()
        if self.engine.state.status is not SessionStatus.ACTIVE:
            self._sync_timer()
        self._refresh_view()
        return ticked

    def restart(self) -> None:
        self._confirm_pending = False
        self.engine.restart()
        self._sync_timer()
        self._refresh_view()

    def confirm_text(self) -> str:
        if not self._confirm_pending:
            return ""
        unanswered = self.engine.state.unanswered_count
        return (
            f"You have {unanswered} unanswered question(s). "
            "Press s again to submit."
        )

    def status_text(self) -> str:
        state = self.engine.state
        if state.status is SessionStatus.LOADING:
            return "Generating questions..."
        if state.status is SessionStatus.IDLE and state.error:
            return f"{state.error} Press r to try again."
        if state.status is SessionStatus.ERROR:
            return state.error or "The session failed."
        if state.status is SessionStatus.FINISHED:
            summary = self.engine.summary(pass_threshold=self._pass_threshold)
            return (
                f"Score {summary.correct_answers}/{summary.total_questions} "
                f"({summary.percentage}%). Press r for a new attempt."
            )
        flagged = sum(1 for value in state.flagged.values() if value)
        return (
            f"Answered: {state.answered_count}/{state.total_questions}"
            f"  Flagged: {flagged}"
        )

    def timer_text(self) -> str:
        state = self.engine.state
        if state.status is not SessionStatus.ACTIVE:
            return ""
        return f"Time left {format_clock(state.time_remaining)}"

    def question_text(self) -> str:
        state = self.engine.state
        question = state.current_question
        if state.status is not SessionStatus.ACTIVE or question is None:
            return ""
        marker = " (flagged)" if state.is_flagged(state.current_index) else ""
        return (
            f"Question {state.current_index + 1}/{state.total_questions}"
            f"{marker}\n\n{question.text}"
        )

    # Worker and timer plumbing

    def _generate(self, ticket: int) -> None:
        try:
            questions = self._generator(self._config)
        except (ConfigurationError, GenerationFailure) as exc:
            self.call_from_thread(self.apply_failure, ticket, str(exc))
            return
        except Exception as exc:
            logger.exception("Question generator raised")
            self.call_from_thread(
                self.apply_failure,
                ticket,
                f"Failed to generate exam questions: {exc}",
            )
            return
        self.call_from_thread(self.apply_questions, ticket, questions)

    def _sync_timer(self) -> None:
        active = self.engine.state.status is SessionStatus.ACTIVE
        if active and self._timer is None and self.is_running:
            self._timer = self.set_interval(1, self.tick)
        elif not active and self._timer is not None:
            self._timer.stop()
            self._timer = None

    def _refresh_view(self) -> None:
        if not self.is_running:
            return
        texts = {
            "#timer": self.timer_text(),
            "#question": self.question_text(),
            "#status": self.status_text(),
            "#confirm": self.confirm_text(),
        }
        try:
            for selector, text in texts.items():
                self.query_one(selector, Static).update(Text(text))
        except NoMatches:
            return
        self._refresh_choices()
        self._refresh_results()

    def _refresh_choices(self) -> None:
        state = self.engine.state
        question = state.current_question
        active = state.status is SessionStatus.ACTIVE and question is not None
        selected = state.selected_for(state.current_index)
        for position in range(OPTION_COUNT):
            button = self.query_one(f"#choice-{position}", Button)
            button.display = active
            if not active:
                continue
            option = question.options[position]
            button.label = Text(f"{OPTION_KEYS[position]}) {option}")
            button.set_class(position == selected, "selected")

    def _refresh_results(self) -> None:
        state = self.engine.state
        finished = state.status is SessionStatus.FINISHED
        self.query_one("#results", Container).display = finished
        self.query_one("#nav", Horizontal).display = (
            state.status is SessionStatus.ACTIVE
        )
        if finished:
            summary = self.engine.summary(pass_threshold=self._pass_threshold)
            self.query_one("#summary", Static).update(
                Group(*summary_renderables(summary))
            )

    # Actions

    def action_select(self, option_index: int) -> None:
        self.select_answer(option_index)

    def action_flag(self) -> None:
        self.toggle_flag()

    def action_next(self) -> None:
        self.next_question()

    def action_prev(self) -> None:
        self.prev_question()

    def action_submit(self) -> None:
        self.request_submit()

    def action_restart(self) -> None:
        self.restart()
        self.request_questions()

    def action_quit(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._timer = None
        self.exit(self.engine.state)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        bid = getattr(event.button, "id", "") or ""
        if bid.startswith("choice-"):
            self.select_answer(int(bid.split("-", 1)[1]))
        elif bid == "submit":
            self.action_submit()
        elif bid == "next":
            self.action_next()
        elif bid == "prev":
            self.action_prev()
        elif bid == "flag":
            self.action_flag()
