from __future__ import annotations

from typing import List

import pytest
from rich.console import Console

from exam_coach.core.errors import ConfigurationError, GenerationFailure
from exam_coach.exam.practice import (
    PracticeResult,
    SessionCommand,
    format_clock,
    parse_session_command,
    run_practice_session,
    summary_renderables,
)
from exam_coach.exam.session import SessionEngine, SessionStatus
from fixtures import make_config, make_questions


class ManualClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def make_provider(commands: List[str], clock=None, step: float = 0.0):
    iterator = iter(commands)

    def _provider() -> str:
        value = next(iterator)
        if clock is not None:
            clock.now += step
        return value

    return _provider


def make_console() -> Console:
    return Console(record=True, width=100, force_terminal=True)


def make_engine() -> SessionEngine:
    return SessionEngine(lambda config: make_questions(config.question_count))


def run(
    commands: List[str],
    *,
    count: int = 3,
    minutes: int = 5,
    step: float = 1.0,
    engine: SessionEngine | None = None,
    **kwargs,
) -> tuple[PracticeResult, str]:
    console = make_console()
    clock = ManualClock()
    result = run_practice_session(
        engine or make_engine(),
        make_config(count, minutes=minutes),
        console,
        make_provider(commands, clock, step),
        clock=clock,
        **kwargs,
    )
    return result, console.export_text()


def test_parse_session_command_variants() -> None:
    assert parse_session_command("a") == SessionCommand("select", 0)
    assert parse_session_command(" D ") == SessionCommand("select", 3)
    assert parse_session_command("  Next ") == SessionCommand("next")
    assert parse_session_command("p") == SessionCommand("prev")
    assert parse_session_command("previous") == SessionCommand("prev")
    assert parse_session_command("submit") == SessionCommand("submit")
    assert parse_session_command("exit") == SessionCommand("quit")
    assert parse_session_command("F") == SessionCommand("flag")
    assert parse_session_command("g 3") == SessionCommand("goto", 2)
    assert parse_session_command("goto 1") == SessionCommand("goto", 0)
    assert parse_session_command("7") == SessionCommand("goto", 6)
    assert parse_session_command("g x") is None
    assert parse_session_command("e") is None
    assert parse_session_command(None) is None
    assert parse_session_command("") is None
    assert parse_session_command("?unknown") is None


def test_format_clock() -> None:
    assert format_clock(600) == "10:00"
    assert format_clock(61) == "01:01"
    assert format_clock(-5) == "00:00"


def test_submit_flow_scores_and_renders_summary() -> None:
    result, rendered = run(["a", "n", "b", "n", "a", "submit"])

    assert result.exit_action == "submitted"
    assert result.state.status is SessionStatus.FINISHED
    assert result.summary.total_questions == 3
    assert result.summary.correct_answers == 2
    assert result.summary.percentage == 67
    assert "Exam Results" in rendered
    assert "PASSED" in rendered
    assert "Because of rule 1." in rendered
    assert "Time left 04:59" in rendered


def test_submit_with_unanswered_requires_confirmation() -> None:
    result, rendered = run(["a", "submit", "n", "submit", "yes"])

    assert "You have 2 unanswered question(s)" in rendered
    assert result.exit_action == "submitted"
    assert result.summary.answered_questions == 1
    assert result.summary.correct_answers == 1
    assert result.summary.passed is False
    assert "NEEDS IMPROVEMENT" in rendered
    assert "Skipped" in rendered


def test_quit_requires_confirmation_and_discards_progress() -> None:
    result, rendered = run(["a", "quit", "no", "quit", "y"])

    assert result.exit_action == "quit"
    assert result.state.status is SessionStatus.IDLE
    assert result.state.questions == ()
    assert "Ending session without submission." in rendered
    assert "Exam Results" not in rendered


def test_running_out_of_input_ends_session() -> None:
    result, rendered = run(["a"])

    assert result.exit_action == "quit"
    assert result.state.status is SessionStatus.IDLE
    assert "Session interrupted." in rendered


def test_timeout_finishes_before_applying_next_command() -> None:
    result, rendered = run(["a", "b"], count=2, minutes=1, step=45.0)

    assert result.exit_action == "timeout"
    assert result.state.finish_reason == "timeout"
    assert result.state.time_remaining == 0
    # the first answer landed; the late "b" was never applied
    assert dict(result.state.answers) == {0: 0}
    assert result.summary.correct_answers == 1
    assert "Time is up." in rendered


@pytest.mark.parametrize(
    "commands",
    [
        ["a", "submit", "yes"],
        ["a", "submit", "no"],
        ["a", "quit", "y"],
    ],
)
def test_time_spent_at_confirmation_prompt_counts(commands) -> None:
    result, rendered = run(commands, count=3, minutes=1, step=25.0)

    assert result.exit_action == "timeout"
    assert result.state.status is SessionStatus.FINISHED
    assert result.state.finish_reason == "timeout"
    assert result.state.time_remaining == 0
    assert dict(result.state.answers) == {0: 0}
    assert "Time is up." in rendered
    assert "Exam Results" in rendered


def test_invalid_commands_and_navigation_feedback() -> None:
    result, rendered = run(["hello", "g 9", "f", "q", "y"])

    assert "Unrecognized command. Try again." in rendered
    assert "There is no question 9." in rendered
    assert "(flagged)" in rendered
    assert result.exit_action == "quit"


def test_generation_failure_returns_failed() -> None:
    def generator(config):
        raise GenerationFailure("Failed to generate valid exam questions.")

    engine = SessionEngine(generator)
    result, rendered = run(["a"], engine=engine)

    assert result.exit_action == "failed"
    assert result.state.error == "Failed to generate valid exam questions."
    assert "Failed to generate valid exam questions." in rendered


def test_configuration_error_returns_failed() -> None:
    def generator(config):
        raise ConfigurationError("OPENAI_API_KEY not found in environment.")

    result, rendered = run([], engine=SessionEngine(generator))

    assert result.exit_action == "failed"
    assert "OPENAI_API_KEY" in rendered


@pytest.mark.parametrize("show", [True, False])
def test_summary_renderables_toggle_explanations(show: bool) -> None:
    engine = make_engine()
    engine.start(make_config(3))
    engine.submit_answer(0, 0)
    engine.toggle_flag(1)
    engine.submit()

    console = make_console()
    for renderable in summary_renderables(
        engine.summary(), show_explanations=show
    ):
        console.print(renderable)
    rendered = console.export_text()

    assert "Score" in rendered
    assert "33%" in rendered
    assert "Question 2? (flagged)" in rendered
    assert ("Explanation: question 1" in rendered) is show
