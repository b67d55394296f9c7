"""Rich-powered practice session loop.

The loop renders one question at a time, reads commands from an injectable
input provider, and routes every action through :class:`SessionEngine`.
Wall-clock time elapsed between inputs is replayed as whole-second ticks, so
a session that runs out of time while waiting for input finishes on the next
command without applying it.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, List, Literal

from rich import box
from rich.console import Console, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..core.errors import ConfigurationError
from .models import OPTION_COUNT, ExamConfig
from .session import (
    DEFAULT_PASS_THRESHOLD,
    SessionEngine,
    SessionState,
    SessionStatus,
    SessionSummary,
)

InputProvider = Callable[[], str]
ExitAction = Literal["submitted", "timeout", "quit", "failed"]

OPTION_KEYS = tuple(chr(ord("A") + offset) for offset in range(OPTION_COUNT))


@dataclass(frozen=True)
class SessionCommand:
    """Normalized user command parsed from console input."""

    type: Literal["next", "prev", "submit", "quit", "select", "flag", "goto"]
    value: int | None = None


@dataclass(frozen=True)
class PracticeResult:
    """Return value from ``run_practice_session``."""

    state: SessionState
    summary: SessionSummary
    exit_action: ExitAction


def format_clock(seconds: int) -> str:
    """Render ``seconds`` as ``MM:SS``."""

    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{secs:02d}"


def parse_session_command(raw: str | None) -> SessionCommand | None:
    """Parse raw user input into a structured command.

    Option letters map to zero-based indices; ``goto`` takes a one-based
    question number and is stored zero-based.
    """

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    lowered = text.lower()
    if lowered in {"n", "next"}:
        return SessionCommand("next")
    if lowered in {"p", "prev", "previous"}:
        return SessionCommand("prev")
    if lowered in {"s", "submit"}:
        return SessionCommand("submit")
    if lowered in {"q", "quit", "exit"}:
        return SessionCommand("quit")
    if lowered in {"f", "flag"}:
        return SessionCommand("flag")
    parts = lowered.split()
    if parts[0] in {"g", "goto"} and len(parts) == 2:
        if parts[1].isdigit():
            return SessionCommand("goto", int(parts[1]) - 1)
        return None
    if lowered.isdigit():
        return SessionCommand("goto", int(lowered) - 1)
    key = text.upper()
    if len(key) == 1 and key in OPTION_KEYS:
        return SessionCommand("select", OPTION_KEYS.index(key))
    return None


def _confirm(
    console: Console, input_provider: InputProvider, prompt: str
) -> bool:
    console.print(f"[bold yellow]{prompt}[/] [dim](y/N)[/]")
    try:
        reply = input_provider()
    except (EOFError, KeyboardInterrupt, StopIteration):
        return False
    return reply.strip().lower() in {"y", "yes"}


def run_practice_session(
    engine: SessionEngine,
    config: ExamConfig,
    console: Console,
    input_provider: InputProvider,
    *,
    clock: Callable[[], float] = time.monotonic,
    pass_threshold: int = DEFAULT_PASS_THRESHOLD,
    show_explanations: bool = True,
) -> PracticeResult:
    """Generate questions for ``config`` and run a timed practice session."""

    with console.status("Generating questions..."):
        try:
            state = engine.start(config)
        except ConfigurationError as exc:
            console.print(
                Panel(str(exc), title="Practice", border_style="red")
            )
            return PracticeResult(
                engine.state,
                engine.summary(pass_threshold=pass_threshold),
                "failed",
            )
    if state.status is not SessionStatus.ACTIVE:
        console.print(
            Panel(
                state.error or "Failed to generate exam. Please try again.",
                title="Practice",
                border_style="red",
            )
        )
        return PracticeResult(
            state, engine.summary(pass_threshold=pass_threshold), "failed"
        )

    exit_action: ExitAction = "quit"
    last_mark = clock()

    def catch_up() -> bool:
        nonlocal last_mark
        last_mark += engine.advance(clock() - last_mark)
        return engine.state.status is SessionStatus.ACTIVE

    while True:
        _render_question(console, engine.state)
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            engine.restart()
            exit_action = "quit"
            break
        if not catch_up():
            exit_action = "timeout"
            break
        command = parse_session_command(raw)
        if command is None:
            console.print("[red]Unrecognized command. Try again.[/]")
            continue
        exit_candidate = _apply_command(
            command, engine, console, input_provider, catch_up
        )
        if exit_candidate:
            exit_action = exit_candidate
            break

    if exit_action == "timeout":
        console.print(
            "\n[bold red]Time is up.[/] Your answers were submitted."
        )

    final_state = engine.state
    summary = engine.summary(pass_threshold=pass_threshold)
    result = PracticeResult(final_state, summary, exit_action)
    if final_state.status is SessionStatus.FINISHED:
        render_summary(console, summary, show_explanations=show_explanations)
    return result


def _apply_command(
    command: SessionCommand,
    engine: SessionEngine,
    console: Console,
    input_provider: InputProvider,
    catch_up: Callable[[], bool],
) -> ExitAction | None:
    state = engine.state
    index = state.current_index
    if command.type == "select" and command.value is not None:
        engine.submit_answer(index, command.value)
        console.print(f"Selected [bold]{OPTION_KEYS[command.value]}[/].")
        return None
    if command.type == "flag":
        engine.toggle_flag(index)
        return None
    if command.type == "next":
        engine.next()
        return None
    if command.type == "prev":
        engine.previous()
        return None
    if command.type == "goto" and command.value is not None:
        if not engine.navigate_to(command.value):
            console.print(
                f"[red]There is no question {command.value + 1}.[/red]"
            )
        return None
    if command.type == "quit":
        confirmed = _confirm(
            console,
            input_provider,
            "Are you sure you want to exit? Your progress will be lost.",
        )
        if not catch_up():
            return "timeout"
        if not confirmed:
            return None
        engine.restart()
        console.print("\n[bold yellow]Ending session without submission.[/]")
        return "quit"
    if command.type == "submit":
        unanswered = state.unanswered_count
        confirmed = not unanswered or _confirm(
            console,
            input_provider,
            f"You have {unanswered} unanswered question(s). "
            "Are you sure you want to submit?",
        )
        if not catch_up():
            return "timeout"
        if not confirmed:
            return None
        engine.submit()
        return "submitted"
    return None


def _render_question(console: Console, state: SessionState) -> None:
    question = state.current_question
    if question is None:
        return
    index = state.current_index
    header = Text.assemble(
        (f"Question {index + 1}", "bold cyan"),
        (f" / {state.total_questions}", "dim"),
        ("  (flagged)" if state.is_flagged(index) else "", "bold yellow"),
    )
    console.print()
    console.rule(header)
    console.print(Text(question.text, style="bold"))

    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="center", style="cyan")
    table.add_column("Choice")

    selected = state.selected_for(index)
    for position, option in enumerate(question.options):
        indicator = "•" if position == selected else " "
        choice_text = Text(option)
        if position == selected:
            choice_text.stylize("bold green")
        row_text = Text(indicator + " ")
        row_text += choice_text
        table.add_row(OPTION_KEYS[position], row_text)

    console.print(table)
    console.print(
        Text(
            f"Time left {format_clock(state.time_remaining)} | "
            f"Answered {state.answered_count}/{state.total_questions} | "
            "Commands: A-D, n (next), p (prev), f (flag), g N (go to), "
            "submit, quit",
            style="dim",
        )
    )


def summary_renderables(
    summary: SessionSummary, *, show_explanations: bool = True
) -> List[RenderableType]:
    """Build the score overview, response table and explanation panels."""

    overview = Table(
        show_header=False,
        box=box.MINIMAL_DOUBLE_HEAD,
        expand=False,
    )
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Total questions", str(summary.total_questions))
    overview.add_row("Answered", str(summary.answered_questions))
    overview.add_row("Correct", str(summary.correct_answers))
    overview.add_row("Score", f"{summary.percentage}%")
    overview.add_row(
        "Result",
        Text("PASSED", style="bold green")
        if summary.passed
        else Text("NEEDS IMPROVEMENT", style="bold red"),
    )
    renderables: List[RenderableType] = [overview]

    response_table = Table(title="Responses", box=box.SIMPLE, expand=True)
    response_table.add_column("#", justify="right")
    response_table.add_column("Question", overflow="fold")
    response_table.add_column("Your answer", overflow="fold")
    response_table.add_column("Correct answer", overflow="fold")
    response_table.add_column("Result", justify="center")

    for item in summary.items:
        label = item.question.text
        if item.flagged:
            label = f"{label} (flagged)"
        response_table.add_row(
            str(item.index + 1),
            Text(label),
            Text(item.selected_text or "Skipped"),
            Text(item.question.correct_option),
            "✅" if item.is_correct else "❌",
        )
    renderables.append(response_table)

    if show_explanations:
        for item in summary.items:
            if not item.question.explanation:
                continue
            renderables.append(
                Panel(
                    item.question.explanation,
                    title=f"Explanation: question {item.index + 1}",
                    border_style="green" if item.is_correct else "red",
                )
            )
    return renderables


def render_summary(
    console: Console,
    summary: SessionSummary,
    *,
    show_explanations: bool = True,
) -> None:
    console.print()
    console.rule(Text("Exam Results", style="bold magenta"))
    for renderable in summary_renderables(
        summary, show_explanations=show_explanations
    ):
        console.print(renderable)
