"""CLI entry points for the timed exam and practice sessions."""

from __future__ import annotations

import argparse
from typing import Any, Sequence

from rich.console import Console

from ..config import TomlConfigError
from ..core.ai import load_client
from ..core.errors import ConfigurationError
from ..core.workspace import WorkspaceError
from ..runtime import Runtime, bootstrap, print_error, to_path
from .generator import make_question_generator
from .models import DifficultyLevel, ExamConfig, Language, Subject
from .practice import (
    InputProvider,
    PracticeResult,
    render_summary,
    run_practice_session,
)
from .session import SessionEngine, SessionStatus
from .view import ExamApp


def _read_command() -> str:
    return input("> ")


def _usable_count(count: int) -> bool:
    if count >= 1:
        return True
    print_error("Question count must be at least 1.")
    return False


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--subject",
        choices=[item.value for item in Subject],
        default=Subject.ACCOUNTING.value,
        help="Exam subject.",
    )
    parser.add_argument(
        "--level",
        choices=[item.value for item in DifficultyLevel],
        default=DifficultyLevel.FOUNDATION.value,
        help="Exam level.",
    )
    parser.add_argument(
        "--count",
        type=int,
        help="Number of questions (defaults to the configured count).",
    )
    parser.add_argument(
        "--topic",
        help="Optional topic to focus the questions on.",
    )
    parser.add_argument(
        "--language",
        choices=[item.value for item in Language],
        default=Language.ENGLISH.value,
        help="Language for questions and explanations.",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to exam-coach.toml (defaults to the workspace config).",
    )


def _build_exam_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coach exam",
        description=(
            "Run a timed exam in the terminal. Duration scales with the "
            "number of questions."
        ),
    )
    _add_common_arguments(parser)
    return parser


def _build_practice_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coach practice",
        description="Run a short timed practice quiz with Rich prompts.",
    )
    _add_common_arguments(parser)
    parser.add_argument(
        "--minutes",
        type=int,
        help="Time limit in minutes (defaults to the configured duration).",
    )
    return parser


def _bootstrap(config_value: str | None) -> Runtime | None:
    try:
        return bootstrap(config_path=to_path(config_value))
    except (TomlConfigError, WorkspaceError) as exc:
        print_error(str(exc))
        return None


def start_practice(
    exam_config: ExamConfig,
    *,
    runtime: Runtime,
    client: Any,
    console: Console,
    input_provider: InputProvider,
) -> PracticeResult:
    """Run a practice session for ``exam_config`` against ``client``."""

    generator = make_question_generator(
        client=client, settings=runtime.config.ai
    )
    engine = SessionEngine(generator, logger=runtime.logger)
    return run_practice_session(
        engine,
        exam_config,
        console,
        input_provider,
        pass_threshold=runtime.config.exam.pass_threshold,
    )


def exam_main(argv: Sequence[str] | None = None) -> int:
    parser = _build_exam_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    runtime = _bootstrap(args.config)
    if runtime is None:
        return 2
    settings = runtime.config
    count = (
        args.count
        if args.count is not None
        else settings.exam.question_count
    )
    if not _usable_count(count):
        return 2
    try:
        exam_config = ExamConfig.for_simulation(
            args.subject,
            args.level,
            count,
            args.language,
            minutes_per_question=settings.exam.minutes_per_question,
            topic=args.topic,
        ).validate()
        client = load_client(timeout=settings.ai.request_timeout_seconds)
    except ConfigurationError as exc:
        print_error(str(exc))
        return 2

    runtime.logger.info(
        "Launching exam",
        extra={
            "subject": exam_config.subject,
            "count": exam_config.question_count,
        },
    )
    app = ExamApp(
        exam_config,
        make_question_generator(client=client, settings=settings.ai),
        engine=SessionEngine(logger=runtime.logger),
        pass_threshold=settings.exam.pass_threshold,
    )
    app.run()
    state = app.engine.state
    if state.status is SessionStatus.FINISHED:
        render_summary(
            Console(),
            app.engine.summary(pass_threshold=settings.exam.pass_threshold),
        )
        return 0
    if state.error:
        print_error(state.error)
        return 1
    return 0


def practice_main(argv: Sequence[str] | None = None) -> int:
    parser = _build_practice_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    runtime = _bootstrap(args.config)
    if runtime is None:
        return 2
    settings = runtime.config
    count = (
        args.count
        if args.count is not None
        else settings.practice.question_count
    )
    if not _usable_count(count):
        return 2
    try:
        exam_config = ExamConfig(
            subject=args.subject,
            level=args.level,
            question_count=count,
            duration_minutes=(
                args.minutes
                if args.minutes is not None
                else settings.practice.duration_minutes
            ),
            topic=args.topic,
            language=args.language,
        ).validate()
        client = load_client(timeout=settings.ai.request_timeout_seconds)
    except ConfigurationError as exc:
        print_error(str(exc))
        return 2

    result = start_practice(
        exam_config,
        runtime=runtime,
        client=client,
        console=Console(),
        input_provider=_read_command,
    )
    return 1 if result.exit_action == "failed" else 0
