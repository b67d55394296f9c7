"""CLI entry points for streamed lessons and the saved-lesson library."""

from __future__ import annotations

import argparse
from typing import Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from ..config import TomlConfigError
from ..core.ai import load_client
from ..core.errors import ConfigurationError
from ..core.workspace import WorkspaceError
from ..exam.cli import start_practice
from ..exam.models import (
    DifficultyLevel,
    ExamConfig,
    Language,
    LearningStyle,
    Subject,
)
from ..library.store import LibraryError, LibraryStore
from ..runtime import Runtime, bootstrap, confirm, print_error, to_path
from .generator import generate_lesson_stream
from .stream import LessonStreamAssembler, StreamStatus
from .view import render_lesson, run_lesson


def _read_command() -> str:
    return input("> ")


def _build_lesson_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coach lesson",
        description="Stream an AI-written lesson on a topic.",
    )
    parser.add_argument("topic", nargs="+", help="Topic to study.")
    parser.add_argument(
        "--subject",
        choices=[item.value for item in Subject],
        default=Subject.ACCOUNTING.value,
    )
    parser.add_argument(
        "--level",
        choices=[item.value for item in DifficultyLevel],
        default=DifficultyLevel.FOUNDATION.value,
    )
    parser.add_argument(
        "--style",
        choices=[item.value for item in LearningStyle],
        default=LearningStyle.CONCEPTUAL.value,
        help="Teaching style for the lesson.",
    )
    parser.add_argument(
        "--language",
        choices=[item.value for item in Language],
        default=Language.ENGLISH.value,
    )
    parser.add_argument(
        "--save",
        action="store_true",
        help="Bookmark the lesson in the library once it has arrived.",
    )
    parser.add_argument(
        "--quiz",
        action="store_true",
        help="Start a practice quiz on the topic after the lesson.",
    )
    parser.add_argument("--config", type=str, help="Path to exam-coach.toml.")
    return parser


def _build_library_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coach lessons",
        description="Browse and manage saved lessons.",
    )
    parser.add_argument("--config", type=str, help="Path to exam-coach.toml.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List saved lessons.")

    show_parser = subparsers.add_parser("show", help="Show a saved lesson.")
    show_parser.add_argument(
        "position", type=int, help="Position from `coach lessons list`."
    )

    delete_parser = subparsers.add_parser(
        "delete", help="Delete a saved lesson."
    )
    delete_parser.add_argument(
        "position", type=int, help="Position from `coach lessons list`."
    )
    delete_parser.add_argument(
        "--yes", action="store_true", help="Skip the confirmation prompt."
    )
    return parser


def _bootstrap(config_value: str | None) -> Runtime | None:
    try:
        return bootstrap(config_path=to_path(config_value))
    except (TomlConfigError, WorkspaceError) as exc:
        print_error(str(exc))
        return None


def lesson_main(argv: Sequence[str] | None = None) -> int:
    parser = _build_lesson_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    runtime = _bootstrap(args.config)
    if runtime is None:
        return 2
    settings = runtime.config
    topic = " ".join(args.topic).strip()
    try:
        client = load_client(timeout=settings.ai.request_timeout_seconds)
    except ConfigurationError as exc:
        print_error(str(exc))
        return 2

    console = Console()
    assembler = LessonStreamAssembler(logger=runtime.logger)
    try:
        lesson = run_lesson(
            assembler,
            lambda: generate_lesson_stream(
                args.subject,
                args.level,
                topic,
                args.style,
                args.language,
                client=client,
                settings=settings.ai,
            ),
            console,
            topic=topic,
            subject=args.subject,
            level=args.level,
        )
    except ConfigurationError as exc:
        print_error(str(exc))
        return 2

    if lesson is None or not lesson.sections:
        return 1

    if args.save:
        store = LibraryStore(runtime.library_dir)
        try:
            if not store.is_bookmarked(lesson):
                store.toggle_bookmark(lesson)
        except LibraryError as exc:
            print_error(str(exc))
            return 2
        console.print("[green]Saved lesson to the library.[/]")

    if args.quiz:
        practice = settings.practice
        result = start_practice(
            ExamConfig.from_lesson(
                lesson,
                args.language,
                question_count=practice.question_count,
                duration_minutes=practice.duration_minutes,
            ),
            runtime=runtime,
            client=client,
            console=console,
            input_provider=_read_command,
        )
        if result.exit_action == "failed":
            return 1

    return 0 if assembler.status is StreamStatus.COMPLETE else 1


def library_main(argv: Sequence[str] | None = None) -> int:
    parser = _build_library_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    runtime = _bootstrap(args.config)
    if runtime is None:
        return 2
    store = LibraryStore(runtime.library_dir)
    console = Console()
    try:
        if args.command == "list":
            return _handle_list(store, console)
        if args.command == "show":
            lesson = store.get_saved_lesson(args.position - 1)
            console.print(render_lesson(lesson))
            return 0
        if args.command == "delete":
            lesson = store.get_saved_lesson(args.position - 1)
            if not args.yes and not confirm(
                f"Delete saved lesson '{lesson.topic}'?"
            ):
                console.print("Nothing deleted.")
                return 1
            store.delete_saved_lesson(args.position - 1)
            console.print(f"Deleted saved lesson '{lesson.topic}'.")
            return 0
    except LibraryError as exc:
        print_error(str(exc))
        return 2
    parser.error("Command not implemented yet.")
    return 2


def _handle_list(store: LibraryStore, console: Console) -> int:
    lessons = store.saved_lessons()
    if not lessons:
        console.print("No saved lessons yet.")
        return 0
    table = Table(title="Saved lessons", box=box.SIMPLE, expand=False)
    table.add_column("#", justify="right")
    table.add_column("Topic", overflow="fold")
    table.add_column("Subject")
    table.add_column("Level")
    table.add_column("Sections", justify="right")
    for position, lesson in enumerate(lessons, start=1):
        table.add_row(
            str(position),
            lesson.topic,
            lesson.subject,
            lesson.level,
            str(len(lesson.sections)),
        )
    console.print(table)
    return 0
