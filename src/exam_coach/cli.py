"""Unified CLI entry point for exam-coach."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from importlib import import_module, metadata
from typing import Callable, Mapping, Optional, Sequence


CommandHandler = Callable[[Sequence[str]], int]


@dataclass(frozen=True)
class CommandSpec:
    """Represents a coach subcommand."""

    name: str
    summary: str
    handler: Optional[CommandHandler] = None
    is_tui: bool = False


def _module_command(module_name: str, func_name: str) -> CommandHandler:
    return lambda argv: _run_module_command(module_name, func_name, argv)


_COMMAND_SPECS: Sequence[CommandSpec] = (
    CommandSpec(
        name="init",
        summary="Bootstrap the exam-coach workspace.",
        handler=_module_command("exam_coach.workspace_cli", "init_main"),
    ),
    CommandSpec(
        name="config",
        summary="Write, validate or locate the configuration file.",
        handler=_module_command("exam_coach.workspace_cli", "config_main"),
    ),
    CommandSpec(
        name="exam",
        summary="Take a timed exam simulation.",
        is_tui=True,
        handler=_module_command("exam_coach.exam.cli", "exam_main"),
    ),
    CommandSpec(
        name="practice",
        summary="Run a short timed practice quiz in the console.",
        handler=_module_command("exam_coach.exam.cli", "practice_main"),
    ),
    CommandSpec(
        name="lesson",
        summary="Stream a lesson on a topic, then save it or quiz on it.",
        handler=_module_command("exam_coach.lessons.cli", "lesson_main"),
    ),
    CommandSpec(
        name="lessons",
        summary="Browse and manage saved lessons.",
        handler=_module_command("exam_coach.lessons.cli", "library_main"),
    ),
    CommandSpec(
        name="notes",
        summary="Write and manage personal study notes.",
        handler=_module_command("exam_coach.library.cli", "main"),
    ),
)

COMMANDS: Mapping[str, CommandSpec] = {
    spec.name: spec for spec in _COMMAND_SPECS
}


def _command_name_width() -> int:
    return max(len(spec.name) for spec in _COMMAND_SPECS) if COMMANDS else 0


def format_command_table() -> str:
    """Return a formatted command table for help output."""

    width = _command_name_width()
    lines = ["Available commands:"]
    for spec in _COMMAND_SPECS:
        name = spec.name.ljust(width)
        suffix = " (TUI)" if spec.is_tui else ""
        lines.append(f"  {name}  {spec.summary}{suffix}")
    return "\n".join(lines)


def format_usage() -> str:
    """Build the top-level usage banner with command listings."""

    parts = [
        "Usage: coach <command> [args...]",
        "Run `coach list` for commands or `coach help <name>` for details.",
        "",
        format_command_table(),
    ]
    return "\n".join(parts)


def _print(
    text: str, *, stream: Optional[Callable[[str], None]] = None
) -> None:
    target = stream if stream is not None else sys.stdout.write
    if text:
        target(text + "\n")


def _print_usage(to: Optional[Callable[[str], None]] = None) -> None:
    _print(format_usage(), stream=to)


def _handle_list() -> int:
    _print(format_command_table())
    return 0


def _handle_version() -> int:
    try:
        version = metadata.version("exam-coach")
    except metadata.PackageNotFoundError:
        version = "unknown"
    _print(version)
    return 0


def _handle_help(argv: Sequence[str]) -> int:
    if not argv:
        _print_usage()
        return 0

    command = argv[0]
    spec = COMMANDS.get(command)
    if not spec:
        _print(f"Unknown command '{command}'.", stream=sys.stderr.write)
        _print(format_command_table(), stream=sys.stderr.write)
        return 2

    _print(f"{spec.name}: {spec.summary}")
    _print(f"Run `coach {spec.name} --help` for command options.")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(argv if argv is not None else sys.argv[1:])

    if not args:
        _print_usage()
        return 2

    head, *tail = args

    if head in ("-h", "--help"):
        _print_usage()
        return 0

    if head in ("-V", "--version", "version"):
        return _handle_version()

    if head == "list":
        return _handle_list()

    if head == "help":
        return _handle_help(tail)

    spec = COMMANDS.get(head)
    if spec and spec.handler:
        return spec.handler(tail)

    _print(f"Unknown command '{head}'.", stream=sys.stderr.write)
    _print(format_command_table(), stream=sys.stderr.write)
    return 2


def _run_module_command(
    module_name: str, func_name: str, argv: Sequence[str]
) -> int:
    target = getattr(import_module(module_name), func_name)
    try:
        result = target(list(argv))
    except SystemExit as exc:
        return _exit_code(exc.code)
    return result if isinstance(result, int) else 0


def _exit_code(code: object) -> int:
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    _print(str(code), stream=sys.stderr.write)
    return 1


if __name__ == "__main__":  # pragma: no cover - manual invocation guard
    raise SystemExit(main())
