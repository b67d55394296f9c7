"""CLI entry points for workspace bootstrap and configuration files."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Mapping, Sequence

from . import config as config_mod
from .core import workspace as workspace_mod
from .runtime import print_error, to_path


def _build_init_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coach init",
        description=(
            "Bootstrap the exam-coach workspace and ensure required "
            "subdirectories exist."
        ),
    )
    parser.add_argument(
        "--path",
        type=Path,
        help=(
            "Override the workspace root (defaults to EXAM_COACH_DATA_HOME "
            "or ~/.exam-coach-data)."
        ),
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational output on success.",
    )
    return parser


def _format_created(created: Mapping[str, bool], key: str) -> str:
    return "created" if created.get(key, False) else "exists"


def init_main(argv: Sequence[str] | None = None) -> int:
    parser = _build_init_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        layout = workspace_mod.ensure_workspace(path=args.path)
    except workspace_mod.WorkspaceError as exc:
        print_error(str(exc))
        return 2

    if args.quiet:
        return 0

    created = layout.created
    home_status = _format_created(created, "home")
    lines = [f"Workspace ready at {layout.home} ({home_status})"]

    if layout.directories:
        lines.append("Subdirectories:")
        width = max(len(name) for name in layout.directories)
        for name, directory in layout.items():
            status = _format_created(created, name)
            lines.append(f"  {name.ljust(width)}  {directory} ({status})")

    sys.stdout.write("\n".join(lines) + "\n")
    return 0


def _build_config_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coach config",
        description="Manage the exam-coach configuration file.",
    )
    subparsers = parser.add_subparsers(dest="config_command", required=True)

    init_parser = subparsers.add_parser(
        "init",
        help="Write the default configuration template.",
    )
    init_parser.add_argument(
        "--path",
        type=str,
        help="Optional destination for the config TOML.",
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file if present.",
    )

    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate the active configuration file.",
    )
    validate_parser.add_argument(
        "--path",
        type=str,
        help="Path to the config TOML (defaults to the workspace config).",
    )
    validate_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress success output; errors still print to stderr.",
    )

    path_parser = subparsers.add_parser(
        "path",
        help="Print the resolved config path.",
    )
    path_parser.add_argument(
        "--path",
        type=str,
        help="Optional path override to resolve/normalise.",
    )
    return parser


def _handle_config_init(args: argparse.Namespace) -> int:
    try:
        target = config_mod.resolve_config_path(
            explicit_path=to_path(args.path)
        )
        config_mod.write_template(target, overwrite=args.force)
    except (config_mod.TomlConfigError, workspace_mod.WorkspaceError) as exc:
        print_error(str(exc))
        return 2
    print(f"Wrote config template to {target}")
    return 0


def _handle_config_validate(args: argparse.Namespace) -> int:
    try:
        cfg = config_mod.load_config(
            explicit_path=to_path(args.path), required=True
        )
    except (config_mod.TomlConfigError, workspace_mod.WorkspaceError) as exc:
        print_error(str(exc))
        return 2
    if not args.quiet:
        print("Configuration OK")
        print(f"  model: {cfg.ai.model}")
        print(f"  exam questions: {cfg.exam.question_count}")
        print(f"  pass threshold: {cfg.exam.pass_threshold}%")
        print(f"  log level: {cfg.logging.level}")
    return 0


def _handle_config_path(args: argparse.Namespace) -> int:
    try:
        path = config_mod.resolve_config_path(
            explicit_path=to_path(args.path)
        )
    except workspace_mod.WorkspaceError as exc:
        print_error(str(exc))
        return 2
    print(path)
    return 0


def config_main(argv: Sequence[str] | None = None) -> int:
    parser = _build_config_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    handlers = {
        "init": _handle_config_init,
        "validate": _handle_config_validate,
        "path": _handle_config_path,
    }
    return handlers[args.config_command](args)
