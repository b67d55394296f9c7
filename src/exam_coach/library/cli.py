"""CLI entry point for personal notes."""

from __future__ import annotations

import argparse
from datetime import datetime
from typing import Sequence

from rich import box
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..config import TomlConfigError
from ..core.workspace import WorkspaceError
from ..runtime import bootstrap, confirm, print_error, to_path
from .store import LibraryError, LibraryStore, Note


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coach notes",
        description="Write and manage personal study notes.",
    )
    parser.add_argument("--config", type=str, help="Path to exam-coach.toml.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    new_parser = subparsers.add_parser("new", help="Create a note.")
    new_parser.add_argument("--title", default="", help="Note title.")
    new_parser.add_argument("--content", default="", help="Note body.")

    subparsers.add_parser("list", help="List notes, newest first.")

    show_parser = subparsers.add_parser("show", help="Show a note.")
    show_parser.add_argument("id", help="Note id from `coach notes list`.")

    edit_parser = subparsers.add_parser("edit", help="Update a note.")
    edit_parser.add_argument("id", help="Note id from `coach notes list`.")
    edit_parser.add_argument("--title", help="Replace the title.")
    edit_parser.add_argument("--content", help="Replace the body.")

    delete_parser = subparsers.add_parser("delete", help="Delete a note.")
    delete_parser.add_argument("id", help="Note id from `coach notes list`.")
    delete_parser.add_argument(
        "--yes", action="store_true", help="Skip the confirmation prompt."
    )
    return parser


def _format_timestamp(milliseconds: int) -> str:
    return datetime.fromtimestamp(milliseconds / 1000).strftime(
        "%Y-%m-%d %H:%M"
    )


def _render_note(console: Console, note: Note) -> None:
    console.print(
        Panel(
            Markdown(note.content) if note.content else Text(""),
            title=note.display_title,
            subtitle=f"{note.id} | {_format_timestamp(note.last_modified)}",
            title_align="left",
        )
    )


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        runtime = bootstrap(config_path=to_path(args.config))
    except (TomlConfigError, WorkspaceError) as exc:
        print_error(str(exc))
        return 2

    store = LibraryStore(runtime.library_dir)
    console = Console()
    try:
        if args.command == "new":
            note = store.create_note(title=args.title, content=args.content)
            console.print(f"Created note {note.id}.")
            return 0
        if args.command == "list":
            return _handle_list(store, console)
        if args.command == "show":
            _render_note(console, store.get_note(args.id))
            return 0
        if args.command == "edit":
            if args.title is None and args.content is None:
                print_error("Nothing to change; pass --title or --content.")
                return 2
            note = store.update_note(
                args.id, title=args.title, content=args.content
            )
            console.print(f"Updated note {note.id}.")
            return 0
        if args.command == "delete":
            note = store.get_note(args.id)
            if not args.yes and not confirm(
                "Are you sure you want to delete this note?"
            ):
                console.print("Nothing deleted.")
                return 1
            store.delete_note(note.id)
            console.print(f"Deleted note {note.id}.")
            return 0
    except LibraryError as exc:
        print_error(str(exc))
        return 2
    parser.error("Command not implemented yet.")
    return 2


def _handle_list(store: LibraryStore, console: Console) -> int:
    notes = store.notes()
    if not notes:
        console.print("No notes yet. Create one with `coach notes new`.")
        return 0
    table = Table(title="Notes", box=box.SIMPLE, expand=False)
    table.add_column("Id")
    table.add_column("Title", overflow="fold")
    table.add_column("Last modified")
    for note in notes:
        table.add_row(
            note.id,
            Text(note.display_title),
            _format_timestamp(note.last_modified),
        )
    console.print(table)
    return 0
