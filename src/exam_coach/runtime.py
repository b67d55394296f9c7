"""Start-up shared by the exam-coach subcommands."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from rich.console import Console
from rich.text import Text

from .config import CoachConfig, load_config
from .core.logging import configure_logger
from .core.workspace import WorkspaceLayout, ensure_workspace

LOGGER_NAME = "exam_coach"


@dataclass(frozen=True)
class Runtime:
    config: CoachConfig
    layout: WorkspaceLayout
    logger: logging.Logger
    log_path: Path

    @property
    def library_dir(self) -> Path:
        return self.layout.path_for("library")


def bootstrap(
    *,
    config_path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Runtime:
    """Prepare the workspace, load settings and attach the log handlers.

    Raises ``TomlConfigError`` or ``WorkspaceError`` for the caller to print.
    """

    layout = ensure_workspace(env=env)
    config = load_config(explicit_path=config_path, env=env, layout=layout)
    logger, log_path = configure_logger(
        LOGGER_NAME,
        log_dir=layout.path_for("logs"),
        level=config.logging.level,
        verbose=config.logging.verbose,
    )
    return Runtime(
        config=config, layout=layout, logger=logger, log_path=log_path
    )


def to_path(value: str | None) -> Path | None:
    if value is None:
        return None
    return Path(value).expanduser().resolve()


def print_error(message: str) -> None:
    Console(stderr=True).print(Text(message, style="bold red"))


def confirm(prompt: str) -> bool:
    """Ask a yes/no question on stdin; anything but yes declines."""

    try:
        reply = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return reply.strip().lower() in {"y", "yes"}
