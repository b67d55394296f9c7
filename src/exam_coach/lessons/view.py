"""Rich rendering of streamed and saved lessons."""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.text import Text

from ..core.errors import ConfigurationError, StreamInterruption
from .models import Lesson
from .stream import LessonStreamAssembler, StreamStatus

FragmentSource = Callable[[], Iterable[str]]


def render_lesson(
    lesson: Optional[Lesson], *, streaming: bool = False
) -> RenderableType:
    """Return a renderable with one panel per section."""

    if lesson is None:
        return Text("No lesson loaded.", style="dim")
    header = Text.assemble(
        (lesson.topic, "bold cyan"),
        (f"  {lesson.subject} | {lesson.level}", "dim"),
    )
    parts: List[RenderableType] = [header]
    for section in lesson.sections:
        parts.append(
            Panel(
                Markdown(section.content or " "),
                title=section.title,
                title_align="left",
                border_style="cyan",
            )
        )
    if streaming:
        parts.append(Text("Writing lesson...", style="italic dim"))
    elif not lesson.sections:
        parts.append(Text("The lesson has no sections yet.", style="dim"))
    return Group(*parts)


def run_lesson(
    assembler: LessonStreamAssembler,
    open_stream: FragmentSource,
    console: Console,
    *,
    topic: str,
    subject: str,
    level: str,
) -> Optional[Lesson]:
    """Stream a lesson into ``assembler`` while rendering it live.

    Ctrl+C cancels the stream; sections received so far stay on screen.
    """

    ticket = assembler.begin(topic, subject, level)
    with Live(
        render_lesson(assembler.lesson, streaming=True),
        console=console,
        refresh_per_second=8,
    ) as live:
        try:
            fragments = open_stream()
        except ConfigurationError:
            assembler.cancel()
            raise
        except StreamInterruption as exc:
            assembler.interrupt(ticket, exc)
        else:
            try:
                assembler.consume(
                    ticket,
                    fragments,
                    on_update=lambda lesson: live.update(
                        render_lesson(lesson, streaming=True)
                    ),
                )
            except KeyboardInterrupt:
                assembler.cancel()
        live.update(render_lesson(assembler.lesson))

    if assembler.status is StreamStatus.INTERRUPTED:
        console.print(
            Panel(
                str(assembler.error),
                title="Lesson interrupted",
                border_style="red",
            )
        )
    elif assembler.status is StreamStatus.CANCELLED:
        console.print("[bold yellow]Lesson cancelled.[/]")
    return assembler.lesson
