"""Incremental assembly of streamed lesson text into sections.

Lessons arrive as Markdown fragments. Every fragment is appended to one
buffer and the whole buffer is parsed again, so the section list is always
what the text received so far says, whatever the fragment boundaries were.
Re-parsing is linear in the buffer size, which is fine for lesson-sized text.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Iterable, List, Optional

from ..core.errors import ConfigurationError, StreamInterruption
from .models import Lesson, LessonSection

__all__ = [
    "SECTION_MARKER",
    "StreamStatus",
    "LessonStreamAssembler",
    "parse_sections",
]

SECTION_MARKER = "## "


def parse_sections(buffer: str) -> tuple[LessonSection, ...]:
    """Split ``buffer`` into sections at level-2 Markdown headings.

    Text before the first heading is dropped. The last section is returned
    as-is even if more of it is still on the way.
    """

    sections: List[LessonSection] = []
    title: Optional[str] = None
    body: List[str] = []

    for line in buffer.split("\n"):
        stripped = line.strip()
        if stripped.startswith(SECTION_MARKER):
            if title is not None:
                sections.append(LessonSection(title, "\n".join(body).strip()))
            title = stripped[len(SECTION_MARKER):].strip()
            body = []
        elif title is not None:
            body.append(line)

    if title is not None:
        sections.append(LessonSection(title, "\n".join(body).strip()))
    return tuple(sections)


class StreamStatus(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETE = "complete"
    INTERRUPTED = "interrupted"
    CANCELLED = "cancelled"


class LessonStreamAssembler:
    """Own the buffer and section list of the lesson being streamed.

    ``begin`` returns a ticket; fragments and completion signals carrying an
    older ticket, or arriving after ``cancel``, are ignored.
    """

    def __init__(self, *, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._buffer = ""
        self._lesson: Optional[Lesson] = None
        self._last_ticket = 0
        self._active: Optional[int] = None
        self._status = StreamStatus.IDLE
        self._error: Optional[StreamInterruption] = None

    @property
    def buffer(self) -> str:
        return self._buffer

    @property
    def lesson(self) -> Optional[Lesson]:
        return self._lesson

    @property
    def sections(self) -> tuple[LessonSection, ...]:
        return self._lesson.sections if self._lesson else ()

    @property
    def status(self) -> StreamStatus:
        return self._status

    @property
    def error(self) -> Optional[StreamInterruption]:
        return self._error

    @property
    def is_streaming(self) -> bool:
        return self._status is StreamStatus.STREAMING

    def begin(self, topic: str, subject: str, level: str) -> int:
        """Start a fresh lesson, invalidating any stream still in flight."""

        if not topic or not topic.strip():
            raise ConfigurationError("A lesson topic is required.")
        self._last_ticket += 1
        self._active = self._last_ticket
        self._buffer = ""
        self._lesson = Lesson(
            topic=topic.strip(), subject=subject, level=level
        )
        self._status = StreamStatus.STREAMING
        self._error = None
        self._logger.info(
            "Lesson stream started",
            extra={"ticket": self._active, "topic": self._lesson.topic},
        )
        return self._active

    def feed(self, ticket: int, fragment: str) -> tuple[LessonSection, ...]:
        """Append ``fragment`` and return the freshly parsed sections."""

        if not self._accepts(ticket):
            self._logger.debug(
                "Ignored fragment for inactive stream",
                extra={"ticket": ticket},
            )
            return self.sections
        if not fragment:
            return self.sections
        self._buffer += fragment
        sections = parse_sections(self._buffer)
        assert self._lesson is not None
        self._lesson = self._lesson.with_sections(sections)
        return sections

    def finish(self, ticket: int) -> bool:
        if not self._accepts(ticket):
            return False
        self._active = None
        self._status = StreamStatus.COMPLETE
        self._logger.info(
            "Lesson stream complete",
            extra={
                "ticket": ticket,
                "sections": len(self.sections),
                "chars": len(self._buffer),
            },
        )
        return True

    def interrupt(self, ticket: int, error: Exception | str) -> bool:
        """Stop the stream after a backend failure, keeping what arrived."""

        if not self._accepts(ticket):
            return False
        if not isinstance(error, StreamInterruption):
            error = StreamInterruption(str(error))
        self._active = None
        self._status = StreamStatus.INTERRUPTED
        self._error = error
        self._logger.warning(
            "Lesson stream interrupted",
            extra={
                "ticket": ticket,
                "error": str(error),
                "sections": len(self.sections),
            },
        )
        return True

    def cancel(self) -> bool:
        """Make any further fragments of the current stream inert."""

        if self._active is None:
            return False
        self._logger.info(
            "Lesson stream cancelled", extra={"ticket": self._active}
        )
        self._active = None
        self._status = StreamStatus.CANCELLED
        return True

    def consume(
        self,
        ticket: int,
        fragments: Iterable[str],
        *,
        on_update: Optional[Callable[[Lesson], None]] = None,
    ) -> Optional[Lesson]:
        """Feed every fragment in order, then finish or record the failure.

        Stops early once the stream is cancelled or superseded.
        """

        iterator = iter(fragments)
        try:
            for fragment in iterator:
                if not self._accepts(ticket):
                    break
                self.feed(ticket, fragment)
                if on_update is not None and self._lesson is not None:
                    on_update(self._lesson)
        except StreamInterruption as exc:
            self.interrupt(ticket, exc)
        except Exception as exc:
            self._logger.exception("Lesson stream raised")
            self.interrupt(
                ticket, StreamInterruption(f"Connection interrupted: {exc}")
            )
        else:
            self.finish(ticket)
        finally:
            close = getattr(iterator, "close", None)
            if callable(close):
                close()
        return self._lesson

    def _accepts(self, ticket: int) -> bool:
        return self._active is not None and ticket == self._active
