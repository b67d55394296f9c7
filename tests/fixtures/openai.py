"""OpenAI client stubs shared across tests.

Production code only touches ``client.chat.completions.create``. The stub
mirrors that surface for both plain and ``stream=True`` requests, records
every call, and replays queued replies so tests run offline.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from types import SimpleNamespace
from typing import (
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
)


@dataclass
class Choice:
    """Represents a single completion choice returned by the stub."""

    content: Optional[str]

    @property
    def message(self) -> SimpleNamespace:
        return SimpleNamespace(content=self.content)


StreamPlan = Tuple[Sequence[Optional[str]], Optional[Exception]]


def stream_chunk(text: Optional[str]) -> SimpleNamespace:
    """Build one streamed chunk carrying ``text`` as its delta."""

    return SimpleNamespace(
        choices=[SimpleNamespace(delta=SimpleNamespace(content=text))]
    )


class OpenAIStub:
    """Lightweight stand-in for the ``OpenAI`` chat completion client."""

    def __init__(
        self,
        *,
        side_effect: Optional[Callable[[Dict[str, Any]], Any]] = None,
    ) -> None:
        self.side_effect = side_effect
        self.calls: List[Dict[str, Any]] = []
        self.responses: List[Optional[str]] = []
        self.streams: List[StreamPlan] = []
        self._chat = SimpleNamespace(
            completions=SimpleNamespace(create=self._create_completion)
        )

    @property
    def chat(self) -> SimpleNamespace:
        return self._chat

    def queue_response(self, content: Optional[str]) -> None:
        """Append a response string returned on the next plain call."""

        self.responses.append(content)

    def queue_questions(self, records: Sequence[Dict[str, Any]]) -> None:
        self.queue_response(json.dumps(list(records)))

    def queue_stream(
        self,
        fragments: Sequence[Optional[str]],
        *,
        error: Optional[Exception] = None,
    ) -> None:
        """Queue fragments for the next ``stream=True`` call.

        When ``error`` is given it is raised after the last fragment.
        """

        self.streams.append((list(fragments), error))

    def _create_completion(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.side_effect:
            result = self.side_effect(kwargs)
            if result is not None:
                return result
        if kwargs.get("stream"):
            plan: StreamPlan = (
                self.streams.pop(0) if self.streams else ([], None)
            )
            return _iter_stream(*plan)
        content = self.responses.pop(0) if self.responses else ""
        return SimpleNamespace(choices=[Choice(content)])


def _iter_stream(
    fragments: Sequence[Optional[str]], error: Optional[Exception]
) -> Iterator[SimpleNamespace]:
    for fragment in fragments:
        yield stream_chunk(fragment)
    if error is not None:
        raise error
