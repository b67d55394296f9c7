from __future__ import annotations

import pytest

from exam_coach.core import ai
from exam_coach.core.ai import load_client
from exam_coach.core.errors import ConfigurationError


class RecordingOpenAI:
    instances: list["RecordingOpenAI"] = []

    def __init__(self, **kwargs) -> None:
        self.init_kwargs = kwargs
        RecordingOpenAI.instances.append(self)


@pytest.fixture(autouse=True)
def _patch_client(monkeypatch: pytest.MonkeyPatch):
    RecordingOpenAI.instances = []
    monkeypatch.setattr(ai, "OpenAI", RecordingOpenAI)
    monkeypatch.setattr(ai, "load_dotenv", lambda: False)


def test_load_client_requires_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(ConfigurationError) as exc:
        load_client()
    assert "OPENAI_API_KEY" in str(exc.value)
    assert RecordingOpenAI.instances == []


def test_load_client_returns_client_with_key(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    client = load_client()
    assert isinstance(client, RecordingOpenAI)
    assert client.init_kwargs == {"api_key": "test-key"}


def test_load_client_passes_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    client = load_client(timeout=30)
    assert client.init_kwargs == {"api_key": "test-key", "timeout": 30}


def test_load_client_reads_dotenv(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    def _load_dotenv():
        monkeypatch.setenv("OPENAI_API_KEY", "from-dotenv")
        return True

    monkeypatch.setattr(ai, "load_dotenv", _load_dotenv)
    assert load_client().init_kwargs["api_key"] == "from-dotenv"
