from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

from fixtures import OpenAIStub, WorkspaceBuilder  # noqa: E402

ROOT = TESTS_DIR.parent
for extra in (ROOT, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)


@pytest.fixture
def openai_stub() -> OpenAIStub:
    """Fresh chat completion stub; queue replies before use."""

    return OpenAIStub()


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def workspace_env(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Path:
    """Point the workspace at a tmp directory and clear config overrides."""

    home = tmp_path / "coach-home"
    monkeypatch.setenv("EXAM_COACH_DATA_HOME", str(home))
    monkeypatch.delenv("EXAM_COACH_CONFIG", raising=False)
    return home


@pytest.fixture(autouse=True)
def _reset_coach_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger("exam_coach")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
