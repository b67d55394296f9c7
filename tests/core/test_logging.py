from __future__ import annotations

import json
import logging
from pathlib import Path

from exam_coach.core import logging as core_logging


def _close(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_configure_logger_writes_json(tmp_path):
    log_dir = tmp_path / "logs"
    logger, log_path = core_logging.configure_logger(
        "exam_coach.test",
        log_dir=log_dir,
        level="INFO",
        verbose=False,
        filename="test.log",
    )

    logger.info("hello world", extra={"ticket": 3, "topic": "Leases"})
    logger.debug("filtered out")

    class _Helper:
        def __repr__(self):  # noqa: D401
            return "helper"

    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception(
            "with error",
            extra={
                "value": {"items": [Path(log_dir), 1], "mapping": {"k": "v"}},
                "obj": _Helper(),
            },
        )
    for handler in logger.handlers:
        handler.flush()

    lines = log_path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["message"] == "hello world"
    assert first["level"] == "INFO"
    assert first["logger"] == "exam_coach.test"
    assert first["extra"] == {"ticket": 3, "topic": "Leases"}

    payload = json.loads(lines[-1])
    assert "ValueError: boom" in payload["exception"]
    assert payload["extra"]["obj"] == "helper"
    assert payload["extra"]["value"]["items"] == [str(log_dir), 1]

    _close(logger)


def test_configure_logger_default_filename_and_reuse(tmp_path):
    log_dir = tmp_path / "logs"
    logger, path = core_logging.configure_logger(
        "exam_coach.session", log_dir=log_dir
    )
    again, same_path = core_logging.configure_logger(
        "exam_coach.session", log_dir=log_dir
    )

    assert path == log_dir / "session.log"
    assert same_path == path
    assert again is logger
    assert len(logger.handlers) == 1
    assert logger.propagate is False

    _close(logger)


def test_configure_logger_toggles_console_handler(tmp_path):
    logger, _ = core_logging.configure_logger(
        "exam_coach.test_verbose",
        log_dir=tmp_path / "logs",
        verbose=True,
        filename="verbose.log",
    )

    def console_handlers():
        return [
            handler
            for handler in logger.handlers
            if getattr(handler, "_exam_coach_console", False)
        ]

    assert len(console_handlers()) == 1
    file_handler = next(
        handler
        for handler in logger.handlers
        if getattr(handler, "_exam_coach_file", False)
    )
    assert file_handler.level == logging.DEBUG

    core_logging.configure_logger(
        "exam_coach.test_verbose",
        log_dir=tmp_path / "logs",
        verbose=False,
        filename="verbose.log",
    )
    assert console_handlers() == []

    _close(logger)


def test_child_loggers_reach_the_package_handler(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "exam_coach", log_dir=tmp_path / "logs"
    )

    logging.getLogger("exam_coach.exam.session").info(
        "Session finished", extra={"score": 3}
    )
    for handler in logger.handlers:
        handler.flush()

    record = json.loads(log_path.read_text(encoding="utf-8").splitlines()[0])
    assert record["logger"] == "exam_coach.exam.session"
    assert record["extra"] == {"score": 3}

    _close(logger)
