"""Configuration management for exam-coach.

Settings live in a TOML file grouped by concern. Values from the file are
merged over built-in defaults (unknown keys are rejected) and validated into
frozen dataclasses before any command uses them.
"""

from __future__ import annotations

import copy
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional

from .core.workspace import WorkspaceLayout, ensure_workspace

__all__ = [
    "CONFIG_FILENAME",
    "CONFIG_PATH_ENV",
    "TomlConfigError",
    "AISettings",
    "ExamSettings",
    "PracticeSettings",
    "LoggingSettings",
    "CoachConfig",
    "DEFAULT_AI_SETTINGS",
    "load_config",
    "resolve_config_path",
    "config_template",
    "write_template",
]

CONFIG_FILENAME = "exam-coach.toml"
CONFIG_PATH_ENV = "EXAM_COACH_CONFIG"


class TomlConfigError(RuntimeError):
    """Raised when config IO or validation fails."""


@dataclass(frozen=True)
class AISettings:
    model: str
    temperature: float
    max_tokens: int
    request_timeout_seconds: int


@dataclass(frozen=True)
class ExamSettings:
    question_count: int
    minutes_per_question: float
    pass_threshold: int


@dataclass(frozen=True)
class PracticeSettings:
    question_count: int
    duration_minutes: int


@dataclass(frozen=True)
class LoggingSettings:
    level: str
    verbose: bool


@dataclass(frozen=True)
class CoachConfig:
    ai: AISettings
    exam: ExamSettings
    practice: PracticeSettings
    logging: LoggingSettings


def _merge_dict(
    base: MutableMapping[str, Any],
    override: Mapping[str, Any],
    *,
    path: str = "",
) -> None:
    for key, value in override.items():
        dotted = f"{path}{key}"
        if key not in base:
            raise TomlConfigError(f"Unknown configuration key '{dotted}'.")
        if isinstance(base[key], MutableMapping):
            if not isinstance(value, Mapping):
                raise TomlConfigError(
                    "Expected table for '{0}', found {1}.".format(
                        dotted, type(value).__name__
                    )
                )
            _merge_dict(base[key], value, path=f"{dotted}.")
        else:
            base[key] = value


def _require_positive_int(value: Any, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise TomlConfigError(f"'{field}' must be a positive integer.")
    return value


def _require_bool(value: Any, *, field: str) -> bool:
    if not isinstance(value, bool):
        raise TomlConfigError(f"'{field}' must be a boolean.")
    return value


def _require_number_range(
    value: Any, *, field: str, min_value: float, max_value: float
) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TomlConfigError(f"'{field}' must be a number.")
    number = float(value)
    if not (min_value <= number <= max_value):
        raise TomlConfigError(
            f"'{field}' must be between {min_value} and {max_value}."
        )
    return number


def _require_string(value: Any, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise TomlConfigError(f"'{field}' must be a non-empty string.")
    return value.strip()


def _build_ai(section: Mapping[str, Any]) -> AISettings:
    return AISettings(
        model=_require_string(section.get("model"), field="ai.model"),
        temperature=_require_number_range(
            section.get("temperature"),
            field="ai.temperature",
            min_value=0.0,
            max_value=2.0,
        ),
        max_tokens=_require_positive_int(
            section.get("max_tokens"), field="ai.max_tokens"
        ),
        request_timeout_seconds=_require_positive_int(
            section.get("request_timeout_seconds"),
            field="ai.request_timeout_seconds",
        ),
    )


def _build_exam(section: Mapping[str, Any]) -> ExamSettings:
    minutes = _require_number_range(
        section.get("minutes_per_question"),
        field="exam.minutes_per_question",
        min_value=0.1,
        max_value=60.0,
    )
    threshold = _require_number_range(
        section.get("pass_threshold"),
        field="exam.pass_threshold",
        min_value=0,
        max_value=100,
    )
    return ExamSettings(
        question_count=_require_positive_int(
            section.get("question_count"), field="exam.question_count"
        ),
        minutes_per_question=minutes,
        pass_threshold=int(threshold),
    )


def _build_practice(section: Mapping[str, Any]) -> PracticeSettings:
    return PracticeSettings(
        question_count=_require_positive_int(
            section.get("question_count"), field="practice.question_count"
        ),
        duration_minutes=_require_positive_int(
            section.get("duration_minutes"),
            field="practice.duration_minutes",
        ),
    )


def _build_logging(section: Mapping[str, Any]) -> LoggingSettings:
    level = _require_string(section.get("level"), field="logging.level")
    level = level.upper()
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise TomlConfigError(
            "logging.level must be one of "
            "DEBUG, INFO, WARNING, ERROR, CRITICAL."
        )
    verbose = _require_bool(section.get("verbose"), field="logging.verbose")
    return LoggingSettings(level=level, verbose=verbose)


def _build_config(tree: Mapping[str, Any]) -> CoachConfig:
    return CoachConfig(
        ai=_build_ai(tree["ai"]),
        exam=_build_exam(tree["exam"]),
        practice=_build_practice(tree["practice"]),
        logging=_build_logging(tree["logging"]),
    )


def _load_toml(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("rb") as fh:
            return tomllib.load(fh)
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Failed to parse config TOML: {exc}") from exc


def resolve_config_path(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
    layout: WorkspaceLayout | None = None,
) -> Path:
    """Return the config path from the CLI flag, env var, or workspace."""

    env_map = os.environ if env is None else env
    if explicit_path is not None:
        return explicit_path.expanduser().absolute()
    env_override = env_map.get(CONFIG_PATH_ENV)
    if env_override:
        return Path(env_override).expanduser().absolute()
    if layout is None:
        layout = ensure_workspace(env=env_map, create=False)
    return layout.path_for("config") / CONFIG_FILENAME


def load_config(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
    layout: WorkspaceLayout | None = None,
    required: bool = False,
) -> CoachConfig:
    """Load the TOML config, applying defaults and validation.

    A missing file yields the defaults unless ``required`` is set (or the
    path was given explicitly).
    """

    path = resolve_config_path(
        explicit_path=explicit_path, env=env, layout=layout
    )
    tree = copy.deepcopy(_DEFAULTS)
    if path.exists() or required or explicit_path is not None:
        data = _load_toml(path)
        _merge_dict(tree, data)
    return _build_config(tree)


def default_tree() -> Dict[str, Any]:
    """Return a copy of the default configuration tree."""

    return copy.deepcopy(_DEFAULTS)


def config_template() -> str:
    """Return the TOML template recommended for new installs."""

    return _CONFIG_TEMPLATE.strip() + "\n"


def write_template(
    path: Path, *, overwrite: bool = False, mode: int = 0o600
) -> Path:
    """Write the default template to ``path``."""

    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists() and not overwrite:
        raise TomlConfigError(f"Config already exists: {path}")
    path.write_text(config_template(), encoding="utf-8")
    try:
        path.chmod(mode)
    except PermissionError:
        pass
    return path


_DEFAULTS: Dict[str, Any] = {
    "ai": {
        "model": "gpt-4o-mini",
        "temperature": 0.7,
        "max_tokens": 4000,
        "request_timeout_seconds": 60,
    },
    "exam": {
        "question_count": 10,
        "minutes_per_question": 1.5,
        "pass_threshold": 50,
    },
    "practice": {
        "question_count": 5,
        "duration_minutes": 5,
    },
    "logging": {
        "level": "INFO",
        "verbose": False,
    },
}


_CONFIG_TEMPLATE = """
# exam-coach configuration

[ai]
# Chat completion model used for questions and lessons
model = "gpt-4o-mini"
# Sampling temperature (0.0-2.0)
temperature = 0.7
max_tokens = 4000
request_timeout_seconds = 60

[exam]
# Default number of questions for `coach exam`
question_count = 10
# Exam duration is ceil(question_count * minutes_per_question)
minutes_per_question = 1.5
# Percentage needed to pass (0-100)
pass_threshold = 50

[practice]
# Quizzes started from a lesson
question_count = 5
duration_minutes = 5

[logging]
level = "INFO"
verbose = false
"""


DEFAULT_AI_SETTINGS = _build_ai(_DEFAULTS["ai"])
