"""Shared AI helper utilities."""

from __future__ import annotations

import os
from typing import Any

from dotenv import load_dotenv
from openai import OpenAI

from .errors import ConfigurationError

__all__ = ["API_KEY_ENV", "load_client"]

API_KEY_ENV = "OPENAI_API_KEY"


def load_client(*, timeout: float | None = None) -> Any:
    """Initialize an OpenAI client using environment-derived credentials."""

    load_dotenv()
    api_key = os.getenv(API_KEY_ENV)
    if not api_key:
        raise ConfigurationError(
            f"{API_KEY_ENV} not found in environment. Set it or add to .env"
        )
    if timeout is None:
        return OpenAI(api_key=api_key)
    return OpenAI(api_key=api_key, timeout=timeout)
