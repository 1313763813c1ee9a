import os
import textwrap
from collections.abc import Callable
from typing import Any

import pytest

from diagassert.assertions import AssertionFailedError
from diagassert.config import reset_settings
from diagassert.core import exec_source


SETTINGS_ENV = [
    "DIAGASSERT_LABEL_INDENT",
    "DIAGASSERT_MAX_VALUE_LENGTH",
    "DIAGASSERT_REWRITE_ENABLED",
    "DIAGASSERT_FILE_PATTERNS",
]


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Settings are cached per process; re-read them around every test."""
    for name in SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    # the CLI loads .env files straight into os.environ
    for name in SETTINGS_ENV:
        os.environ.pop(name, None)
    reset_settings()


@pytest.fixture
def run_rewritten() -> Callable[..., str | None]:
    """Execute a snippet with rewritten asserts; return the failure text, or None if it passed."""

    def run(source: str, **namespace: Any) -> str | None:
        try:
            exec_source(textwrap.dedent(source), dict(namespace))
        except AssertionFailedError as exc:
            return str(exc)
        return None

    return run
