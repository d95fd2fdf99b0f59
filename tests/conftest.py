"""Shared test fixtures and helpers."""

from __future__ import annotations

import errno
import os

import pytest

from piperunner.config import get_settings
from piperunner.pipeline.parser import parse_command_line
from piperunner.pipeline.schema import Stage


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch):
    """Keep environment overrides from leaking between tests."""
    monkeypatch.delenv("PIPERUNNER_MAX_STAGES", raising=False)
    monkeypatch.delenv("PIPERUNNER_SEPARATOR", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def chain(*commands: list[str]) -> list[str]:
    """Join *commands* into one token list with the default separator."""
    tokens: list[str] = []
    for i, cmd in enumerate(commands):
        if i:
            tokens.append("--")
        tokens.extend(cmd)
    return tokens


def make_stages(*commands: list[str]) -> list[Stage]:
    return parse_command_line(chain(*commands))


def is_closed(fd: int) -> bool:
    try:
        os.fstat(fd)
    except OSError as e:
        return e.errno == errno.EBADF
    return False


class Recorder:
    """Collects reporter lines."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def __call__(self, message: str) -> None:
        self.lines.append(message)
