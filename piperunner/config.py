"""Runner configuration.

Defaults can be overridden with ``PIPERUNNER_MAX_STAGES`` and
``PIPERUNNER_SEPARATOR``; CLI options take precedence over both.
"""

from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, Field, ValidationError

DEFAULT_MAX_STAGES = 10
DEFAULT_SEPARATOR = "--"


class ConfigError(Exception):
    """Raised when runner settings are invalid."""


class RunnerSettings(BaseModel):
    max_stages: int = Field(default=DEFAULT_MAX_STAGES, ge=1)
    separator: str = Field(default=DEFAULT_SEPARATOR, min_length=1)

    def with_overrides(
        self,
        *,
        max_stages: int | None = None,
        separator: str | None = None,
    ) -> RunnerSettings:
        """Return a validated copy with the non-``None`` overrides applied."""
        data = self.model_dump()
        if max_stages is not None:
            data["max_stages"] = max_stages
        if separator is not None:
            data["separator"] = separator
        return _validate(data)


def _validate(data: dict) -> RunnerSettings:
    try:
        return RunnerSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid runner settings:\n{e}") from e


@lru_cache(maxsize=1)
def get_settings() -> RunnerSettings:
    """Return settings resolved from the environment.

    Resolution order per field:
    1. ``PIPERUNNER_MAX_STAGES`` / ``PIPERUNNER_SEPARATOR``
    2. built-in defaults (10 stages, ``--``)
    """
    data: dict[str, object] = {}
    max_stages = os.environ.get("PIPERUNNER_MAX_STAGES")
    if max_stages:
        data["max_stages"] = max_stages
    separator = os.environ.get("PIPERUNNER_SEPARATOR")
    if separator:
        data["separator"] = separator
    return _validate(data)
