"""Split a flat token list into pipeline stages."""

from __future__ import annotations

from collections.abc import Sequence

from piperunner.config import DEFAULT_MAX_STAGES, DEFAULT_SEPARATOR
from piperunner.pipeline.errors import EmptyStage, NoProgramsSpecified, TooManyStages
from piperunner.pipeline.schema import Stage


def _split_runs(tokens: Sequence[str], separator: str) -> list[list[str]]:
    runs: list[list[str]] = [[]]
    for token in tokens:
        if token == separator:
            runs.append([])
        else:
            runs[-1].append(token)
    return runs


def parse_command_line(
    tokens: Sequence[str],
    *,
    max_stages: int = DEFAULT_MAX_STAGES,
    separator: str = DEFAULT_SEPARATOR,
) -> list[Stage]:
    """Return one :class:`Stage` per separator-delimited run of *tokens*.

    Runs are checked in order. A trailing separator raises
    :class:`EmptyStage` even when the limit is already reached; any other
    run past *max_stages* raises :class:`TooManyStages` before its own
    contents are looked at, and an empty run raises :class:`EmptyStage`.
    """
    if not tokens:
        raise NoProgramsSpecified(separator)

    runs = _split_runs(tokens, separator)
    stages: list[Stage] = []
    for index, run in enumerate(runs):
        last = index == len(runs) - 1 and index > 0
        if last and not run:
            raise EmptyStage(index, last=True)
        if index == max_stages:
            raise TooManyStages(max_stages)
        if not run:
            raise EmptyStage(index)
        stages.append(Stage(index=index, arguments=run))
    return stages
