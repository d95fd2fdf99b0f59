"""Drive a pipeline from token list to reported exit codes."""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from enum import Enum

from piperunner._log import get_logger
from piperunner.config import RunnerSettings, get_settings
from piperunner.pipeline.errors import PipelineError
from piperunner.pipeline.fabric import prepare_pipes
from piperunner.pipeline.launcher import launch_stage, wait_on_stage
from piperunner.pipeline.parser import parse_command_line
from piperunner.pipeline.schema import PipelineResult, Stage

logger = get_logger("pipeline.controller")

Reporter = Callable[[str], None]


class ControllerState(Enum):
    CREATED = "created"
    PARSED = "parsed"
    PIPES_ALLOCATED = "pipes_allocated"
    LAUNCHING = "launching"
    WAITING = "waiting"
    DONE = "done"
    ABORTED = "aborted"


def _log_reporter(message: str) -> None:
    logger.info(message)


class PipelineController:
    """Owns the stages of one run end to end.

    ``run()`` parses, allocates pipes, launches every stage in order, then
    waits on every stage in order. Any :class:`PipelineError` moves the
    controller to ``ABORTED`` and propagates; stage exit codes never do.
    """

    def __init__(
        self,
        tokens: Sequence[str],
        settings: RunnerSettings | None = None,
        reporter: Reporter | None = None,
    ) -> None:
        self.tokens = list(tokens)
        self.settings = settings or get_settings()
        self.reporter = reporter or _log_reporter
        self.state = ControllerState.CREATED
        self.stages: list[Stage] = []
        self.pipe_count = 0

    def _advance(self, state: ControllerState) -> None:
        logger.debug("state %s -> %s", self.state.value, state.value)
        self.state = state

    def _require_fresh(self) -> None:
        if self.state is not ControllerState.CREATED:
            raise RuntimeError(f"Controller already used (state: {self.state.value})")

    def parse(self) -> list[Stage]:
        """Build the stages; a parse error moves the controller to ``ABORTED``."""
        self._require_fresh()
        try:
            self.stages = parse_command_line(
                self.tokens,
                max_stages=self.settings.max_stages,
                separator=self.settings.separator,
            )
        except PipelineError:
            self._advance(ControllerState.ABORTED)
            raise
        self._advance(ControllerState.PARSED)
        return self.stages

    def run(self) -> PipelineResult:
        self._require_fresh()

        start = time.monotonic()
        try:
            self.parse()
            self.pipe_count = prepare_pipes(self.stages)
            self._advance(ControllerState.PIPES_ALLOCATED)

            self._advance(ControllerState.LAUNCHING)
            for stage in self.stages:
                self.reporter(f"Starting program {stage.index}:{stage.name}")
                launch_stage(self.stages, stage.index)
        except PipelineError:
            self._advance(ControllerState.ABORTED)
            raise

        self._advance(ControllerState.WAITING)
        result = PipelineResult()
        for stage in self.stages:
            self.reporter(f"Waiting for program {stage.index}:{stage.name}")
            sr = wait_on_stage(stage)
            self.reporter(f"Program {stage.index}:{stage.name} exited with {sr.exit_code}")
            result.stage_results.append(sr)

        for stage in self.stages:
            stage.arguments = []
        self.reporter("Parent: Everything is good.")
        self._advance(ControllerState.DONE)
        result.duration_ms = int((time.monotonic() - start) * 1000)
        return result


def run_pipeline(
    tokens: Sequence[str],
    settings: RunnerSettings | None = None,
    reporter: Reporter | None = None,
) -> PipelineResult:
    """Run *tokens* as a pipeline and return the per-stage results."""
    return PipelineController(tokens, settings=settings, reporter=reporter).run()
