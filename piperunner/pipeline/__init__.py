"""Pipeline module: parse, wire, launch and wait on a chain of programs."""

from piperunner.pipeline.controller import ControllerState, PipelineController, run_pipeline
from piperunner.pipeline.errors import (
    CommandLineError,
    EmptyStage,
    NoProgramsSpecified,
    PipeCreationFailed,
    PipelineError,
    ProcessCreationFailed,
    TooManyStages,
)
from piperunner.pipeline.parser import parse_command_line
from piperunner.pipeline.schema import WAIT_ERROR, PipelineResult, Stage, StageResult

__all__ = [
    "WAIT_ERROR",
    "CommandLineError",
    "ControllerState",
    "EmptyStage",
    "NoProgramsSpecified",
    "PipeCreationFailed",
    "PipelineController",
    "PipelineError",
    "PipelineResult",
    "ProcessCreationFailed",
    "Stage",
    "StageResult",
    "TooManyStages",
    "parse_command_line",
    "run_pipeline",
]
