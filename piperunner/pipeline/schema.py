"""Data model for pipeline stages and their results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from piperunner.pipeline.errors import DescriptorStateError

WAIT_ERROR = -1


class SlotState(Enum):
    UNSET = "unset"
    OPEN = "open"
    CLOSED = "closed"


@dataclass
class DescriptorSlot:
    """One stdin/stdout connection of a stage.

    ``UNSET`` means the stage inherits the controller's own stream. ``OPEN``
    holds a pipe end owned by the stage. ``CLOSED`` means the pipe end was
    handed off and closed; it must never be closed again.
    """

    state: SlotState = SlotState.UNSET
    fd: int | None = None

    @property
    def is_open(self) -> bool:
        return self.state is SlotState.OPEN

    def open(self, fd: int) -> None:
        if self.state is not SlotState.UNSET:
            raise DescriptorStateError(f"Cannot assign fd {fd} to a {self.state.value} slot")
        self.state = SlotState.OPEN
        self.fd = fd

    def take(self) -> int:
        """Mark the slot closed and return the fd the caller must now close."""
        if self.state is not SlotState.OPEN or self.fd is None:
            raise DescriptorStateError(f"Cannot close a {self.state.value} slot")
        fd = self.fd
        self.state = SlotState.CLOSED
        self.fd = None
        return fd

    def invalidate(self) -> None:
        """Mark an already-handled slot closed (no-op for an UNSET slot's fd)."""
        if self.state is SlotState.OPEN:
            raise DescriptorStateError(f"Slot still holds open fd {self.fd}")
        self.state = SlotState.CLOSED
        self.fd = None


@dataclass
class Stage:
    index: int
    arguments: list[str]
    process_id: int | None = None
    input: DescriptorSlot = field(default_factory=DescriptorSlot)
    output: DescriptorSlot = field(default_factory=DescriptorSlot)

    @property
    def name(self) -> str:
        return self.arguments[0] if self.arguments else "<released>"

    def assign_process(self, pid: int) -> None:
        if self.process_id is not None:
            raise DescriptorStateError(
                f"Program {self.index} already has process {self.process_id}"
            )
        self.process_id = pid


@dataclass
class StageResult:
    index: int
    name: str
    process_id: int | None = None
    exit_code: int = WAIT_ERROR
    signal: int | None = None

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def wait_failed(self) -> bool:
        return self.exit_code == WAIT_ERROR


@dataclass
class PipelineResult:
    stage_results: list[StageResult] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        """True when every stage exited 0. Does not affect the run's exit code."""
        return all(sr.success for sr in self.stage_results)
