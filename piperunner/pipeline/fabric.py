"""Pipe allocation and release between adjacent stages."""

from __future__ import annotations

import os
from collections.abc import Collection, Sequence

from piperunner._log import get_logger
from piperunner.pipeline.errors import PipeCreationFailed
from piperunner.pipeline.schema import DescriptorSlot, Stage

logger = get_logger("pipeline.fabric")


def prepare_pipes(stages: Sequence[Stage]) -> int:
    """Connect stage ``i-1``'s output to stage ``i``'s input, in pipeline order.

    Returns the number of pipes created. Pipes created before a failure are
    left for process exit to reclaim.
    """
    created = 0
    for i in range(1, len(stages)):
        try:
            read_fd, write_fd = os.pipe()
        except OSError as e:
            raise PipeCreationFailed(e) from e
        stages[i - 1].output.open(write_fd)
        stages[i].input.open(read_fd)
        created += 1
        logger.debug("pipe %d: %d -> %d (w=%d r=%d)", i - 1, i - 1, i, write_fd, read_fd)
    return created


def _close_slot(slot: DescriptorSlot, keep: Collection[int]) -> bool:
    if not slot.is_open:
        return False
    fd = slot.take()
    if fd in keep:
        return False
    os.close(fd)
    return True


def release_pipes(
    stages: Sequence[Stage],
    start: int,
    *,
    keep: Collection[int] = (),
) -> int:
    """Close every open pipe end held by stages ``start`` onward.

    Descriptor numbers in *keep* are marked closed without calling
    ``close()``: they are standard streams the caller just redirected onto.
    Returns the number of descriptors closed.
    """
    closed = 0
    for stage in stages[start:]:
        for slot in (stage.input, stage.output):
            if _close_slot(slot, keep):
                closed += 1
    return closed
