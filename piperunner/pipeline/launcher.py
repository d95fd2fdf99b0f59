"""Fork, redirect and exec one pipeline stage; wait on it later."""

from __future__ import annotations

import os
import signal
from collections.abc import Sequence
from typing import NoReturn

from piperunner._log import get_logger
from piperunner.pipeline.errors import (
    DescriptorStateError,
    LaunchOrderError,
    ProcessCreationFailed,
    SystemResourceError,
)
from piperunner.pipeline.fabric import release_pipes
from piperunner.pipeline.schema import WAIT_ERROR, DescriptorSlot, Stage, StageResult

logger = get_logger("pipeline.launcher")

STDIN_FILENO = 0
STDOUT_FILENO = 1
STDERR_FILENO = 2

# Exit status of a child that could not set up its descriptors or exec.
CHILD_FAILURE_EXIT = 1


class _ChildSetupError(Exception):
    def __init__(self, message: str, os_error: OSError | None = None) -> None:
        self.message = message
        self.os_error = os_error
        super().__init__(message)


def _report_child_failure(message: str, os_error: OSError | None) -> None:
    """Write straight to fd 2; the child must not touch Python-level streams."""
    lines = f"Error: {message}\n"
    if os_error is not None:
        lines += f"errno: {os_error.strerror or os_error}\n"
    try:
        os.write(STDERR_FILENO, lines.encode(errors="replace"))
    except OSError:
        pass


def _redirect(slot: DescriptorSlot, target: int) -> None:
    if slot.fd is None:
        raise _ChildSetupError(f"no descriptor to redirect onto fd {target}")
    # dup to target descriptor if not already there
    if slot.fd != target:
        try:
            os.dup2(slot.fd, target)
        except OSError as e:
            raise _ChildSetupError("dup2() failed.", e) from e


def _child_exec(stages: Sequence[Stage], index: int) -> NoReturn:
    """Post-fork child: wire stdio, drop the remaining pipe ends, exec.

    Never returns. Any failure terminates the child with
    ``CHILD_FAILURE_EXIT`` so control cannot leak back into the caller.
    """
    stage = stages[index]
    try:
        keep: list[int] = []
        if index > 0:
            _redirect(stage.input, STDIN_FILENO)
            keep.append(STDIN_FILENO)
        if index < len(stages) - 1:
            _redirect(stage.output, STDOUT_FILENO)
            keep.append(STDOUT_FILENO)
        try:
            release_pipes(stages, index, keep=keep)
        except OSError as e:
            raise _ChildSetupError("close() failed.", e) from e

        # the interpreter ignores SIGPIPE and SIGXFSZ and ignored dispositions
        # survive exec; producers must die on a closed reader
        for name in ("SIGPIPE", "SIGXFSZ"):
            signum = getattr(signal, name, None)
            if signum is not None:
                signal.signal(signum, signal.SIG_DFL)
        try:
            os.execvp(stage.arguments[0], stage.arguments)
        except OSError as e:
            raise _ChildSetupError(f"execvp() failed for {stage.arguments[0]}.", e) from e
    except _ChildSetupError as e:
        _report_child_failure(e.message, e.os_error)
    except BaseException as e:  # noqa: BLE001
        _report_child_failure(f"program {index} setup failed: {e!r}", None)
    finally:
        os._exit(CHILD_FAILURE_EXIT)


def _close_parent_copy(stage: Stage, slot: DescriptorSlot) -> None:
    if not slot.is_open:
        slot.invalidate()
        return
    fd = slot.take()
    try:
        os.close(fd)
    except OSError as e:
        raise SystemResourceError(f"close() failed for program {stage.index}.", e) from e
    logger.debug("program %d: parent closed fd %d", stage.index, fd)


def launch_stage(stages: Sequence[Stage], index: int) -> int:
    """Start stage *index* without waiting for it and return its pid.

    Stages must be launched in index order: the child closes the pipe ends
    of its own and every later stage, which is only safe once every earlier
    stage has been forked and the parent has dropped its copies.
    """
    stage = stages[index]
    if stage.process_id is not None:
        raise DescriptorStateError(f"Program {index} was already started")
    if index > 0 and stages[index - 1].process_id is None:
        raise LaunchOrderError(f"Program {index} launched before program {index - 1}")

    try:
        pid = os.fork()
    except OSError as e:
        raise ProcessCreationFailed(index, e) from e

    if pid == 0:
        _child_exec(stages, index)

    stage.assign_process(pid)
    logger.debug("program %d:%s forked as pid %d", index, stage.name, pid)
    _close_parent_copy(stage, stage.input)
    _close_parent_copy(stage, stage.output)
    return pid


def exit_code_from_status(status: int) -> tuple[int, int | None]:
    """Translate a raw wait status into ``(exit_code, signal)``.

    A signal death maps to ``128 + signum``, the way shells report it.
    """
    if os.WIFSIGNALED(status):
        signum = os.WTERMSIG(status)
        return 128 + signum, signum
    if os.WIFEXITED(status):
        return os.WEXITSTATUS(status), None
    return WAIT_ERROR, None


def wait_on_stage(stage: Stage) -> StageResult:
    """Block until *stage*'s process terminates.

    A stage that was never started, or whose wait fails, yields a result
    with ``exit_code == WAIT_ERROR`` instead of raising.
    """
    result = StageResult(index=stage.index, name=stage.name, process_id=stage.process_id)
    if stage.process_id is None:
        return result

    try:
        pid, status = os.waitpid(stage.process_id, 0)
    except OSError as e:
        logger.warning("waitpid(%d) failed for program %d: %s", stage.process_id, stage.index, e)
        return result
    if pid != stage.process_id:
        return result

    result.exit_code, result.signal = exit_code_from_status(status)
    logger.debug("program %d: raw status %#x", stage.index, status)
    return result
