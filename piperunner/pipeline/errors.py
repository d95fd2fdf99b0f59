"""Fatal pipeline errors.

Anything raised from here aborts the whole run. Per-stage exit failures are
not errors; they are reported through :class:`~piperunner.pipeline.schema.StageResult`.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for fatal errors, optionally carrying the OS-level cause."""

    def __init__(self, message: str, os_error: OSError | None = None) -> None:
        self.message = message
        self.os_error = os_error
        super().__init__(message)

    @property
    def detail(self) -> str | None:
        """Human-readable OS error detail, if any."""
        if self.os_error is None:
            return None
        return self.os_error.strerror or str(self.os_error)


class CommandLineError(PipelineError):
    """The token list does not describe a valid pipeline."""


class NoProgramsSpecified(CommandLineError):
    def __init__(self, separator: str = "--") -> None:
        super().__init__(
            "Specify at least one program to run. "
            f"Multiple programs are separated by {separator}"
        )


class TooManyStages(CommandLineError):
    def __init__(self, max_stages: int) -> None:
        self.max_stages = max_stages
        super().__init__(f"Too many programs (at most {max_stages} allowed).")


class EmptyStage(CommandLineError):
    def __init__(self, index: int, *, last: bool = False) -> None:
        self.index = index
        self.last = last
        super().__init__("Last program is empty." if last else "Empty program.")


class SystemResourceError(PipelineError):
    """An OS call the controller depends on failed."""


class PipeCreationFailed(SystemResourceError):
    def __init__(self, os_error: OSError) -> None:
        super().__init__("pipe() failed.", os_error)


class ProcessCreationFailed(SystemResourceError):
    def __init__(self, index: int, os_error: OSError) -> None:
        self.index = index
        super().__init__(f"fork() failed for program {index}.", os_error)


class DescriptorStateError(RuntimeError):
    """A descriptor slot or stage was driven through an illegal transition."""


class LaunchOrderError(RuntimeError):
    """A stage was launched before the stage preceding it."""
