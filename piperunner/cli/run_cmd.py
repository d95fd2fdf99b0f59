"""The ``run`` command: execute a token list as a pipeline."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from piperunner.cli._helpers import (
    err_console,
    exit_on_pipeline_error,
    exit_with_error,
    report_line,
)
from piperunner.config import ConfigError, RunnerSettings, get_settings
from piperunner.pipeline.errors import PipelineError
from piperunner.pipeline.schema import PipelineResult, Stage

# Option parsing must stop at the first program token so that separators and
# option-like stage arguments reach the parser untouched.
RUN_CONTEXT_SETTINGS = {"allow_interspersed_args": False}


def _resolve_settings(max_stages: int | None, separator: str | None) -> RunnerSettings:
    try:
        return get_settings().with_overrides(max_stages=max_stages, separator=separator)
    except ConfigError as e:
        exit_with_error(str(e))


def run(
    tokens: Annotated[
        list[str] | None,
        typer.Argument(
            help="Programs and their arguments, separated by the separator token",
            show_default=False,
        ),
    ] = None,
    max_stages: Annotated[
        int | None, typer.Option("--max-stages", help="Maximum number of programs")
    ] = None,
    separator: Annotated[
        str | None, typer.Option("--separator", help="Token separating programs")
    ] = None,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Parse and display the stages without running them")
    ] = False,
    summary: Annotated[
        bool, typer.Option("--summary", help="Print a table of exit codes after the run")
    ] = False,
) -> None:
    """Run programs connected stdout-to-stdin, like a shell pipeline."""
    from piperunner.pipeline.controller import PipelineController

    settings = _resolve_settings(max_stages, separator)
    controller = PipelineController(tokens or [], settings=settings, reporter=report_line)

    try:
        if dry_run:
            _display_dry_run(controller.parse(), settings)
            return
        result = controller.run()
    except PipelineError as e:
        exit_on_pipeline_error(e)

    if summary:
        _display_result(result)


def _wiring(stage: Stage, count: int) -> tuple[str, str]:
    stdin = "inherited" if stage.index == 0 else f"pipe from {stage.index - 1}"
    stdout = "inherited" if stage.index == count - 1 else f"pipe to {stage.index + 1}"
    return stdin, stdout


def _display_dry_run(stages: list[Stage], settings: RunnerSettings) -> None:
    table = Table(title=f"Pipeline: {len(stages)} program(s)")
    table.add_column("#", style="cyan")
    table.add_column("Program")
    table.add_column("Arguments")
    table.add_column("Stdin")
    table.add_column("Stdout")

    for stage in stages:
        stdin, stdout = _wiring(stage, len(stages))
        args = " ".join(stage.arguments[1:]) or "(none)"
        table.add_row(str(stage.index), escape(stage.name), escape(args), stdin, stdout)

    err_console.print(table)
    err_console.print(f"\n[bold]Separator:[/bold] {escape(settings.separator)}")
    err_console.print(f"[bold]Max programs:[/bold] {settings.max_stages}")
    err_console.print("\n[green]Pipeline is valid.[/green]")


def _display_result(result: PipelineResult) -> None:
    table = Table(title="Pipeline result")
    table.add_column("#", style="cyan")
    table.add_column("Program")
    table.add_column("PID")
    table.add_column("Status")

    for sr in result.stage_results:
        if sr.wait_failed:
            status = "[yellow]WAIT ERROR[/yellow]"
        elif sr.signal is not None:
            status = f"[red]{sr.exit_code}[/red] (signal {sr.signal})"
        elif sr.success:
            status = "[green]0[/green]"
        else:
            status = f"[red]{sr.exit_code}[/red]"
        pid = str(sr.process_id) if sr.process_id is not None else "-"
        table.add_row(str(sr.index), escape(sr.name), pid, status)

    err_console.print(table)
    err_console.print(f"[bold]Total: {result.duration_ms}ms[/bold]")
