"""Shared CLI helpers: consoles and the fatal-error exit path."""

from __future__ import annotations

from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from piperunner.pipeline.errors import PipelineError

console = Console()
# Diagnostics share stderr with the stage programs, so they stay plain text.
err_console = Console(stderr=True, highlight=False, soft_wrap=True)


def report_line(message: str) -> None:
    """Print one diagnostic line to stderr, verbatim."""
    err_console.print(message, markup=False, emoji=False)


def exit_with_error(message: str, detail: str | None = None) -> NoReturn:
    err_console.print(f"[red]Error:[/red] {escape(message)}")
    if detail:
        err_console.print(f"errno: {escape(detail)}")
    raise typer.Exit(1)


def exit_on_pipeline_error(error: PipelineError) -> NoReturn:
    exit_with_error(error.message, error.detail)
