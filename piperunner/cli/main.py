"""Typer CLI for piperunner."""

from __future__ import annotations

from typing import Annotated

import typer

from piperunner.cli._helpers import console

app = typer.Typer(
    name="piperunner",
    help="Run programs connected like a shell pipeline.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        from piperunner import __version__

        console.print(f"piperunner {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging"),
    ] = False,
) -> None:
    """piperunner: run programs connected like a shell pipeline."""
    from piperunner._log import setup_logging

    setup_logging(verbose=verbose)


from piperunner.cli.run_cmd import RUN_CONTEXT_SETTINGS, run  # noqa: E402

app.command(context_settings=RUN_CONTEXT_SETTINGS)(run)


def app_entry() -> None:
    """Entry point for the CLI."""
    app()
