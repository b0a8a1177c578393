"""Marginalia CLI entry point.

A thin diagnostic shell over the storage coordinator:

  marginalia set PATH --title T --body B   attach or replace a note
  marginalia show PATH                     print the note
  marginalia rm PATH                       remove the note from both channels
  marginalia list                          every record and where its file is now
  marginalia status                        store and mirror health
"""

from __future__ import annotations

import importlib.metadata
from pathlib import Path
from typing import Annotated

import typer

from marginalia.cli.list_notes import list_cmd
from marginalia.cli.remove import rm_cmd
from marginalia.cli.session import options
from marginalia.cli.set_note import set_cmd
from marginalia.cli.show import show_cmd
from marginalia.cli.status import status_cmd
from marginalia.logging_config import configure_logging


def _version() -> str:
    try:
        return importlib.metadata.version("marginalia")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"marginalia {_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="marginalia",
    help="Marginalia: notes attached to files that survive renames and moves.",
    add_completion=False,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log storage details to stderr."),
    ] = False,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the notes database (overrides config)."),
    ] = None,
    no_mirror: Annotated[
        bool,
        typer.Option("--no-mirror", help="Do not read or write host file comments."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """Marginalia: notes attached to files."""
    configure_logging(verbose)
    options.db = db
    options.no_mirror = no_mirror


app.command("set")(set_cmd)
app.command("show")(show_cmd)
app.command("rm")(rm_cmd)
app.command("list")(list_cmd)
app.command("status")(status_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed Marginalia version."""
    typer.echo(f"marginalia {_version()}")


if __name__ == "__main__":
    app()
