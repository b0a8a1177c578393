"""marginalia show: print the note attached to a path."""

from __future__ import annotations

import datetime
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel

from marginalia.cli.errors import err_note_not_found
from marginalia.cli.session import open_session

console = Console()


def show_cmd(
    path: Annotated[Path, typer.Argument(help="File or directory to inspect.")],
) -> None:
    """Print the note attached to PATH."""
    with open_session() as coordinator:
        note = coordinator.load(path)
    if note is None:
        console.print(err_note_not_found(str(path)))
        raise typer.Exit(0)

    modified = datetime.datetime.fromtimestamp(note.modified_at).strftime("%Y-%m-%d %H:%M")
    console.print(
        Panel(
            note.body or "[dim](no body)[/]",
            title=f"[bold]{note.title or path.name}[/]",
            subtitle=f"[dim]{modified}[/]",
            expand=False,
        )
    )
