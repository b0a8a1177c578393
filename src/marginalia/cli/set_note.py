"""marginalia set: attach a note to a file or folder.

Usage:
  marginalia set report.pdf --title "Review" --body "Check section 3"
  echo "long text" | marginalia set report.pdf --body -
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from marginalia.cli.errors import err_empty_note, err_save_failed
from marginalia.cli.session import open_session
from marginalia.note import Note

console = Console()


def set_cmd(
    path: Annotated[Path, typer.Argument(help="File or directory to annotate.")],
    title: Annotated[str, typer.Option("--title", "-t", help="Note title.")] = "",
    body: Annotated[
        str,
        typer.Option("--body", "-b", help="Note body ('-' reads it from stdin)."),
    ] = "",
) -> None:
    """Attach a note to PATH, replacing any existing one."""
    if body == "-":
        body = sys.stdin.read()
    note = Note(title=title, body=body)
    if note.is_empty:
        console.print(err_empty_note())
        raise typer.Exit(1)

    with open_session() as coordinator:
        existing = coordinator.load(path)
        if existing is not None:
            existing.update(title, body)
            note = existing
        if not coordinator.save(note, path):
            console.print(err_save_failed(str(path)))
            raise typer.Exit(1)
    console.print(f"[green]✓[/] Saved note for {path}")
