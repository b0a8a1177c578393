"""marginalia rm: remove a note from the record store and the file comment.

Works on files that were deleted since the note was written, which is how
dangling records are cleaned up.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from marginalia.cli.errors import err_delete_failed
from marginalia.cli.session import open_session

console = Console()


def rm_cmd(
    path: Annotated[Path, typer.Argument(help="File or directory whose note to remove.")],
) -> None:
    """Remove the note attached to PATH."""
    with open_session() as coordinator:
        if not coordinator.delete(path):
            console.print(err_delete_failed(str(path)))
            raise typer.Exit(1)
    console.print(f"[green]✓[/] Removed note for {path}")
