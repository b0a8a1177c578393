"""Marginalia user-facing messages.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Raw engine errors never appear here; details go to the log (--verbose).

Usage:
    from marginalia.cli.errors import err_save_failed
    console.print(err_save_failed(path))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_save_failed(path: str) -> str:
    """Neither the record store nor the mirror accepted the note."""
    return (
        f"[red]Error:[/] Save failed for '{path}'.\n"
        "  Check that the file exists and is writable, then retry with --verbose for details."
    )


def err_delete_failed(path: str) -> str:
    """At least one channel still holds the note."""
    return (
        f"[red]Error:[/] Could not remove the note from '{path}' completely.\n"
        "  Retry with --verbose to see which storage channel failed."
    )


def err_note_not_found(path: str) -> str:
    """No note in either channel; a normal outcome."""
    return (
        f"[yellow]No note:[/] '{path}' has no note attached.\n"
        f"  Add one:  marginalia set '{path}' --title <title> --body <text>"
    )


def err_empty_note() -> str:
    """Both title and body are blank."""
    return (
        "[red]Error:[/] A note needs a title or a body.\n"
        "  To remove a note use:  marginalia rm <path>"
    )


def err_config(message: str) -> str:
    """Configuration file or environment is invalid."""
    return (
        f"[red]Error:[/] Invalid configuration: {message}\n"
        "  Fix ~/.marginalia/config.yaml or the MARGINALIA_* environment variables."
    )


def warn_store_unavailable(db_path: str) -> str:
    """Record store could not be opened; running on the mirror only."""
    return (
        f"[yellow]Warning:[/] Record store unavailable at '{db_path}'.\n"
        "  Notes are read from and written to file comments only.\n"
        "  Check the directory permissions or set MARGINALIA_DB_PATH."
    )
