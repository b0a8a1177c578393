"""marginalia list: every stored note and where its file lives now.

The location is resolved from the stored identity, searching the recorded
path and its directory only. A file moved into another directory shows as
"not found near recorded path" until it is opened through its new path.
"""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from marginalia.cli.session import open_session
from marginalia.db.models import Record
from marginalia.db.store import RecordStore

console = Console()


def list_cmd() -> None:
    """List every stored note and where its file lives now.

    Files moved to another directory are reported as not found near their
    recorded path.
    """
    with open_session() as coordinator:
        records = coordinator.store.list_records()
        table = Table(title=f"{len(records)} note(s)")
        table.add_column("Title")
        table.add_column("Path")
        table.add_column("State", min_width=16)
        for record in records:
            table.add_row(
                record.title or "[dim](untitled)[/]",
                record.path,
                _state(coordinator.store, record),
            )
    console.print(table)


def _state(store: RecordStore, record: Record) -> str:
    current = store.current_location(record)
    if current is None:
        return "[yellow]not found near recorded path[/]"
    if str(current) != record.path:
        return f"[cyan]moved → {current}[/]"
    return "[green]ok[/]"
