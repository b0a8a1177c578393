"""marginalia status: record store and mirror health."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel

from marginalia.cli.session import open_session

console = Console()


def status_cmd() -> None:
    """Show record store and mirror health."""
    with open_session() as coordinator:
        status = coordinator.status()

    store_state = "[green]available[/]" if status.store_available else "[red]unavailable[/]"
    mirror_state = (
        f"[green]{status.mirror_profile}[/]" if status.mirror_enabled else "[dim]disabled[/]"
    )
    lines = [
        f"Database:  {status.db_path}",
        f"Store:     {store_state}  |  Notes: [bold]{status.record_count}[/]",
        f"Mirror:    {mirror_state}",
    ]
    console.print(Panel("\n".join(lines), title="[bold]Marginalia[/]", expand=False))
