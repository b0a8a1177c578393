"""Global CLI options and the coordinator every command opens from them."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer
from rich.console import Console

from marginalia.cli.errors import err_config, warn_store_unavailable
from marginalia.config import ConfigError, load_config
from marginalia.coordinator import StorageCoordinator, open_coordinator
from marginalia.logging_config import configure_ops_log

console = Console()


@dataclass
class GlobalOptions:
    """Values of the top-level flags, set by the main callback."""

    db: Path | None = None
    no_mirror: bool = False


options = GlobalOptions()


def open_session() -> StorageCoordinator:
    """Load config, apply the global flags and open a coordinator.

    Exits with code 1 when the configuration is invalid.
    """
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)
    if options.db is not None:
        cfg.store.path = options.db
    if options.no_mirror:
        cfg.mirror.enabled = False

    coordinator = open_coordinator(cfg)
    if coordinator.store.available:
        configure_ops_log(cfg.store.path.parent)
    else:
        console.print(warn_store_unavailable(str(cfg.store.path)))
    return coordinator
