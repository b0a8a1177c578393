"""SQLite connection layer for the note record store."""

from __future__ import annotations

import os
import sqlite3
from pathlib import Path


class StoreInitError(RuntimeError):
    """Raised when the database directory or file cannot be prepared."""


class Database:
    """Single-file SQLite database holding one record per annotated object."""

    def __init__(self, db_path: Path | str, *, busy_timeout_ms: int = 5_000) -> None:
        """Store the database path. Call connect() to open the connection.

        Args:
            db_path: Path to the SQLite database file (created if missing).
            busy_timeout_ms: How long a writer waits on a lock held by
                another process before failing.
        """
        self.db_path = Path(db_path)
        self.busy_timeout_ms = busy_timeout_ms
        self._conn: sqlite3.Connection | None = None

    def ensure_directory(self) -> None:
        """Create the parent directory if needed.

        Raises:
            StoreInitError: If the parent exists as a file or cannot be created.
        """
        directory = self.db_path.parent
        if directory.exists():
            if not directory.is_dir():
                raise StoreInitError(
                    f"Storage path exists but is a file, not a directory: {directory}"
                )
            return
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreInitError(
                f"Failed to create storage directory at {directory}: {exc}"
            ) from exc

    def connect(self) -> sqlite3.Connection:
        """Open a connection with WAL journaling and return it.

        The connection may be shared across threads; callers serialise access.

        Raises:
            StoreInitError: If the directory or database cannot be opened.
        """
        self.ensure_directory()
        try:
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout_ms)}")
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA journal_mode = WAL")
        except sqlite3.Error as exc:
            raise StoreInitError(f"Failed to open database {self.db_path}: {exc}") from exc
        return conn

    def directory_status(self) -> str:
        """One-line description of the storage directory, for diagnostics."""
        directory = self.db_path.parent
        exists = directory.exists()
        return (
            f"directory={directory} exists={exists} "
            f"is_dir={directory.is_dir()} writable={exists and os.access(directory, os.W_OK)}"
        )

    def __enter__(self) -> sqlite3.Connection:
        """Open the database and return the connection (context manager support)."""
        self._conn = self.connect()
        return self._conn

    def __exit__(self, *args: object) -> None:
        """Close the connection when leaving the context manager."""
        if self._conn:
            self._conn.close()
            self._conn = None
