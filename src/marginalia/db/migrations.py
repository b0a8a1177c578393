"""Forward-only migration runner for the note record store.

Each migration is either a SQL script or a callable taking the connection.
Every step must be idempotent: databases created before ``schema_version``
existed start at version 0 and replay all steps against tables that may
already be partly in place.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable

from marginalia.db.connection import StoreInitError
from marginalia.identity import token_from_reference

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS notes (
    id                  TEXT PRIMARY KEY,
    path                TEXT NOT NULL,
    identity_reference  BLOB,
    title               TEXT NOT NULL DEFAULT '',
    body                TEXT NOT NULL DEFAULT '',
    created_at          REAL NOT NULL,
    modified_at         REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_notes_path ON notes(path);
"""


def column_exists(conn: sqlite3.Connection, table: str, column: str) -> bool:
    rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
    return any(row[1] == column for row in rows)


def add_column(conn: sqlite3.Connection, table: str, column: str, decl: str) -> bool:
    """Add *column* to *table* unless present. Returns True if it was added."""
    if column_exists(conn, table, column):
        return False
    try:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {decl}")
    except sqlite3.OperationalError as exc:
        # Another process may have won the race between the check and the ALTER.
        if "duplicate column" not in str(exc).lower():
            raise
        return False
    return True


def _v2_identity_hash(conn: sqlite3.Connection) -> None:
    # Column first, index second: the index cannot exist without the column.
    add_column(conn, "notes", "identity_hash", "TEXT")
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_notes_identity_hash ON notes(identity_hash)"
    )

    rows = conn.execute(
        "SELECT id, identity_reference FROM notes "
        "WHERE identity_hash IS NULL AND identity_reference IS NOT NULL"
    ).fetchall()
    for row in rows:
        token = token_from_reference(row[1])
        if token is not None:
            conn.execute(
                "UPDATE notes SET identity_hash = ? WHERE id = ?", (token, row[0])
            )


Migration = str | Callable[[sqlite3.Connection], None]

# Append-only. Each entry: (version: int, step: Migration).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, Migration]] = [
    (1, _V1_SQL),
    (2, _v2_identity_hash),
]


def current_version(conn: sqlite3.Connection) -> int:
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] if row[0] is not None else 0


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on every startup, on a database at any version.

    Raises:
        StoreInitError: If a migration step fails.
    """
    try:
        conn.execute(_CREATE_SCHEMA_VERSION)
        conn.commit()

        current = current_version(conn)
        for version, step in MIGRATIONS:
            if version <= current:
                continue
            if callable(step):
                step(conn)
            else:
                conn.executescript(step)
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))
            conn.commit()
    except sqlite3.Error as exc:
        conn.rollback()
        raise StoreInitError(f"Schema migration failed: {exc}") from exc


def initialize(conn: sqlite3.Connection) -> None:
    """Initialize the database schema via the migration runner (idempotent)."""
    run_migrations(conn)
