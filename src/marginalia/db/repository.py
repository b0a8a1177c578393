"""Repository for raw note-record SQL.

One method per statement; no identity logic lives here (see
:mod:`marginalia.db.store`). Each write commits immediately.
"""

from __future__ import annotations

import sqlite3

from marginalia.db.models import Record

_COLUMNS = (
    "id, path, identity_reference, identity_hash, title, body, created_at, modified_at"
)


class RecordRepository:
    """Data access layer for the ``notes`` table.

    Wraps an open sqlite3.Connection owned by the caller.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with the schema initialised
                (see marginalia.db.migrations.initialize).
        """
        self._conn = conn

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, record_id: str) -> Record | None:
        row = self._conn.execute(
            f"SELECT {_COLUMNS} FROM notes WHERE id = ?", (record_id,)
        ).fetchone()
        return _row_to_record(row) if row else None

    def get_by_path(self, path: str) -> list[Record]:
        """Return every record at *path*, most recently modified first.

        More than one record can share a path while a stale record for a
        replaced object has not been cleaned up.
        """
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM notes WHERE path = ? ORDER BY modified_at DESC",
            (path,),
        ).fetchall()
        return [_row_to_record(r) for r in rows]

    def get_by_identity_hash(self, identity_hash: str) -> Record | None:
        row = self._conn.execute(
            f"SELECT {_COLUMNS} FROM notes WHERE identity_hash = ? "
            "ORDER BY modified_at DESC LIMIT 1",
            (identity_hash,),
        ).fetchone()
        return _row_to_record(row) if row else None

    def list_all(self) -> list[Record]:
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM notes ORDER BY modified_at DESC"
        ).fetchall()
        return [_row_to_record(r) for r in rows]

    def count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM notes").fetchone()[0]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, record: Record) -> None:
        self._conn.execute(
            f"INSERT INTO notes ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                record.id,
                record.path,
                record.identity_reference,
                record.identity_hash,
                record.title,
                record.body,
                record.created_at,
                record.modified_at,
            ),
        )
        self._conn.commit()

    def update(self, record: Record) -> None:
        """Overwrite every mutable column of the record with id ``record.id``."""
        self._conn.execute(
            """
            UPDATE notes SET
                path = ?,
                identity_reference = ?,
                identity_hash = ?,
                title = ?,
                body = ?,
                modified_at = ?
            WHERE id = ?
            """,
            (
                record.path,
                record.identity_reference,
                record.identity_hash,
                record.title,
                record.body,
                record.modified_at,
                record.id,
            ),
        )
        self._conn.commit()

    def relocate(
        self,
        record_id: str,
        path: str,
        identity_reference: bytes | None,
        identity_hash: str | None,
    ) -> None:
        """Refresh where a record's object lives without touching its content."""
        self._conn.execute(
            "UPDATE notes SET path = ?, identity_reference = ?, identity_hash = ? WHERE id = ?",
            (path, identity_reference, identity_hash, record_id),
        )
        self._conn.commit()

    def delete(self, record_id: str) -> int:
        cur = self._conn.execute("DELETE FROM notes WHERE id = ?", (record_id,))
        self._conn.commit()
        return cur.rowcount

    def delete_by_path(self, path: str) -> int:
        cur = self._conn.execute("DELETE FROM notes WHERE path = ?", (path,))
        self._conn.commit()
        return cur.rowcount

    def delete_by_identity_hash(self, identity_hash: str) -> int:
        cur = self._conn.execute(
            "DELETE FROM notes WHERE identity_hash = ?", (identity_hash,)
        )
        self._conn.commit()
        return cur.rowcount


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------

def _row_to_record(row: sqlite3.Row) -> Record:
    reference = row["identity_reference"]
    return Record(
        id=row["id"],
        path=row["path"],
        identity_reference=bytes(reference) if reference is not None else None,
        identity_hash=row["identity_hash"],
        title=row["title"],
        body=row["body"],
        created_at=row["created_at"],
        modified_at=row["modified_at"],
    )
