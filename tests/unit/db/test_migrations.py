"""Tests for the forward-only migration runner."""

from __future__ import annotations

import sqlite3

import pytest

import marginalia.db.migrations as mod
from marginalia.db.connection import Database, StoreInitError
from marginalia.db.migrations import MIGRATIONS, column_exists, initialize, run_migrations
from marginalia.identity import IdentityResolver


def _fresh_conn(tmp_path):
    """Open a new connection without running migrations."""
    return Database(tmp_path / "test.db").connect()


def _index_exists(conn, name: str) -> bool:
    return conn.execute(
        "SELECT name FROM sqlite_master WHERE type='index' AND name=?", (name,)
    ).fetchone() is not None


def _columns(conn, table: str) -> set[str]:
    return {row["name"] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}


def _create_pre_identity_hash_db(conn, rows=()):
    """A store created before identity_hash existed (no schema_version either)."""
    conn.executescript(
        """
        CREATE TABLE notes (
            id TEXT PRIMARY KEY,
            path TEXT NOT NULL,
            identity_reference BLOB,
            title TEXT NOT NULL DEFAULT '',
            body TEXT NOT NULL DEFAULT '',
            created_at REAL NOT NULL,
            modified_at REAL NOT NULL
        );
        CREATE INDEX idx_notes_path ON notes(path);
        """
    )
    for row in rows:
        conn.execute(
            "INSERT INTO notes (id, path, identity_reference, title, body, created_at, modified_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            row,
        )
    conn.commit()


# --- Bootstrap ---

def test_run_migrations_records_latest_version(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    version = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
    assert version == MIGRATIONS[-1][0]
    conn.close()


def test_notes_table_columns(tmp_db):
    assert _columns(tmp_db, "notes") == {
        "id",
        "path",
        "identity_reference",
        "identity_hash",
        "title",
        "body",
        "created_at",
        "modified_at",
    }


def test_indexes_created(tmp_db):
    assert _index_exists(tmp_db, "idx_notes_path")
    assert _index_exists(tmp_db, "idx_notes_identity_hash")


# --- Idempotency ---

def test_run_migrations_idempotent(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    run_migrations(conn)
    initialize(conn)
    count = conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]
    assert count == len(MIGRATIONS)
    conn.close()


# --- Additive identity_hash column ---

def test_legacy_store_gains_identity_hash(tmp_path):
    conn = _fresh_conn(tmp_path)
    _create_pre_identity_hash_db(conn, [("N1", "/x", None, "t", "b", 1.0, 1.0)])
    assert not column_exists(conn, "notes", "identity_hash")

    run_migrations(conn)

    assert column_exists(conn, "notes", "identity_hash")
    assert _index_exists(conn, "idx_notes_identity_hash")
    row = conn.execute("SELECT title, identity_hash FROM notes WHERE id='N1'").fetchone()
    assert row["title"] == "t"
    assert row["identity_hash"] is None
    conn.close()


def test_legacy_references_backfill_identity_hash(tmp_path, make_file):
    identity = IdentityResolver().capture(make_file())
    conn = _fresh_conn(tmp_path)
    _create_pre_identity_hash_db(conn, [("N1", "/x", identity.reference, "t", "b", 1.0, 1.0)])

    run_migrations(conn)

    stored = conn.execute("SELECT identity_hash FROM notes WHERE id='N1'").fetchone()[0]
    assert stored == identity.token
    conn.close()


def test_column_already_present_is_tolerated(tmp_path):
    """Column added by hand (or by a racing process) before v2 is recorded."""
    conn = _fresh_conn(tmp_path)
    _create_pre_identity_hash_db(conn)
    conn.execute("ALTER TABLE notes ADD COLUMN identity_hash TEXT")
    conn.commit()

    run_migrations(conn)

    assert _index_exists(conn, "idx_notes_identity_hash")
    conn.close()


def test_add_column_reports_whether_added(tmp_path):
    conn = _fresh_conn(tmp_path)
    conn.execute("CREATE TABLE t (a INTEGER)")
    assert mod.add_column(conn, "t", "b", "TEXT") is True
    assert mod.add_column(conn, "t", "b", "TEXT") is False
    conn.close()


# --- Incremental application ---

def test_run_migrations_applies_only_pending(tmp_path, monkeypatch):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)

    applied = []
    monkeypatch.setattr(
        mod,
        "MIGRATIONS",
        MIGRATIONS + [(99, lambda c: applied.append(99))],
    )
    run_migrations(conn)
    run_migrations(conn)

    assert applied == [99]
    versions = [r[0] for r in conn.execute("SELECT version FROM schema_version ORDER BY version")]
    assert versions == [m[0] for m in MIGRATIONS] + [99]
    conn.close()


def test_failed_migration_raises_store_init_error(tmp_path, monkeypatch):
    conn = _fresh_conn(tmp_path)
    monkeypatch.setattr(mod, "MIGRATIONS", [(1, "CREATE TABLE broken (;")])
    with pytest.raises(StoreInitError):
        run_migrations(conn)
    conn.close()


def test_index_before_column_is_a_schema_error(tmp_path):
    """Why the order matters: SQLite refuses an index on a missing column."""
    conn = _fresh_conn(tmp_path)
    _create_pre_identity_hash_db(conn)
    with pytest.raises(sqlite3.OperationalError):
        conn.execute("CREATE INDEX bad ON notes(identity_hash)")
    conn.close()
