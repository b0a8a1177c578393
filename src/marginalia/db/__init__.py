"""Marginalia record store."""

from marginalia.db.connection import Database, StoreInitError
from marginalia.db.migrations import MIGRATIONS, initialize, run_migrations
from marginalia.db.models import Record
from marginalia.db.repository import RecordRepository
from marginalia.db.store import RecordStore

__all__ = [
    "Database",
    "StoreInitError",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "Record",
    "RecordRepository",
    "RecordStore",
]
