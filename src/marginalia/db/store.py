"""Indexed record store: the primary, fast-path home of every note.

Matching rules:

- ``upsert`` looks a record up by identity hash first, then by path, then
  inserts. Path is only a cache of where the object was last seen.
- ``find`` looks up by path first; a path hit whose identity hash belongs to
  another object yields to an identity-hash hit. A record found through its
  identity is rewritten to the current path.
- A path hit bound to another object is only taken over (by either operation)
  when that object can no longer be resolved. While it still exists the
  record stays with it, so ``find`` misses and ``upsert`` inserts.
- ``remove`` deletes by path and by identity hash; deleting nothing succeeds.

If the database cannot be opened or migrated the store stays unavailable for
the rest of the process: writes return False and reads return None.
"""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
import time
from pathlib import Path

from marginalia.db.connection import Database, StoreInitError
from marginalia.db.migrations import initialize
from marginalia.db.models import Record
from marginalia.db.repository import RecordRepository
from marginalia.identity import Identity, IdentityResolver, normalize_location
from marginalia.note import Note, new_note_id

logger = logging.getLogger(__name__)

Location = str | os.PathLike[str]


class RecordStore:
    """Durable table of note records keyed by object identity."""

    def __init__(self, database: Database, resolver: IdentityResolver | None = None) -> None:
        self.database = database
        self.resolver = resolver or IdentityResolver()
        self._conn: sqlite3.Connection | None = None
        self._repo: RecordRepository | None = None
        # Single writer connection; every operation holds the lock.
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> bool:
        """Connect and migrate. Returns False (and stays unavailable) on failure."""
        with self._lock:
            if self._conn is not None:
                return True
            try:
                conn = self.database.connect()
            except StoreInitError as exc:
                self._log_init_failure(exc)
                return False
            try:
                initialize(conn)
            except StoreInitError as exc:
                conn.close()
                self._log_init_failure(exc)
                return False
            self._conn = conn
            self._repo = RecordRepository(conn)
            logger.info("Record store at %s", self.database.db_path)
            return True

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
            self._conn = None
            self._repo = None

    @property
    def available(self) -> bool:
        return self._repo is not None

    def __enter__(self) -> RecordStore:
        self.open()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _log_init_failure(self, exc: Exception) -> None:
        logger.error("Record store unavailable: %s", exc)
        logger.error("  db=%s %s", self.database.db_path, self.database.directory_status())

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def upsert(self, note: Note, location: Location) -> bool:
        """Create or update the record for *location* with *note*'s content."""
        if self._repo is None:
            logger.warning("Cannot save %s: record store unavailable", location)
            return False

        path = normalize_location(location)
        identity = self.resolver.capture(path)
        if identity is None:
            logger.warning("Identity unresolvable for %s; matching by path only", path)

        with self._lock:
            try:
                record = self._match_for_write(path, identity)
                now = time.time()
                if record is not None:
                    record.path = path
                    if identity is not None:
                        record.identity_reference = identity.reference
                        record.identity_hash = identity.token
                    record.title = note.title
                    record.body = note.body
                    record.modified_at = now
                    self._repo.update(record)
                    logger.debug("Updated record %s for %s", record.id, path)
                    return True

                record_id = note.id
                if self._repo.get(record_id) is not None:
                    record_id = new_note_id()
                self._repo.insert(
                    Record(
                        id=record_id,
                        path=path,
                        identity_reference=identity.reference if identity else None,
                        identity_hash=identity.token if identity else None,
                        title=note.title,
                        body=note.body,
                        created_at=note.created_at,
                        modified_at=now,
                    )
                )
                logger.debug("Inserted record %s for %s", record_id, path)
                return True
            except sqlite3.Error as exc:
                logger.warning("Record save failed for %s: %s", path, exc)
                return False

    def find(self, location: Location) -> Record | None:
        """Return the record for *location*, healing its stored path if it moved."""
        if self._repo is None:
            return None

        path = normalize_location(location)
        identity = self.resolver.capture(path)
        with self._lock:
            try:
                return self._locate(path, identity)
            except sqlite3.Error as exc:
                logger.warning("Record lookup failed for %s: %s", path, exc)
                return None

    def remove(self, location: Location) -> bool:
        """Delete the record for *location*. Deleting nothing is success."""
        if self._repo is None:
            logger.warning("Cannot delete %s: record store unavailable", location)
            return False

        path = normalize_location(location)
        identity = self.resolver.capture(path)
        with self._lock:
            try:
                deleted = self._repo.delete_by_path(path)
                # The object may still own a record filed under an older path.
                if identity is not None:
                    deleted += self._repo.delete_by_identity_hash(identity.token)
            except sqlite3.Error as exc:
                logger.warning("Record delete failed for %s: %s", path, exc)
                return False
        if deleted:
            logger.debug("Deleted %d record(s) for %s", deleted, path)
        else:
            logger.debug("No record existed for %s", path)
        return True

    def exists(self, location: Location) -> bool:
        return self.find(location) is not None

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def get(self, record_id: str) -> Record | None:
        if self._repo is None:
            return None
        with self._lock:
            try:
                return self._repo.get(record_id)
            except sqlite3.Error as exc:
                logger.warning("Record read failed for %s: %s", record_id, exc)
                return None

    def list_records(self) -> list[Record]:
        if self._repo is None:
            return []
        with self._lock:
            try:
                return self._repo.list_all()
            except sqlite3.Error as exc:
                logger.warning("Record listing failed: %s", exc)
                return []

    def count(self) -> int:
        if self._repo is None:
            return 0
        with self._lock:
            try:
                return self._repo.count()
            except sqlite3.Error as exc:
                logger.warning("Record count failed: %s", exc)
                return 0

    def current_location(self, record: Record) -> Path | None:
        """Where *record*'s object lives now, or None if it can no longer be found."""
        if record.identity_reference is None:
            path = Path(record.path)
            return path if path.exists() else None
        return self.resolver.resolve(record.identity_reference, hint=record.path)

    # ------------------------------------------------------------------
    # Matching (caller holds the lock)
    # ------------------------------------------------------------------

    def _match_for_write(self, path: str, identity: Identity | None) -> Record | None:
        if identity is not None:
            record = self._repo.get_by_identity_hash(identity.token)
            if record is not None:
                return record
        token = identity.token if identity else None
        for record in self._repo.get_by_path(path):
            if token is None or record.identity_hash is None:
                return record
            if not self._owned_elsewhere(record):
                return record
        return None

    def _locate(self, path: str, identity: Identity | None) -> Record | None:
        token = identity.token if identity else None
        by_path = self._repo.get_by_path(path)
        for record in by_path:
            if token is None or record.identity_hash in (None, token):
                return self._heal(record, path, identity)

        if identity is not None:
            record = self._repo.get_by_identity_hash(identity.token)
            if record is not None and self._reference_points_at(record, path):
                logger.debug("Found record %s by identity (was %s)", record.id, record.path)
                return self._heal(record, path, identity)

        # Same path, different object. Only take the record over when its own
        # object is gone (e.g. replaced by an atomic save).
        for record in by_path:
            if not self._owned_elsewhere(record):
                return self._heal(record, path, identity)
        return None

    def _owned_elsewhere(self, record: Record) -> bool:
        """True if the object *record* was bound to still exists."""
        if record.identity_reference is None:
            return False
        current = self.resolver.resolve(record.identity_reference)
        if current is not None:
            logger.debug("Record %s still belongs to %s", record.id, current)
        return current is not None

    def _reference_points_at(self, record: Record, path: str) -> bool:
        if record.identity_reference is None:
            return True
        resolved = self.resolver.resolve(record.identity_reference, hint=path)
        return resolved is not None and str(resolved) == path

    def _heal(self, record: Record, path: str, identity: Identity | None) -> Record:
        """Rewrite the record's path and identity to what was just observed."""
        reference = identity.reference if identity else record.identity_reference
        identity_hash = identity.token if identity else record.identity_hash
        if (
            record.path == path
            and record.identity_reference == reference
            and record.identity_hash == identity_hash
        ):
            return record
        self._repo.relocate(record.id, path, reference, identity_hash)
        if record.path != path:
            logger.info("Record %s moved: %s -> %s", record.id, record.path, path)
        record.path = path
        record.identity_reference = reference
        record.identity_hash = identity_hash
        return record
