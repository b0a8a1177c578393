"""Storage coordinator: the one entry point callers use.

Every operation touches the record store first and the side-channel mirror
second (or as fallback), then merges the outcomes:

- save: success if either channel accepted the note; an empty note deletes.
- load: record store, else a note decoded from the mirror.
- exists: record store, or a non-empty mirror comment.
- delete: success only if both channels are clear.

Channel failures are logged and reduced to booleans here; no channel
exception reaches the caller. Operations block (sqlite, external tools), so UI
callers should run them off their interactive thread.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from marginalia.config import MarginaliaConfig, load_config
from marginalia.db.connection import Database
from marginalia.db.store import RecordStore
from marginalia.identity import IdentityResolver, normalize_location
from marginalia.mirror.commands import CommandRunner
from marginalia.mirror.profiles import build_profile
from marginalia.mirror.side_channel import DisabledMirror, SideChannelMirror
from marginalia.note import Note

logger = logging.getLogger(__name__)

Location = str | os.PathLike[str]


class Mirror(Protocol):
    enabled: bool

    @property
    def name(self) -> str: ...

    def write(self, encoded: str, location: Location) -> bool: ...

    def read(self, location: Location) -> str | None: ...

    def clear(self, location: Location) -> bool: ...


@dataclass
class CoordinatorStatus:
    store_available: bool
    db_path: Path
    record_count: int
    mirror_enabled: bool
    mirror_profile: str


class StorageCoordinator:
    """Merges the record store and the side-channel mirror into one API."""

    def __init__(
        self,
        store: RecordStore,
        mirror: Mirror,
        *,
        adopt_mirror_notes: bool = False,
    ) -> None:
        self.store = store
        self.mirror = mirror
        self.adopt_mirror_notes = adopt_mirror_notes

    def save(self, note: Note, location: Location) -> bool:
        """Store *note* for *location*. Saving an empty note deletes instead."""
        path = normalize_location(location)
        if note.is_empty:
            logger.debug("Empty note for %s; deleting instead", path)
            return self.delete(path)

        stored = self.store.upsert(note, path)
        mirrored = self.mirror.write(note.encode(), path)

        if stored and not mirrored and self.mirror.enabled:
            logger.warning("Saved %s to the record store only (mirror write failed)", path)
        elif mirrored and not stored:
            logger.warning("Saved %s to the mirror only (record store write failed)", path)
        elif not stored and not mirrored:
            logger.error("Save failed for %s: no channel accepted the note", path)
        return stored or mirrored

    def load(self, location: Location) -> Note | None:
        """Return the note for *location*, or None when neither channel has one."""
        path = normalize_location(location)
        record = self.store.find(path)
        if record is not None:
            return record.to_note()

        note = Note.decode(self.mirror.read(path), path=path)
        if note is None or note.is_empty:
            logger.debug("No note for %s", path)
            return None

        logger.debug("Note for %s found in mirror only", path)
        if self.adopt_mirror_notes and self.store.available:
            if self.store.upsert(note, path):
                record = self.store.find(path)
                if record is not None:
                    return record.to_note()
        return note

    def exists(self, location: Location) -> bool:
        path = normalize_location(location)
        if self.store.exists(path):
            return True
        return bool(self.mirror.read(path))

    def delete(self, location: Location) -> bool:
        """Remove the note from both channels. Nothing to remove is success."""
        path = normalize_location(location)
        removed = self.store.remove(path)
        cleared = self.mirror.clear(path)
        if not (removed and cleared):
            logger.warning(
                "Partial delete for %s (store: %s, mirror: %s)", path, removed, cleared
            )
        return removed and cleared

    def status(self) -> CoordinatorStatus:
        return CoordinatorStatus(
            store_available=self.store.available,
            db_path=self.store.database.db_path,
            record_count=self.store.count(),
            mirror_enabled=self.mirror.enabled,
            mirror_profile=self.mirror.name,
        )

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> StorageCoordinator:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def open_coordinator(config: MarginaliaConfig | None = None) -> StorageCoordinator:
    """Build and open a coordinator from *config* (loaded from disk if omitted).

    A record store that fails to open leaves the coordinator running on the
    mirror alone.

    Raises:
        ConfigError: If the configuration is invalid.
    """
    cfg = config if config is not None else load_config()

    resolver = IdentityResolver(search_siblings=cfg.identity.search_siblings)
    store = RecordStore(
        Database(cfg.store.path, busy_timeout_ms=cfg.store.busy_timeout_ms),
        resolver,
    )
    if not store.open():
        logger.warning("Continuing without the record store; notes use the mirror only")

    mirror: Mirror
    if cfg.mirror.enabled:
        profile = build_profile(
            cfg.mirror.profile,
            runner=CommandRunner(timeout=cfg.mirror.command_timeout),
            attribute=cfg.mirror.attribute,
            reindex=cfg.mirror.reindex,
        )
        mirror = SideChannelMirror(profile)
    else:
        mirror = DisabledMirror()

    return StorageCoordinator(store, mirror, adopt_mirror_notes=cfg.policy.adopt_mirror_notes)
