"""Domain models for the note record store."""

from __future__ import annotations

from dataclasses import dataclass

from marginalia.note import Note


@dataclass
class Record:
    id: str
    path: str  # last place the object was seen; not authoritative for identity
    title: str
    body: str
    created_at: float
    modified_at: float
    identity_reference: bytes | None = None
    identity_hash: str | None = None

    def to_note(self) -> Note:
        return Note(
            id=self.id,
            title=self.title,
            body=self.body,
            created_at=self.created_at,
            modified_at=self.modified_at,
            path=self.path,
        )
