"""Note model and the side-channel comment codec.

Wire format (one text blob per file-system object)::

    NOTES:v1
    ---TITLE---
    <title lines>
    ---BODY---
    <body lines>

Payloads without the header were written by other tools and decode as a
body-only note.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field

FORMAT_HEADER = "NOTES:v1"
TITLE_DELIMITER = "---TITLE---"
BODY_DELIMITER = "---BODY---"


def new_note_id() -> str:
    return str(uuid.uuid4()).upper()


@dataclass
class Note:
    """A free-text annotation attached to a file or directory."""

    title: str = ""
    body: str = ""
    id: str = field(default_factory=new_note_id)
    created_at: float = field(default_factory=time.time)
    modified_at: float = field(default_factory=time.time)
    path: str | None = None  # where the note was last seen; informational only

    @property
    def is_empty(self) -> bool:
        """True when both title and body are blank (such notes are never stored)."""
        return not self.title.strip() and not self.body.strip()

    def update(self, title: str, body: str) -> None:
        self.title = title
        self.body = body
        self.modified_at = time.time()

    def encode(self) -> str:
        """Render the note in the side-channel wire format."""
        return encode_comment(self.title, self.body)

    @classmethod
    def decode(cls, payload: str | None, path: str | None = None) -> Note | None:
        """Build a note from a side-channel payload, or None for an empty payload."""
        if not payload:
            return None
        title, body = decode_comment(payload)
        return cls(title=title, body=body, path=path)


def encode_comment(title: str, body: str) -> str:
    return "\n".join([FORMAT_HEADER, TITLE_DELIMITER, title, BODY_DELIMITER, body])


def decode_comment(payload: str) -> tuple[str, str]:
    """Split *payload* into ``(title, body)``.

    Lines before the first delimiter are ignored; a missing header means the
    whole payload is the body.
    """
    if not payload.startswith(FORMAT_HEADER):
        return "", payload

    title_lines: list[str] = []
    body_lines: list[str] = []
    section: list[str] | None = None
    for line in payload.split("\n")[1:]:
        if line == TITLE_DELIMITER:
            section = title_lines
        elif line == BODY_DELIMITER:
            section = body_lines
        elif section is not None:
            section.append(line)
    return "\n".join(title_lines), "\n".join(body_lines)
