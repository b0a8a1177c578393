"""Identity resolution for annotated file-system objects.

Paths do not survive a rename or move, so every Record also carries:

- an *identity token*: SHA-256 of the object's device, inode and (where the
  platform reports one) birth time. Stable across rename/move on one volume.
- a *relocatable reference*: a small JSON blob holding the same identity plus
  the path it was captured at, which :meth:`IdentityResolver.resolve` can turn
  back into a live path.

Capture never raises. A ``None`` result means "fall back to path matching".
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

_REFERENCE_VERSION = 1


@dataclass(frozen=True)
class Identity:
    """Identity captured for one location at one point in time."""

    token: str
    reference: bytes


def _birth(st: os.stat_result) -> str:
    birth = getattr(st, "st_birthtime", None)
    return "" if birth is None else repr(float(birth))


def _token(dev: int, ino: int, birth: str) -> str:
    return hashlib.sha256(f"{dev}:{ino}:{birth}".encode()).hexdigest()


def normalize_location(location: str | os.PathLike[str]) -> str:
    return os.path.abspath(os.fspath(location))


def token_from_reference(reference: bytes | None) -> str | None:
    """Derive the identity token stored alongside *reference*, or None if undecodable."""
    fields = _decode(reference)
    if fields is None:
        return None
    return _token(fields["dev"], fields["ino"], fields["birth"])


def _decode(reference: bytes | None) -> dict | None:
    if not reference:
        return None
    try:
        data = json.loads(reference.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return None
    if not isinstance(data, dict) or data.get("v") != _REFERENCE_VERSION:
        return None
    try:
        return {
            "dev": int(data["dev"]),
            "ino": int(data["ino"]),
            "birth": str(data.get("birth", "")),
            "path": str(data["path"]),
        }
    except (KeyError, TypeError, ValueError):
        return None


class IdentityResolver:
    """Captures and re-resolves object identity for locations."""

    def __init__(self, *, search_siblings: bool = True) -> None:
        self.search_siblings = search_siblings

    def capture(self, location: str | os.PathLike[str]) -> Identity | None:
        """Return the identity of the object at *location*, or None if unavailable."""
        path = normalize_location(location)
        try:
            st = os.stat(path)
        except OSError as exc:
            logger.debug("Identity unavailable for %s: %s", path, exc)
            return None

        birth = _birth(st)
        reference = json.dumps(
            {
                "v": _REFERENCE_VERSION,
                "dev": st.st_dev,
                "ino": st.st_ino,
                "birth": birth,
                "path": path,
            },
            sort_keys=True,
        ).encode("utf-8")
        return Identity(token=_token(st.st_dev, st.st_ino, birth), reference=reference)

    def token(self, location: str | os.PathLike[str]) -> str | None:
        identity = self.capture(location)
        return identity.token if identity else None

    def resolve(
        self,
        reference: bytes | None,
        hint: str | os.PathLike[str] | None = None,
    ) -> Path | None:
        """Turn *reference* back into a live path.

        Candidates are tried in order: *hint*, the recorded path, then entries
        of the recorded parent directory (a rename in place). Returns None when
        the reference is stale or cannot be decoded.
        """
        fields = _decode(reference)
        if fields is None:
            return None

        for candidate in self._candidates(fields["path"], hint):
            if self._matches(candidate, fields):
                return Path(candidate)

        logger.debug("Reference for %s is stale", fields["path"])
        return None

    def _candidates(self, recorded: str, hint: str | os.PathLike[str] | None):
        if hint is not None:
            yield normalize_location(hint)
        yield recorded
        if not self.search_siblings:
            return
        parent = os.path.dirname(recorded)
        try:
            with os.scandir(parent) as entries:
                for entry in entries:
                    yield entry.path
        except OSError:
            return

    @staticmethod
    def _matches(candidate: str, fields: dict) -> bool:
        try:
            st = os.stat(candidate)
        except OSError:
            return False
        return (
            st.st_dev == fields["dev"]
            and st.st_ino == fields["ino"]
            and _birth(st) == fields["birth"]
        )
