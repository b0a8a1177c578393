"""Side-channel mirror: the note as the host's own per-file comment.

Best effort and never authoritative. Each operation is an ordered chain:

- write: primary tool (keeps the host index in sync) -> raw attribute write,
  followed by a re-index request because the raw write bypasses the index.
- read: indexed read -> raw attribute read. The raw read must run whenever
  the indexed read comes back empty: freshly created or moved objects are
  not in the index yet even though the attribute moved with them.
- clear: primary tool with an empty comment -> raw attribute removal.
"""

from __future__ import annotations

import logging
import os

from marginalia.identity import normalize_location
from marginalia.mirror.profiles import HostProfile
from marginalia.mirror.strategies import Strategy, first_success

logger = logging.getLogger(__name__)


def _found(value: str | None) -> tuple[bool, str | None]:
    return bool(value), value


class SideChannelMirror:
    """Reads and writes encoded notes through a :class:`HostProfile`."""

    enabled = True

    def __init__(self, profile: HostProfile) -> None:
        self.profile = profile

    @property
    def name(self) -> str:
        return self.profile.name

    def write(self, encoded: str, location: str | os.PathLike[str]) -> bool:
        path = normalize_location(location)
        attempt = first_success(
            [
                Strategy("primary", lambda: (self.profile.primary_write(path, encoded), None)),
                Strategy("attribute", lambda: self._write_attribute(path, encoded)),
            ],
            label="mirror write",
        )
        if not attempt.ok:
            logger.warning("Mirror write failed for %s (tried %s)", path, attempt.failures)
        return attempt.ok

    def read(self, location: str | os.PathLike[str]) -> str | None:
        path = normalize_location(location)
        strategies = []
        if self.profile.has_indexed_read:
            strategies.append(Strategy("indexed", lambda: _found(self.profile.indexed_read(path))))
        strategies.append(Strategy("attribute", lambda: _found(self._read_attribute(path))))

        attempt = first_success(strategies, label="mirror read")
        if not attempt.ok:
            logger.debug("No mirror comment for %s", path)
            return None
        return attempt.value

    def clear(self, location: str | os.PathLike[str]) -> bool:
        path = normalize_location(location)
        attempt = first_success(
            [
                Strategy("primary", lambda: (self.profile.primary_clear(path), None)),
                Strategy("attribute", lambda: self._remove_attribute(path)),
            ],
            label="mirror clear",
        )
        if not attempt.ok:
            logger.warning("Mirror clear failed for %s (tried %s)", path, attempt.failures)
        return attempt.ok

    # ------------------------------------------------------------------
    # Low-level attribute path
    # ------------------------------------------------------------------

    def _write_attribute(self, path: str, encoded: str) -> tuple[bool, None]:
        raw = self.profile.encode_attribute(encoded)
        self.profile.attributes.set(path, self.profile.attribute, raw)
        self.profile.request_reindex(path)
        return True, None

    def _read_attribute(self, path: str) -> str | None:
        raw = self.profile.attributes.get(path, self.profile.attribute)
        if not raw:
            return None
        return self.profile.decode_attribute(raw)

    def _remove_attribute(self, path: str) -> tuple[bool, None]:
        self.profile.attributes.remove(path, self.profile.attribute)
        if os.path.lexists(path):
            self.profile.request_reindex(path)
        return True, None


class DisabledMirror:
    """Stand-in used when the side channel is switched off in configuration."""

    enabled = False
    name = "disabled"

    def write(self, encoded: str, location: str | os.PathLike[str]) -> bool:
        return False

    def read(self, location: str | os.PathLike[str]) -> str | None:
        return None

    def clear(self, location: str | os.PathLike[str]) -> bool:
        return True
