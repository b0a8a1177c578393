"""Host profiles: how each platform exposes a per-file comment.

A profile bundles the attribute name, its byte encoding, the primary write
path (an external tool that keeps the host's own view in sync), the optional
indexed read path, and the re-index request used after a low-level write.

- ``darwin``: the Finder comment. Written through Finder via ``osascript`` so
  Spotlight picks it up; read through ``mdls`` when indexed; the raw attribute
  holds a binary plist string.
- ``xdg``: the freedesktop ``user.xdg.comment`` attribute, plain UTF-8,
  written with ``setfattr``. There is no indexed read path.
"""

from __future__ import annotations

import logging
import os
import plistlib
import sys

from marginalia.mirror.attributes import AttributeBackend, OsAttributes, XattrToolAttributes
from marginalia.mirror.commands import CommandRunner

logger = logging.getLogger(__name__)

PROFILE_NAMES = ("auto", "darwin", "xdg")


class HostProfile:
    name = "base"
    attribute = ""

    def __init__(
        self,
        runner: CommandRunner,
        attributes: AttributeBackend,
        *,
        attribute: str | None = None,
        reindex: bool = True,
    ) -> None:
        self.runner = runner
        self.attributes = attributes
        if attribute:
            self.attribute = attribute
        self.reindex = reindex

    def encode_attribute(self, text: str) -> bytes:
        return text.encode("utf-8")

    def decode_attribute(self, raw: bytes) -> str | None:
        return raw.decode("utf-8", errors="replace")

    def primary_write(self, path: str, text: str) -> bool:
        raise NotImplementedError

    def primary_clear(self, path: str) -> bool:
        raise NotImplementedError

    @property
    def has_indexed_read(self) -> bool:
        return False

    def indexed_read(self, path: str) -> str | None:
        return None

    def request_reindex(self, path: str) -> None:
        """Ask the host indexer to pick up a low-level change. Fire-and-forget."""


class DarwinProfile(HostProfile):
    name = "darwin"
    attribute = "com.apple.metadata:kMDItemFinderComment"

    def encode_attribute(self, text: str) -> bytes:
        return plistlib.dumps(text, fmt=plistlib.FMT_BINARY)

    def decode_attribute(self, raw: bytes) -> str | None:
        try:
            value = plistlib.loads(raw)
        except (plistlib.InvalidFileException, ValueError):
            logger.debug("Finder comment attribute is not a plist")
            return None
        return value if isinstance(value, str) else None

    def primary_write(self, path: str, text: str) -> bool:
        script = (
            'tell application "Finder"\n'
            f'    set theFile to POSIX file "{_applescript_escape(path)}" as alias\n'
            f'    set comment of theFile to "{_applescript_escape(text)}"\n'
            "end tell\n"
        )
        return self.runner.run(["/usr/bin/osascript", "-"], input=script).ok

    def primary_clear(self, path: str) -> bool:
        return self.primary_write(path, "")

    @property
    def has_indexed_read(self) -> bool:
        return True

    def indexed_read(self, path: str) -> str | None:
        result = self.runner.run(
            ["/usr/bin/mdls", "-raw", "-name", "kMDItemFinderComment", path]
        )
        if not result.ok:
            return None
        value = result.stdout
        if value in ("", "(null)"):
            return None
        return value

    def request_reindex(self, path: str) -> None:
        if not self.reindex:
            return
        try:
            os.utime(path)
        except OSError as exc:
            logger.debug("Could not touch %s: %s", path, exc)
        self.runner.spawn(["/usr/bin/mdimport", path])


class XdgProfile(HostProfile):
    name = "xdg"
    attribute = "user.xdg.comment"

    def primary_write(self, path: str, text: str) -> bool:
        # Hex form so setfattr does not reinterpret quotes or a leading 0x/0s.
        value = "0x" + self.encode_attribute(text).hex()
        return self.runner.run(["setfattr", "-n", self.attribute, "-v", value, path]).ok

    def primary_clear(self, path: str) -> bool:
        return self.runner.run(["setfattr", "-x", self.attribute, path]).ok


def _applescript_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def detect_profile_name(platform: str | None = None) -> str:
    platform = platform or sys.platform
    return "darwin" if platform == "darwin" else "xdg"


def build_profile(
    name: str = "auto",
    *,
    runner: CommandRunner | None = None,
    attribute: str | None = None,
    reindex: bool = True,
) -> HostProfile:
    """Construct the profile called *name* (``auto`` picks one for this host)."""
    if name not in PROFILE_NAMES:
        raise ValueError(f"Unknown mirror profile '{name}'. Choose from: {', '.join(PROFILE_NAMES)}")
    if name == "auto":
        name = detect_profile_name()
    runner = runner or CommandRunner()
    if name == "darwin":
        return DarwinProfile(
            runner, XattrToolAttributes(runner), attribute=attribute, reindex=reindex
        )
    return XdgProfile(runner, OsAttributes(), attribute=attribute, reindex=reindex)
