"""Low-level extended-attribute I/O.

Backends read and write raw attribute bytes directly on the file, bypassing
any host indexing service. ``get`` returns None for a missing attribute,
``remove`` treats a missing attribute (or a missing object) as already
removed, and every other failure raises OSError.
"""

from __future__ import annotations

import errno
import os
from typing import Protocol

from marginalia.mirror.commands import CommandRunner

_MISSING_ERRNOS = frozenset(
    code for code in (getattr(errno, "ENODATA", None), getattr(errno, "ENOATTR", None)) if code
)


class AttributeBackend(Protocol):
    def get(self, path: str, name: str) -> bytes | None: ...

    def set(self, path: str, name: str, value: bytes) -> None: ...

    def remove(self, path: str, name: str) -> None: ...


class OsAttributes:
    """``os.getxattr`` family (Linux)."""

    def get(self, path: str, name: str) -> bytes | None:
        try:
            return os.getxattr(path, name)
        except OSError as exc:
            if exc.errno in _MISSING_ERRNOS:
                return None
            raise

    def set(self, path: str, name: str, value: bytes) -> None:
        os.setxattr(path, name, value)

    def remove(self, path: str, name: str) -> None:
        try:
            os.removexattr(path, name)
        except FileNotFoundError:
            return
        except OSError as exc:
            if exc.errno not in _MISSING_ERRNOS:
                raise


class XattrToolAttributes:
    """The macOS ``xattr`` command-line tool, hex-encoded to keep binary plists intact."""

    def __init__(self, runner: CommandRunner, executable: str = "/usr/bin/xattr") -> None:
        self.runner = runner
        self.executable = executable

    def get(self, path: str, name: str) -> bytes | None:
        result = self.runner.run([self.executable, "-px", name, path])
        if not result.ok:
            if _is_missing(result.stderr):
                return None
            raise OSError(f"xattr -px failed for {path}: {result.stderr.strip()}")
        return bytes.fromhex("".join(result.stdout.split()))

    def set(self, path: str, name: str, value: bytes) -> None:
        result = self.runner.run([self.executable, "-wx", name, value.hex(), path])
        if not result.ok:
            raise OSError(f"xattr -wx failed for {path}: {result.stderr.strip()}")

    def remove(self, path: str, name: str) -> None:
        result = self.runner.run([self.executable, "-d", name, path])
        if not result.ok and not (_is_missing(result.stderr) or _is_missing_file(result.stderr)):
            raise OSError(f"xattr -d failed for {path}: {result.stderr.strip()}")


def _is_missing(stderr: str) -> bool:
    return "no such xattr" in stderr.lower()


def _is_missing_file(stderr: str) -> bool:
    return "no such file" in stderr.lower()
