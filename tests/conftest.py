"""Shared pytest fixtures."""

from __future__ import annotations

import os

import pytest

from marginalia.coordinator import StorageCoordinator
from marginalia.db.connection import Database
from marginalia.db.migrations import initialize
from marginalia.db.store import RecordStore
from marginalia.identity import IdentityResolver
from marginalia.mirror.commands import CommandResult
from marginalia.mirror.profiles import DarwinProfile, XdgProfile
from marginalia.mirror.side_channel import SideChannelMirror


class FakeRunner:
    """Stands in for CommandRunner; answers by executable basename."""

    def __init__(self, results: dict[str, CommandResult] | None = None) -> None:
        self.results = results or {}
        self.calls: list[tuple[list[str], str | None]] = []
        self.spawned: list[list[str]] = []
        self.timeout = 5.0

    def run(self, args: list[str], *, input: str | None = None) -> CommandResult:
        self.calls.append((list(args), input))
        return self.results.get(
            os.path.basename(args[0]), CommandResult(ok=False, stderr="not installed")
        )

    def spawn(self, args: list[str]) -> bool:
        self.spawned.append(list(args))
        return True

    def ran(self, executable: str) -> bool:
        return any(os.path.basename(args[0]) == executable for args, _ in self.calls)


class MemoryAttributes:
    """Extended attributes kept in memory, keyed by inode so they follow renames."""

    def __init__(self) -> None:
        self.data: dict[tuple[int, int, str], bytes] = {}
        self.fail_writes = False

    def _key(self, path: str, name: str) -> tuple[int, int, str]:
        st = os.stat(path)
        return st.st_dev, st.st_ino, name

    def get(self, path: str, name: str) -> bytes | None:
        return self.data.get(self._key(path, name))

    def set(self, path: str, name: str, value: bytes) -> None:
        if self.fail_writes:
            raise PermissionError(f"denied: {path}")
        self.data[self._key(path, name)] = value

    def remove(self, path: str, name: str) -> None:
        if self.fail_writes:
            raise PermissionError(f"denied: {path}")
        try:
            key = self._key(path, name)
        except FileNotFoundError:
            return
        self.data.pop(key, None)


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / "state" / "notes.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def store(tmp_path):
    """Opened RecordStore backed by a database under tmp_path."""
    s = RecordStore(Database(tmp_path / "state" / "notes.db"), IdentityResolver())
    assert s.open()
    yield s
    s.close()


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def memory_attributes():
    return MemoryAttributes()


@pytest.fixture
def xdg_profile(fake_runner, memory_attributes):
    """xdg profile whose setfattr is 'not installed', so raw attributes are used."""
    return XdgProfile(fake_runner, memory_attributes)


@pytest.fixture
def darwin_profile(fake_runner, memory_attributes):
    return DarwinProfile(fake_runner, memory_attributes)


@pytest.fixture
def mirror(xdg_profile):
    return SideChannelMirror(xdg_profile)


@pytest.fixture
def coordinator(store, mirror):
    return StorageCoordinator(store, mirror)


@pytest.fixture
def make_file(tmp_path):
    """Create a file under tmp_path/files and return its path as a string."""
    root = tmp_path / "files"
    root.mkdir(exist_ok=True)

    def _make(name: str = "a.txt", content: str = "data") -> str:
        path = root / name
        path.write_text(content, encoding="utf-8")
        return str(path)

    return _make
