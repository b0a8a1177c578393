"""Tests for StorageCoordinator: merging the record store and the mirror."""

from __future__ import annotations

import logging
import os
import shutil

import pytest

from marginalia.config import MarginaliaConfig
from marginalia.coordinator import StorageCoordinator, open_coordinator
from marginalia.db.connection import Database
from marginalia.db.store import RecordStore
from marginalia.mirror.side_channel import DisabledMirror, SideChannelMirror
from marginalia.note import Note, encode_comment


@pytest.fixture
def broken_store(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    s = RecordStore(Database(blocker / "notes.db"))
    s.open()
    return s


def _copy_with_comment(mirror: SideChannelMirror, src: str, dst: str) -> None:
    """Duplicate *src* the way a file manager does: new object, same comment."""
    shutil.copyfile(src, dst)
    comment = mirror.read(src)
    if comment:
        mirror.write(comment, dst)


# ------------------------------------------------------------------
# save / load
# ------------------------------------------------------------------

def test_save_then_load(coordinator, make_file):
    path = make_file("list.txt")
    assert coordinator.save(Note(title="Shopping", body="milk, eggs"), path)

    note = coordinator.load(path)
    assert (note.title, note.body) == ("Shopping", "milk, eggs")
    assert coordinator.mirror.read(path) == "NOTES:v1\n---TITLE---\nShopping\n---BODY---\nmilk, eggs"


def test_note_follows_rename(coordinator, make_file):
    old = make_file("list.txt")
    coordinator.save(Note(title="Shopping", body="milk, eggs"), old)
    new = old.replace("list.txt", "groceries.txt")
    os.rename(old, new)

    note = coordinator.load(new)
    assert (note.title, note.body) == ("Shopping", "milk, eggs")
    assert coordinator.load(old) is None


def test_save_after_rename_updates_same_record(coordinator, make_file):
    old = make_file()
    first = Note(title="v1")
    coordinator.save(first, old)
    new = old.replace("a.txt", "b.txt")
    os.rename(old, new)

    coordinator.save(Note(title="v2"), new)
    assert coordinator.store.count() == 1
    assert coordinator.load(new).id == first.id


def test_load_prefers_record_store(coordinator, make_file):
    path = make_file()
    coordinator.save(Note(title="stored"), path)
    coordinator.mirror.write(encode_comment("edited elsewhere", ""), path)
    assert coordinator.load(path).title == "stored"


def test_load_nothing(coordinator, make_file):
    assert coordinator.load(make_file()) is None
    assert not coordinator.exists(make_file("b.txt"))


def test_load_foreign_comment_as_body(coordinator, make_file):
    path = make_file()
    coordinator.mirror.write("written by another tool", path)
    note = coordinator.load(path)
    assert note.title == ""
    assert note.body == "written by another tool"
    assert note.path == path


def test_load_mirror_only_does_not_create_record(coordinator, make_file):
    path = make_file()
    coordinator.mirror.write(encode_comment("t", "b"), path)
    assert coordinator.load(path).title == "t"
    assert coordinator.store.count() == 0


def test_adopt_policy_creates_record(store, mirror, make_file):
    coordinator = StorageCoordinator(store, mirror, adopt_mirror_notes=True)
    path = make_file()
    mirror.write(encode_comment("t", "b"), path)

    note = coordinator.load(path)
    assert note.title == "t"
    assert store.count() == 1
    assert store.find(path).id == note.id


def test_duplicate_inherits_comment_not_record(coordinator, make_file):
    original = make_file("orig.txt")
    coordinator.save(Note(title="Shopping", body="milk"), original)
    copy = original.replace("orig.txt", "copy.txt")
    _copy_with_comment(coordinator.mirror, original, copy)

    note = coordinator.load(copy)
    assert note.title == "Shopping"
    assert coordinator.store.count() == 1
    assert coordinator.load(original).title == "Shopping"


def test_whitespace_note_counts_as_empty(coordinator, make_file):
    path = make_file()
    coordinator.save(Note(title="x"), path)
    assert coordinator.save(Note(title="  ", body="\n"), path)
    assert coordinator.load(path) is None


# ------------------------------------------------------------------
# exists / delete
# ------------------------------------------------------------------

def test_exists_via_mirror_only(coordinator, make_file):
    path = make_file()
    coordinator.mirror.write(encode_comment("t", ""), path)
    assert coordinator.exists(path)


def test_empty_save_deletes(coordinator, make_file):
    path = make_file()
    coordinator.save(Note(title="x", body="y"), path)
    assert coordinator.save(Note(), path)
    assert not coordinator.exists(path)
    assert coordinator.store.count() == 0
    assert coordinator.mirror.read(path) is None


def test_delete_clears_both_channels(coordinator, make_file):
    path = make_file()
    coordinator.save(Note(body="x"), path)
    assert coordinator.delete(path)
    assert coordinator.load(path) is None


def test_delete_nothing_is_success(coordinator, make_file):
    assert coordinator.delete(make_file())


def test_delete_note_of_removed_file(coordinator, make_file):
    path = make_file()
    coordinator.save(Note(title="t", body="b"), path)
    os.remove(path)

    assert coordinator.delete(path)
    assert coordinator.store.count() == 0


def test_delete_reports_partial_failure(coordinator, memory_attributes, make_file, caplog):
    path = make_file()
    coordinator.save(Note(body="x"), path)
    memory_attributes.fail_writes = True

    with caplog.at_level("WARNING", logger="marginalia"):
        assert coordinator.delete(path) is False
    assert coordinator.store.count() == 0
    assert "Partial delete" in caplog.text


# ------------------------------------------------------------------
# Partial failure
# ------------------------------------------------------------------

def test_save_succeeds_when_only_mirror_fails(coordinator, memory_attributes, make_file, caplog):
    memory_attributes.fail_writes = True
    path = make_file()
    with caplog.at_level("WARNING", logger="marginalia"):
        assert coordinator.save(Note(body="x"), path)
    assert "record store only" in caplog.text
    assert coordinator.load(path).body == "x"


def test_unavailable_store_degrades_to_mirror(broken_store, mirror, make_file):
    coordinator = StorageCoordinator(broken_store, mirror)
    path = make_file()
    assert coordinator.save(Note(title="t", body="b"), path)
    note = coordinator.load(path)
    assert (note.title, note.body) == ("t", "b")
    assert coordinator.exists(path)
    # Store cannot confirm the delete, so the merged result is a failure
    assert coordinator.delete(path) is False
    assert mirror.read(path) is None


def test_save_fails_when_no_channel_accepts(broken_store, make_file, caplog):
    coordinator = StorageCoordinator(broken_store, DisabledMirror())
    with caplog.at_level("ERROR", logger="marginalia"):
        assert coordinator.save(Note(body="x"), make_file()) is False
    assert "no channel accepted" in caplog.text


def test_disabled_mirror_does_not_warn(store, make_file, caplog):
    coordinator = StorageCoordinator(store, DisabledMirror())
    with caplog.at_level("WARNING", logger="marginalia"):
        assert coordinator.save(Note(body="x"), make_file())
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]


# ------------------------------------------------------------------
# status / open_coordinator
# ------------------------------------------------------------------

def test_status(coordinator, make_file):
    coordinator.save(Note(body="x"), make_file())
    status = coordinator.status()
    assert status.store_available
    assert status.record_count == 1
    assert status.mirror_enabled
    assert status.mirror_profile == "xdg"


def _config(tmp_path, *, mirror: bool) -> MarginaliaConfig:
    cfg = MarginaliaConfig()
    cfg.store.path = tmp_path / "state" / "notes.db"
    cfg.mirror.enabled = mirror
    cfg.mirror.profile = "xdg"
    return cfg


def test_open_coordinator_without_mirror(tmp_path, make_file):
    with open_coordinator(_config(tmp_path, mirror=False)) as coordinator:
        assert isinstance(coordinator.mirror, DisabledMirror)
        path = make_file()
        assert coordinator.save(Note(title="t"), path)
        assert coordinator.load(path).title == "t"
        assert coordinator.status().db_path == tmp_path / "state" / "notes.db"
    assert not coordinator.store.available


def test_open_coordinator_with_mirror(tmp_path):
    cfg = _config(tmp_path, mirror=True)
    cfg.mirror.attribute = "user.marginalia.test"
    cfg.policy.adopt_mirror_notes = True
    with open_coordinator(cfg) as coordinator:
        assert isinstance(coordinator.mirror, SideChannelMirror)
        assert coordinator.mirror.profile.attribute == "user.marginalia.test"
        assert coordinator.adopt_mirror_notes


def test_open_coordinator_survives_bad_store(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    cfg = _config(tmp_path, mirror=False)
    cfg.store.path = blocker / "notes.db"
    with open_coordinator(cfg) as coordinator:
        assert not coordinator.status().store_available
