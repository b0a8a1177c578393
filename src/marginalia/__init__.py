"""Marginalia: notes attached to files that follow them across renames and moves."""

from marginalia.coordinator import StorageCoordinator, open_coordinator
from marginalia.note import Note

__all__ = ["Note", "StorageCoordinator", "open_coordinator"]
