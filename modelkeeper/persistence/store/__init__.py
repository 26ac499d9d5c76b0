"""Storage backends: directory handles for workspace trees and the autosave snapshot store."""

from modelkeeper.persistence.store.base import DirectoryHandle, FileEntry, walk_files
from modelkeeper.persistence.store.local import LocalDirectoryHandle
from modelkeeper.persistence.store.memory import MemoryDirectoryHandle
from modelkeeper.persistence.store.snapshot import LocalSnapshotStore, SnapshotStore

__all__ = [
    "DirectoryHandle",
    "FileEntry",
    "LocalDirectoryHandle",
    "LocalSnapshotStore",
    "MemoryDirectoryHandle",
    "SnapshotStore",
    "walk_files",
]
