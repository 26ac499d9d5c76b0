"""Read-only file sources a workspace is loaded from."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from modelkeeper.persistence.store.base import DirectoryHandle, FileEntry, walk_files


@runtime_checkable
class FileSource(Protocol):
    """A flat set of relative POSIX paths with async text access."""

    @property
    def name(self) -> str:
        """Name of the root folder (used as the workspace name for v1 layouts)."""
        ...

    def names(self) -> list[str]: ...

    async def read(self, path: str) -> str:
        """Raises ``FileNotFoundError`` for unknown paths."""
        ...


class MemorySource:
    """Files held in memory, e.g. the members of an uploaded archive."""

    def __init__(self, files: dict[str, str], name: str = "") -> None:
        self._files = dict(files)
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def names(self) -> list[str]:
        return sorted(self._files)

    async def read(self, path: str) -> str:
        try:
            return self._files[path]
        except KeyError:
            raise FileNotFoundError(path) from None


class DirectorySource:
    """Every file under a directory handle.  Build with ``await DirectorySource.open(handle)``."""

    def __init__(self, handle: DirectoryHandle, entries: list[FileEntry]) -> None:
        self._handle = handle
        self._entries = {e.path: e for e in entries}

    @classmethod
    async def open(cls, handle: DirectoryHandle) -> DirectorySource:
        # Skip hidden folders such as .git
        entries = await walk_files(handle, descend=lambda path: not path.rsplit("/", 1)[-1].startswith("."))
        return cls(handle, entries)

    @property
    def name(self) -> str:
        return self._handle.name

    def names(self) -> list[str]:
        return list(self._entries)

    async def read(self, path: str) -> str:
        try:
            entry = self._entries[path]
        except KeyError:
            raise FileNotFoundError(path) from None
        return await entry.parent.read_text(entry.name)
