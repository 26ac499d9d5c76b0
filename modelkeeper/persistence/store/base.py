"""Directory handle interface.

A directory handle is a previously granted, writable view onto one folder,
modelled on the browser File System Access API: it lists entries, opens
child directories, reads/writes/removes files by name and reports whether
write permission is still held.  The interface is async so that local and
sandboxed (permission-prompting) backends share one shape.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from modelkeeper.persistence.models.enums import EntryKind, PermissionState


@runtime_checkable
class DirectoryHandle(Protocol):
    """Async protocol for one directory.

    Names passed to the file methods are single path segments; nesting goes
    through ``get_directory``.
    """

    @property
    def name(self) -> str: ...

    async def entries(self) -> list[tuple[str, EntryKind]]:
        """List direct children as ``(name, kind)`` pairs."""
        ...

    async def get_directory(self, name: str, *, create: bool = False) -> DirectoryHandle:
        """Open a child directory.  Raises ``FileNotFoundError`` if missing and not ``create``."""
        ...

    async def read_text(self, name: str) -> str:
        """Read a child file.  Raises ``FileNotFoundError`` if missing."""
        ...

    async def write_text(self, name: str, content: str) -> None:
        """Create or replace a child file."""
        ...

    async def remove(self, name: str) -> None:
        """Delete a child file.  Raises ``FileNotFoundError`` if missing."""
        ...

    async def query_permission(self) -> PermissionState:
        """Current write permission, without prompting."""
        ...

    async def request_permission(self) -> PermissionState:
        """Ask for write permission (may prompt).  Returns the resulting state."""
        ...


@dataclass(frozen=True, slots=True)
class FileEntry:
    """A file found by ``walk_files``."""

    path: str
    """POSIX path relative to the walk root."""

    parent: DirectoryHandle
    name: str


async def walk_files(
    root: DirectoryHandle,
    *,
    descend: Callable[[str], bool] | None = None,
) -> list[FileEntry]:
    """Collect every file under ``root`` with an explicit worklist.

    ``descend`` receives the relative path of each directory found and
    decides whether to enter it; by default every directory is entered.
    Results are sorted by path.
    """
    found: list[FileEntry] = []
    queue: deque[tuple[str, DirectoryHandle]] = deque([("", root)])
    while queue:
        prefix, handle = queue.popleft()
        for name, kind in await handle.entries():
            path = f"{prefix}{name}"
            if kind == EntryKind.FILE:
                found.append(FileEntry(path=path, parent=handle, name=name))
            elif descend is None or descend(path):
                queue.append((f"{path}/", await handle.get_directory(name)))
    found.sort(key=lambda e: e.path)
    return found
