"""In-memory directory handle.

Stands in for a picked folder in tests and in embedding hosts that keep the
workspace in memory.  ``permission`` can be changed at any time to emulate a
browser revoking access between two saves.
"""

from __future__ import annotations

from modelkeeper.persistence.errors import DirectoryPermissionError
from modelkeeper.persistence.models.enums import EntryKind, PermissionState


class MemoryDirectoryHandle:
    """Tree of nested dicts implementing the DirectoryHandle protocol."""

    def __init__(
        self,
        name: str = "",
        files: dict[str, str] | None = None,
        *,
        permission: PermissionState = PermissionState.GRANTED,
    ) -> None:
        self._name = name
        self._files: dict[str, str] = {}
        self._dirs: dict[str, MemoryDirectoryHandle] = {}
        self.permission = permission
        self.granted_on_request = True
        for path, content in (files or {}).items():
            self._put(path.split("/"), content)

    def __repr__(self) -> str:
        return f"MemoryDirectoryHandle({self._name!r}, {len(self.snapshot())} files)"

    @property
    def name(self) -> str:
        return self._name

    def _put(self, parts: list[str], content: str) -> None:
        if len(parts) == 1:
            self._files[parts[0]] = content
            return
        child = self._dirs.setdefault(parts[0], MemoryDirectoryHandle(parts[0], permission=self.permission))
        child._put(parts[1:], content)

    def _check_writable(self) -> None:
        if self.permission != PermissionState.GRANTED:
            raise DirectoryPermissionError(self._name or "<memory>", self.permission.value)

    def set_permission(self, state: PermissionState) -> None:
        """Apply ``state`` to this directory and all of its children."""
        self.permission = state
        for child in self._dirs.values():
            child.set_permission(state)

    def snapshot(self) -> dict[str, str]:
        """Flat ``{relative_path: content}`` view of the whole tree."""
        result = dict(self._files)
        for dir_name, child in self._dirs.items():
            result.update({f"{dir_name}/{p}": c for p, c in child.snapshot().items()})
        return dict(sorted(result.items()))

    # -- Protocol --------------------------------------------------------------

    async def entries(self) -> list[tuple[str, EntryKind]]:
        listed = [(n, EntryKind.FILE) for n in self._files]
        listed += [(n, EntryKind.DIRECTORY) for n in self._dirs]
        return sorted(listed)

    async def get_directory(self, name: str, *, create: bool = False) -> MemoryDirectoryHandle:
        if name in self._dirs:
            return self._dirs[name]
        if not create:
            raise FileNotFoundError(name)
        self._check_writable()
        child = MemoryDirectoryHandle(name, permission=self.permission)
        self._dirs[name] = child
        return child

    async def read_text(self, name: str) -> str:
        try:
            return self._files[name]
        except KeyError:
            raise FileNotFoundError(name) from None

    async def write_text(self, name: str, content: str) -> None:
        self._check_writable()
        self._files[name] = content

    async def remove(self, name: str) -> None:
        self._check_writable()
        if name not in self._files:
            raise FileNotFoundError(name)
        del self._files[name]

    async def query_permission(self) -> PermissionState:
        return self.permission

    async def request_permission(self) -> PermissionState:
        if self.permission == PermissionState.PROMPT and self.granted_on_request:
            self.set_permission(PermissionState.GRANTED)
        return self.permission
