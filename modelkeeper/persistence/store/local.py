"""Local filesystem directory handle.

Uses ``anyio.to_thread.run_sync`` for non-blocking file I/O.

Writes are atomic: data is written to a temporary file in the same directory,
then renamed to the target path.  A crash mid-save therefore never leaves a
half-written resource file behind for the next load to trip over.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from functools import partial
from pathlib import Path

from anyio import to_thread

from modelkeeper.persistence.models.enums import EntryKind, PermissionState


class LocalDirectoryHandle:
    """Local filesystem implementation of the DirectoryHandle protocol."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def __repr__(self) -> str:
        return f"LocalDirectoryHandle({str(self._path)!r})"

    @property
    def name(self) -> str:
        return self._path.name

    @property
    def path(self) -> Path:
        return self._path

    # -- Read ------------------------------------------------------------------

    async def entries(self) -> list[tuple[str, EntryKind]]:
        return await to_thread.run_sync(partial(_scan, self._path))

    async def read_text(self, name: str) -> str:
        return await to_thread.run_sync(partial(_read_file, self._path / name))

    # -- Write -----------------------------------------------------------------

    async def get_directory(self, name: str, *, create: bool = False) -> LocalDirectoryHandle:
        child = self._path / name
        if create:
            await to_thread.run_sync(partial(child.mkdir, parents=True, exist_ok=True))
        elif not await to_thread.run_sync(child.is_dir):
            raise FileNotFoundError(str(child))
        return LocalDirectoryHandle(child)

    async def write_text(self, name: str, content: str) -> None:
        await to_thread.run_sync(partial(_atomic_write, self._path / name, content))

    async def remove(self, name: str) -> None:
        await to_thread.run_sync(os.unlink, self._path / name)

    # -- Permission ------------------------------------------------------------

    async def query_permission(self) -> PermissionState:
        writable = await to_thread.run_sync(partial(_is_writable, self._path))
        return PermissionState.GRANTED if writable else PermissionState.DENIED

    async def request_permission(self) -> PermissionState:
        # Nothing to prompt for on a plain filesystem.
        return await self.query_permission()


# -- Sync helpers (run in thread pool) -----------------------------------------


def _scan(path: Path) -> list[tuple[str, EntryKind]]:
    result: list[tuple[str, EntryKind]] = []
    with os.scandir(path) as it:
        for entry in it:
            if entry.name.endswith(".tmp"):
                continue
            kind = EntryKind.DIRECTORY if entry.is_dir() else EntryKind.FILE
            result.append((entry.name, kind))
    return sorted(result)


def _is_writable(path: Path) -> bool:
    return path.is_dir() and os.access(path, os.W_OK)


def _atomic_write(path: Path, data: str) -> None:
    """Write data atomically: temp file + rename.

    The temp file is created in the same directory so ``os.rename`` is atomic
    on POSIX.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


def _atomic_write_bytes(path: Path, data: bytes) -> None:
    """Binary variant of ``_atomic_write``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


def _read_file(path: Path) -> str:
    """Read file contents.  Raises ``FileNotFoundError`` if missing."""
    return path.read_text(encoding="utf-8")
