"""Snapshot store for autosave.

Every autosave first writes the whole in-memory workspace as one JSON blob
keyed by workspace id, so the latest state survives even when the bound
directory is unavailable.  Layout::

    {data_root}/{prefix}/snapshots/{key}.json

When prefix is None, the path collapses to ``{data_root}/snapshots/{key}.json``.
"""

from __future__ import annotations

import os
from functools import partial
from pathlib import Path
from typing import Protocol, runtime_checkable

from anyio import to_thread

from modelkeeper.persistence.models.workspace import WorkspaceSnapshot
from modelkeeper.persistence.store.local import _atomic_write, _read_file


@runtime_checkable
class SnapshotStore(Protocol):
    """Async protocol: store a snapshot blob under a key, retrieve it by key."""

    async def write_snapshot(self, key: str, snapshot: WorkspaceSnapshot) -> None: ...

    async def read_snapshot(self, key: str) -> WorkspaceSnapshot:
        """Raises ``FileNotFoundError`` if not found."""
        ...

    async def exists(self, key: str) -> bool: ...

    async def delete(self, key: str) -> None:
        """No-op if not found."""
        ...


class LocalSnapshotStore:
    """Local filesystem implementation of the SnapshotStore protocol."""

    def __init__(self, data_root: str | Path, prefix: str | None = None) -> None:
        base = Path(data_root)
        if prefix:
            base = base / prefix
        self._base = base / "snapshots"

    def _path(self, key: str) -> Path:
        if not key or "/" in key or key.startswith("."):
            raise ValueError(f"Invalid snapshot key: {key!r}")
        return self._base / f"{key}.json"

    # -- Write -----------------------------------------------------------------

    async def write_snapshot(self, key: str, snapshot: WorkspaceSnapshot) -> None:
        data = snapshot.model_dump_json(indent=2)
        await to_thread.run_sync(partial(_atomic_write, self._path(key), data))

    # -- Read ------------------------------------------------------------------

    async def read_snapshot(self, key: str) -> WorkspaceSnapshot:
        raw = await to_thread.run_sync(partial(_read_file, self._path(key)))
        return WorkspaceSnapshot.model_validate_json(raw)

    # -- Utilities -------------------------------------------------------------

    async def exists(self, key: str) -> bool:
        return await to_thread.run_sync(self._path(key).exists)

    async def delete(self, key: str) -> None:
        await to_thread.run_sync(partial(_unlink, self._path(key)))


def _unlink(path: Path) -> None:
    if path.exists():
        os.unlink(path)
