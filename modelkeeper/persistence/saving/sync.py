"""Directory synchronization: make a directory match a record set.

Two phases:

(a) scan the root and the typed subdirectories with a worklist and delete
    every *managed* file (see ``MANAGED_EXTENSIONS``) that is not expected.
    A failed deletion is logged and reported, never fatal.
(b) write every expected record, creating subdirectories as needed.  Files
    whose content is already identical are left untouched.  A failed write
    aborts with ``SyncWriteError``.

Files outside the managed allow-list are never touched.  Deleting before
writing keeps a renamed entity from existing twice even if the write phase
fails part-way.
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from modelkeeper.persistence.errors import DirectoryPermissionError, SyncWriteError
from modelkeeper.persistence.layout.categorize import is_managed
from modelkeeper.persistence.models.enums import ResourceKind
from modelkeeper.persistence.models.reports import FileRecord, SyncReport
from modelkeeper.persistence.store.base import DirectoryHandle, walk_files

# Subdirectories the synchronizer scans for stale files.
MANAGED_DIRECTORIES: frozenset[str] = frozenset(k.value for k in ResourceKind)


async def sync(
    expected: Sequence[FileRecord],
    directory: DirectoryHandle,
    *,
    skip_unchanged: bool = True,
) -> SyncReport:
    """Reconcile ``directory`` with ``expected``.

    Raises
    ------
    SyncWriteError
        An expected file could not be written.
    DirectoryPermissionError
        Write permission was lost; the caller decides whether that is fatal.
    """
    report = SyncReport()
    wanted = {r.path: r for r in expected}

    # -- (a) stale cleanup -------------------------------------------------------
    existing = await walk_files(directory, descend=lambda path: path in MANAGED_DIRECTORIES)
    present: dict[str, str | None] = {}
    for entry in existing:
        if entry.path in wanted:
            present[entry.path] = None
            continue
        if not is_managed(entry.name):
            continue
        try:
            await entry.parent.remove(entry.name)
        except DirectoryPermissionError:
            raise
        except OSError as exc:
            logger.warning("Could not delete stale file '{}': {}", entry.path, exc)
            report.failed_deletions.append(entry.path)
        else:
            logger.debug("Deleted stale file '{}'", entry.path)
            report.deleted.append(entry.path)

    # -- (b) write -----------------------------------------------------------------
    handles: dict[str, DirectoryHandle] = {"": directory}
    for record in sorted(wanted.values(), key=lambda r: r.path):
        folder, _, name = record.path.rpartition("/")
        try:
            parent = await _directory(handles, folder)
            if skip_unchanged and record.path in present and await _same_content(parent, name, record.content):
                report.unchanged.append(record.path)
                continue
            await parent.write_text(name, record.content)
        except DirectoryPermissionError:
            raise
        except OSError as exc:
            raise SyncWriteError(record.path, exc) from exc
        report.written.append(record.path)

    logger.info(
        "Synced {}: {} written, {} unchanged, {} deleted, {} failed deletion(s)",
        directory.name or "<directory>",
        len(report.written),
        len(report.unchanged),
        len(report.deleted),
        len(report.failed_deletions),
    )
    return report


async def _directory(handles: dict[str, DirectoryHandle], folder: str) -> DirectoryHandle:
    """Open (creating as needed) ``folder`` below the root, caching each level."""
    if folder in handles:
        return handles[folder]
    head, _, name = folder.rpartition("/")
    parent = await _directory(handles, head)
    handles[folder] = await parent.get_directory(name, create=True)
    return handles[folder]


async def _same_content(parent: DirectoryHandle, name: str, content: str) -> bool:
    try:
        return await parent.read_text(name) == content
    except (OSError, UnicodeDecodeError):
        return False
