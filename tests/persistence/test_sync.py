"""Unit tests for directory synchronization.

Runs against ``MemoryDirectoryHandle`` and, for the filesystem specifics,
``LocalDirectoryHandle`` on a temporary directory.
"""

from __future__ import annotations

import pytest
from factories import ORDERS_ID, SALES_ID, manifest_yaml, table_yaml

from modelkeeper.persistence.errors import DirectoryPermissionError, SyncWriteError
from modelkeeper.persistence.formats.yaml_engine import YamlFormatEngine
from modelkeeper.persistence.loading.loader import load_workspace
from modelkeeper.persistence.loading.source import DirectorySource
from modelkeeper.persistence.models.enums import PermissionState
from modelkeeper.persistence.models.reports import FileRecord
from modelkeeper.persistence.models.workspace import WorkspaceSnapshot
from modelkeeper.persistence.saving.serializer import WorkspaceSerializer
from modelkeeper.persistence.saving.sync import sync
from modelkeeper.persistence.store.local import LocalDirectoryHandle
from modelkeeper.persistence.store.memory import MemoryDirectoryHandle


@pytest.fixture
async def records(engine: YamlFormatEngine, snapshot: WorkspaceSnapshot) -> list[FileRecord]:
    return await WorkspaceSerializer(engine).serialize_snapshot(snapshot)


class StubbornDirectory(MemoryDirectoryHandle):
    """Refuses to delete anything at its own level."""

    async def remove(self, name: str) -> None:
        raise OSError(f"{name} is locked")


class ReadOnlyDiskDirectory(MemoryDirectoryHandle):
    """Write permission is reported as granted but writes fail."""

    async def write_text(self, name: str, content: str) -> None:
        raise OSError("disk full")


# -- Memory handle -------------------------------------------------------------


async def test_sync_into_empty_directory(records: list[FileRecord]) -> None:
    directory = MemoryDirectoryHandle("acme")
    report = await sync(records, directory)

    assert report.written == [r.path for r in records]
    assert report.deleted == []
    assert directory.snapshot() == {r.path: r.content for r in records}


async def test_sync_twice_is_idempotent(records: list[FileRecord]) -> None:
    directory = MemoryDirectoryHandle("acme")
    await sync(records, directory)
    before = directory.snapshot()

    report = await sync(records, directory)

    assert report.deleted == []
    assert report.written == []
    assert report.unchanged == [r.path for r in records]
    assert not report.changed
    assert directory.snapshot() == before


async def test_sync_rewrites_when_skip_disabled(records: list[FileRecord]) -> None:
    directory = MemoryDirectoryHandle("acme")
    await sync(records, directory)

    report = await sync(records, directory, skip_unchanged=False)
    assert report.written == [r.path for r in records]
    assert report.unchanged == []


async def test_stale_cleanup_touches_only_managed_files(records: list[FileRecord]) -> None:
    directory = MemoryDirectoryHandle(
        "acme",
        {
            "odcs/acme_sales_old_name.odcs.yaml": "stale",
            "odcs/notes.md": "keep",
            "notes.txt": "keep",
            "acme_old.workspace.yaml": "stale",
            "archive/acme_sales_backup.odcs.yaml": "keep",
            ".git/config": "keep",
        },
    )
    report = await sync(records, directory)

    assert sorted(report.deleted) == ["acme_old.workspace.yaml", "odcs/acme_sales_old_name.odcs.yaml"]
    files = directory.snapshot()
    assert files["odcs/notes.md"] == "keep"
    assert files["notes.txt"] == "keep"
    assert files["archive/acme_sales_backup.odcs.yaml"] == "keep"
    assert files[".git/config"] == "keep"
    assert "odcs/acme_sales_old_name.odcs.yaml" not in files


async def test_resave_replaces_yml_table_file(engine: YamlFormatEngine) -> None:
    directory = MemoryDirectoryHandle(
        "acme",
        {
            "acme.workspace.yaml": manifest_yaml(domains=[{"id": SALES_ID, "name": "Sales"}]),
            "odcs/acme_sales_orders.odcs.yml": table_yaml("orders", ORDERS_ID),
        },
    )
    loaded = await load_workspace(await DirectorySource.open(directory), engine)

    records = await WorkspaceSerializer(engine).serialize_snapshot(loaded.snapshot)
    report = await sync(records, directory)

    assert report.deleted == ["odcs/acme_sales_orders.odcs.yml"]
    assert "odcs/acme_sales_orders.odcs.yaml" in directory.snapshot()
    reloaded = await load_workspace(await DirectorySource.open(directory), engine)
    assert [t.id for t in reloaded.snapshot.resources.tables] == [ORDERS_ID]


async def test_changed_file_is_rewritten(records: list[FileRecord]) -> None:
    directory = MemoryDirectoryHandle("acme")
    await sync(records, directory)
    target = records[1]
    changed = [FileRecord(r.path, r.content + "# edited\n") if r is target else r for r in records]

    report = await sync(changed, directory)

    assert report.written == [target.path]
    assert directory.snapshot()[target.path].endswith("# edited\n")


async def test_failed_deletion_is_reported(records: list[FileRecord]) -> None:
    directory = StubbornDirectory("acme", {"acme_old.workspace.yaml": "stale"})
    report = await sync(records, directory)

    assert report.failed_deletions == ["acme_old.workspace.yaml"]
    assert report.deleted == []
    # Writes still happen.
    assert len(report.written) == len(records)


async def test_failed_write_raises(records: list[FileRecord]) -> None:
    directory = ReadOnlyDiskDirectory("acme")
    with pytest.raises(SyncWriteError) as exc_info:
        await sync(records, directory)
    assert exc_info.value.path == records[0].path


async def test_permission_loss_propagates(records: list[FileRecord]) -> None:
    directory = MemoryDirectoryHandle("acme", permission=PermissionState.DENIED)
    with pytest.raises(DirectoryPermissionError):
        await sync(records, directory)


# -- Local handle --------------------------------------------------------------


async def test_sync_local_directory(tmp_path, records: list[FileRecord], engine: YamlFormatEngine) -> None:
    root = tmp_path / "acme"
    root.mkdir()
    (root / "odcs").mkdir()
    (root / "odcs" / "acme_sales_gone.odcs.yaml").write_text("stale")
    (root / "keep.txt").write_text("mine")

    report = await sync(records, LocalDirectoryHandle(root))

    assert report.deleted == ["odcs/acme_sales_gone.odcs.yaml"]
    assert not (root / "odcs" / "acme_sales_gone.odcs.yaml").exists()
    assert (root / "keep.txt").read_text() == "mine"
    for record in records:
        assert (root / record.path).read_text(encoding="utf-8") == record.content
    assert not list(root.rglob("*.tmp"))

    # The synced folder loads back.
    result = await load_workspace(await DirectorySource.open(LocalDirectoryHandle(root)), engine)
    assert result.snapshot.workspace.name == "Acme"


async def test_sync_local_directory_twice(tmp_path, records: list[FileRecord]) -> None:
    handle = LocalDirectoryHandle(tmp_path)
    await sync(records, handle)
    mtimes = {r.path: (tmp_path / r.path).stat().st_mtime_ns for r in records}

    report = await sync(records, handle)

    assert report.written == []
    assert {r.path: (tmp_path / r.path).stat().st_mtime_ns for r in records} == mtimes
