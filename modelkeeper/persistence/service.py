"""Workspace service: load / save / autosave orchestration.

The service holds no workspace state of its own.  Callers pass the current
``WorkspaceSnapshot`` in and apply the returned ``StateUpdate`` to their
store.  The only thing remembered between calls is which directory handle
each workspace was last saved to (per service instance).

Save paths::

    manual   serialize -> bound handle (or ask the picker) -> permission -> sync
             picker cancelled -> CANCELLED (+ ZIP archive when configured)
             no picker        -> ARCHIVED
             permission lost  -> DirectoryPermissionError

    autosave snapshot store -> bound handle with permission -> sync
             no handle / no permission / permission lost mid-sync -> SKIPPED
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from loguru import logger

from modelkeeper.persistence.errors import DirectoryPermissionError, PickerCancelledError
from modelkeeper.persistence.formats.base import FormatEngine
from modelkeeper.persistence.formats.yaml_engine import YamlFormatEngine
from modelkeeper.persistence.layout.naming import sanitize_name
from modelkeeper.persistence.loading.loader import load_workspace
from modelkeeper.persistence.loading.source import DirectorySource, FileSource
from modelkeeper.persistence.models.enums import PermissionState, SaveMode, SaveStatus
from modelkeeper.persistence.models.reports import FileRecord, LoadResult, SaveOutcome
from modelkeeper.persistence.models.workspace import StateUpdate, WorkspaceSnapshot, utc_now
from modelkeeper.persistence.saving.archive import write_archive
from modelkeeper.persistence.saving.serializer import WorkspaceSerializer
from modelkeeper.persistence.saving.sync import sync
from modelkeeper.persistence.settings import ModelkeeperSettings, get_settings
from modelkeeper.persistence.store.base import DirectoryHandle
from modelkeeper.persistence.store.snapshot import LocalSnapshotStore, SnapshotStore

DirectoryPicker = Callable[[], Awaitable[DirectoryHandle]]
"""Asks the user for a directory.  Raises ``PickerCancelledError`` when dismissed."""


class WorkspaceService:
    def __init__(
        self,
        engine: FormatEngine | None = None,
        snapshot_store: SnapshotStore | None = None,
        settings: ModelkeeperSettings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._engine = engine or YamlFormatEngine()
        self._snapshots = snapshot_store or LocalSnapshotStore(self._settings.data_root, self._settings.data_prefix)
        self._serializer = WorkspaceSerializer(self._engine, write_readme=self._settings.write_readme)
        self._directories: dict[str, DirectoryHandle] = {}

    # -- Directory binding -------------------------------------------------------

    def bind_directory(self, workspace_id: str, handle: DirectoryHandle) -> None:
        self._directories[workspace_id] = handle

    def unbind_directory(self, workspace_id: str) -> None:
        self._directories.pop(workspace_id, None)

    def directory_for(self, workspace_id: str) -> DirectoryHandle | None:
        return self._directories.get(workspace_id)

    # -- Load --------------------------------------------------------------------

    async def load(self, source: FileSource | DirectoryHandle) -> LoadResult:
        """Load a workspace.  A directory handle is bound for later saves."""
        handle: DirectoryHandle | None = None
        if isinstance(source, DirectoryHandle):
            handle = source
            source = await DirectorySource.open(handle)

        result = await load_workspace(source, self._engine, default_owner_id=self._settings.default_owner_id)
        if handle is not None:
            self.bind_directory(result.snapshot.workspace.id, handle)
        return result

    async def restore(self, workspace_id: str) -> WorkspaceSnapshot | None:
        """Last autosaved snapshot of a workspace, if any."""
        if not await self._snapshots.exists(workspace_id):
            return None
        return await self._snapshots.read_snapshot(workspace_id)

    # -- Save --------------------------------------------------------------------

    async def save(
        self,
        snapshot: WorkspaceSnapshot,
        mode: SaveMode = SaveMode.MANUAL,
        picker: DirectoryPicker | None = None,
    ) -> SaveOutcome:
        """Save ``snapshot`` to its directory.

        Raises
        ------
        SerializationError
            The format engine failed; nothing was written.
        DirectoryPermissionError
            Manual save only: the directory is not writable.
        SyncWriteError
            A file could not be written.
        """
        if mode == SaveMode.AUTOSAVE:
            return await self.autosave(snapshot)

        workspace = snapshot.workspace
        records = await self._serializer.serialize_snapshot(snapshot)

        handle = self.directory_for(workspace.id)
        if handle is None:
            if picker is None:
                return await self._archive(snapshot, records, SaveStatus.ARCHIVED, "no directory available")
            try:
                handle = await picker()
            except PickerCancelledError:
                logger.info("Directory picker cancelled for workspace '{}'", workspace.name)
                if self._settings.archive_on_cancel:
                    return await self._archive(snapshot, records, SaveStatus.CANCELLED, "picker cancelled")
                return _not_saved(SaveStatus.CANCELLED, "picker cancelled")
            self.bind_directory(workspace.id, handle)

        state = await handle.query_permission()
        if state != PermissionState.GRANTED:
            state = await handle.request_permission()
        if state != PermissionState.GRANTED:
            raise DirectoryPermissionError(handle.name, state.value)

        report = await sync(records, handle, skip_unchanged=self._settings.skip_unchanged_writes)
        saved_at = utc_now()
        logger.info("Saved workspace '{}' to '{}'", workspace.name, handle.name)
        return SaveOutcome(
            status=SaveStatus.SAVED,
            state_update=StateUpdate(pending_changes=False, last_saved_at=saved_at, directory_bound=True),
            sync=report,
            saved_at=saved_at,
        )

    async def autosave(self, snapshot: WorkspaceSnapshot) -> SaveOutcome:
        """Store the snapshot, then sync the bound directory if still permitted.

        Never prompts and never raises for a missing or revoked permission.
        """
        workspace = snapshot.workspace
        await self._snapshots.write_snapshot(workspace.id, snapshot)

        handle = self.directory_for(workspace.id)
        if handle is None:
            return _not_saved(SaveStatus.SKIPPED, "no directory bound")

        state = await handle.query_permission()
        if state != PermissionState.GRANTED:
            logger.debug("Autosave skipped for '{}': permission {}", workspace.name, state.value)
            return _not_saved(SaveStatus.SKIPPED, f"permission {state.value}", directory_bound=True)

        records = await self._serializer.serialize_snapshot(snapshot)
        try:
            report = await sync(records, handle, skip_unchanged=self._settings.skip_unchanged_writes)
        except DirectoryPermissionError as exc:
            logger.warning("Autosave skipped for '{}': {}", workspace.name, exc)
            return _not_saved(SaveStatus.SKIPPED, str(exc), directory_bound=True)

        saved_at = utc_now()
        return SaveOutcome(
            status=SaveStatus.SAVED,
            state_update=StateUpdate(pending_changes=False, last_saved_at=saved_at, directory_bound=True),
            sync=report,
            saved_at=saved_at,
        )

    async def _archive(
        self,
        snapshot: WorkspaceSnapshot,
        records: list[FileRecord],
        status: SaveStatus,
        reason: str,
    ) -> SaveOutcome:
        workspace = snapshot.workspace
        target = self._settings.archive_path / f"{sanitize_name(workspace.name)}.zip"
        path = await write_archive(records, target)
        logger.info("Wrote archive for workspace '{}' to {}", workspace.name, path)
        return SaveOutcome(
            status=status,
            # An archive is a download, not a save: the workspace stays dirty.
            state_update=StateUpdate(pending_changes=True, directory_bound=False),
            archive_path=str(path),
            reason=reason,
        )


def _not_saved(status: SaveStatus, reason: str, *, directory_bound: bool = False) -> SaveOutcome:
    return SaveOutcome(
        status=status,
        state_update=StateUpdate(pending_changes=True, directory_bound=directory_bound),
        reason=reason,
    )
