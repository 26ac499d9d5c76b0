"""Workspace saving: serialization, directory sync and the archive sink."""

from modelkeeper.persistence.saving.archive import open_archive, pack_archive, read_archive, write_archive
from modelkeeper.persistence.saving.readme import render_readme
from modelkeeper.persistence.saving.serializer import WorkspaceSerializer, build_manifest
from modelkeeper.persistence.saving.sync import MANAGED_DIRECTORIES, sync

__all__ = [
    "MANAGED_DIRECTORIES",
    "WorkspaceSerializer",
    "build_manifest",
    "open_archive",
    "pack_archive",
    "read_archive",
    "render_readme",
    "sync",
    "write_archive",
]
