"""Load / save result models.

Recoverable problems never raise: they are collected as ``LoadIssue``
entries (load) or ``failed_deletions`` (sync) and returned to the caller,
who decides what to surface.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, Field

from modelkeeper.persistence.models.enums import IssueKind, SaveStatus, WorkspaceFormat
from modelkeeper.persistence.models.workspace import StateUpdate, WorkspaceSnapshot


@dataclass(frozen=True, slots=True)
class FileRecord:
    """One file of a serialized workspace; ``path`` is POSIX and root-relative."""

    path: str
    content: str

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]


class LoadIssue(BaseModel):
    kind: IssueKind
    message: str
    path: str | None = None
    entity_id: str | None = None


class LoadReport(BaseModel):
    issues: list[LoadIssue] = Field(default_factory=list)

    def add(
        self,
        kind: IssueKind,
        message: str,
        *,
        path: str | None = None,
        entity_id: str | None = None,
    ) -> None:
        self.issues.append(LoadIssue(kind=kind, message=message, path=path, entity_id=entity_id))

    def extend(self, other: LoadReport) -> None:
        self.issues.extend(other.issues)

    def of_kind(self, kind: IssueKind) -> list[LoadIssue]:
        return [i for i in self.issues if i.kind == kind]

    @property
    def skipped_paths(self) -> list[str]:
        return [i.path for i in self.of_kind(IssueKind.RESOURCE_SKIPPED) if i.path]


class LoadResult(BaseModel):
    format: WorkspaceFormat
    snapshot: WorkspaceSnapshot
    report: LoadReport = Field(default_factory=LoadReport)


class SyncReport(BaseModel):
    deleted: list[str] = Field(default_factory=list)
    written: list[str] = Field(default_factory=list)
    unchanged: list[str] = Field(default_factory=list)
    failed_deletions: list[str] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.deleted or self.written)


class SaveOutcome(BaseModel):
    status: SaveStatus
    state_update: StateUpdate
    sync: SyncReport | None = None
    archive_path: str | None = None
    saved_at: datetime | None = None
    reason: str | None = None
