"""Layout-independent load plan.

Both on-disk layouts are first turned into a ``WorkspacePlan``: the workspace
header, one ``DomainPlan`` per domain (its resource files, resource records
embedded in legacy metadata files, and its manifest systems) and the raw
relationship specs.  Resource loading, linkage and assembly then run on the
plan and never look at the layout again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ValidationError

from modelkeeper.persistence.errors import FormatEngineError, MalformedManifestError
from modelkeeper.persistence.formats.base import FormatEngine
from modelkeeper.persistence.layout.categorize import DomainFiles
from modelkeeper.persistence.loading.source import FileSource
from modelkeeper.persistence.models.enums import ResourceKind, WorkspaceFormat
from modelkeeper.persistence.models.manifest import DomainSpec, RelationshipSpec, WorkspaceManifest
from modelkeeper.persistence.models.reports import LoadReport


@dataclass(frozen=True, slots=True)
class InlineRecord:
    """A resource record embedded in a v1 ``domain.yaml``."""

    path: str
    raw: dict[str, Any]


@dataclass
class DomainPlan:
    spec: DomainSpec
    files: DomainFiles = field(default_factory=DomainFiles)
    inline: dict[ResourceKind, list[InlineRecord]] = field(default_factory=dict)
    name_prefixes: tuple[str, ...] = ()
    """File name prefixes removed before system name matching."""


@dataclass
class WorkspacePlan:
    format: WorkspaceFormat
    manifest: WorkspaceManifest
    domains: list[DomainPlan] = field(default_factory=list)
    global_files: DomainFiles = field(default_factory=DomainFiles)
    relationships: list[RelationshipSpec] = field(default_factory=list)
    report: LoadReport = field(default_factory=LoadReport)
    """Recoverable problems found while planning (e.g. an unreadable relationships.yaml)."""


async def read_document(source: FileSource, engine: FormatEngine, path: str) -> dict[str, Any]:
    """Read and parse a manifest-like YAML mapping.

    Raises ``MalformedManifestError`` when the file cannot be read or parsed,
    or is not a mapping.
    """
    try:
        text = await source.read(path)
    except (OSError, UnicodeDecodeError) as exc:
        raise MalformedManifestError(path, str(exc)) from exc
    try:
        payload = await engine.parse_manifest(text)
    except FormatEngineError as exc:
        raise MalformedManifestError(path, str(exc)) from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise MalformedManifestError(path, f"expected a mapping, got {type(payload).__name__}")
    return payload


def validate_document[M: BaseModel](model: type[M], payload: dict[str, Any], path: str) -> M:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise MalformedManifestError(path, str(exc)) from exc
