"""Workspace serialization: graph -> file records (flat v2 layout).

Tables are grouped by their owning system: one table contract file per
system holding all of its tables, one file per unassigned table.  Every other
resource class is written one file per entity.  Paths are deterministic (see
``layout.naming``) and colliding paths get an ``_{id[:8]}`` suffix, so the
same graph always yields the same record set.

A format engine failure aborts the whole serialization with
``SerializationError``: syncing a partial record set would delete the
previous copy of the entity that failed.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from modelkeeper.persistence.errors import SerializationError
from modelkeeper.persistence.formats.base import FormatEngine
from modelkeeper.persistence.layout.categorize import claim_for_prefix
from modelkeeper.persistence.layout.naming import (
    README_NAME,
    domain_prefix,
    manifest_file_name,
    resource_file_name,
    with_id_suffix,
    workspace_prefix,
)
from modelkeeper.persistence.models.enums import ResourceKind
from modelkeeper.persistence.models.manifest import DomainSpec, RelationshipSpec, SystemSpec, WorkspaceManifest
from modelkeeper.persistence.models.reports import FileRecord
from modelkeeper.persistence.models.resources import ResourceBase, display_name
from modelkeeper.persistence.models.workspace import Domain, Workspace, WorkspaceResources, WorkspaceSnapshot
from modelkeeper.persistence.saving.readme import render_readme

# Per-entity resource classes other than tables: (kind, WorkspaceResources field).
_SINGLE_FILE_KINDS: tuple[tuple[ResourceKind, str], ...] = (
    (ResourceKind.PRODUCT, "products"),
    (ResourceKind.ASSET, "assets"),
    (ResourceKind.PROCESS, "processes"),
    (ResourceKind.DECISION, "decisions"),
    (ResourceKind.KNOWLEDGE, "knowledge_articles"),
    (ResourceKind.DECISION_RECORD, "decision_records"),
)

_GLOBAL_KINDS = (ResourceKind.KNOWLEDGE, ResourceKind.DECISION_RECORD)


class WorkspaceSerializer:
    """Renders a workspace graph into ``FileRecord``s through the format engine."""

    def __init__(self, engine: FormatEngine, *, write_readme: bool = True) -> None:
        self._engine = engine
        self._write_readme = write_readme

    async def serialize_snapshot(self, snapshot: WorkspaceSnapshot) -> list[FileRecord]:
        return await self.serialize(snapshot.workspace, snapshot.resources)

    async def serialize(self, workspace: Workspace, resources: WorkspaceResources) -> list[FileRecord]:
        """Every file of the workspace, sorted by path.

        Raises
        ------
        SerializationError
            The format engine failed for one entity.
        """
        paths = _PathAllocator(workspace)
        records: list[FileRecord] = []
        domain_ids = {d.id for d in workspace.domains}

        for domain in workspace.domains:
            records += await self._table_files(workspace, domain, resources, paths)
            for kind, field_name in _SINGLE_FILE_KINDS:
                for entity in getattr(resources, field_name):
                    if getattr(entity, "domain_id", None) != domain.id:
                        continue
                    system = resources.system_of_asset(entity.id) if kind == ResourceKind.ASSET else None
                    path = paths.claim(
                        resource_file_name(
                            kind, workspace.name, domain.name, display_name(entity), system.name if system else None
                        ),
                        entity.id,
                        domain.id,
                    )
                    records.append(FileRecord(path, await self._render(kind, entity, entity.payload())))

        # Workspace-global knowledge articles and decision records.
        for kind, field_name in _SINGLE_FILE_KINDS:
            if kind not in _GLOBAL_KINDS:
                continue
            for entity in getattr(resources, field_name):
                if entity.domain_id is None:
                    path = paths.claim(
                        resource_file_name(kind, workspace.name, None, display_name(entity)), entity.id, None
                    )
                    records.append(FileRecord(path, await self._render(kind, entity, entity.payload())))

        _warn_orphans(resources, domain_ids)

        manifest = build_manifest(workspace, resources)
        try:
            manifest_text = await self._engine.manifest_to_text(manifest)
        except Exception as exc:
            raise SerializationError("workspace", workspace.name, exc) from exc
        records.append(FileRecord(manifest_file_name(workspace.name), manifest_text))

        if self._write_readme:
            records.append(FileRecord(README_NAME, render_readme(workspace, resources)))

        records.sort(key=lambda r: r.path)
        logger.debug("Serialized workspace '{}' into {} file(s)", workspace.name, len(records))
        return records

    async def _table_files(
        self,
        workspace: Workspace,
        domain: Domain,
        resources: WorkspaceResources,
        paths: _PathAllocator,
    ) -> list[FileRecord]:
        tables = {t.id: t for t in resources.tables_in(domain.id)}
        grouped: set[str] = set()
        records: list[FileRecord] = []

        for system in resources.systems_in(domain.id):
            members = [tables[t] for t in system.table_ids if t in tables and t not in grouped]
            if not members:
                continue
            grouped.update(t.id for t in members)
            path = paths.claim(
                resource_file_name(ResourceKind.TABLE, workspace.name, domain.name, system.name), system.id, domain.id
            )
            payload = {"tables": [t.payload() for t in members]}
            records.append(FileRecord(path, await self._render(ResourceKind.TABLE, system, payload)))

        for table in tables.values():
            if table.id in grouped:
                continue
            path = paths.claim(
                resource_file_name(ResourceKind.TABLE, workspace.name, domain.name, table.name), table.id, domain.id
            )
            records.append(FileRecord(path, await self._render(ResourceKind.TABLE, table, table.payload())))
        return records

    async def _render(self, kind: ResourceKind, entity: Any, payload: dict[str, Any]) -> str:
        try:
            return await self._engine.to_text(kind, payload)
        except Exception as exc:
            label = kind.value if isinstance(entity, ResourceBase) else "system"
            raise SerializationError(label, display_name(entity), exc) from exc


class _PathAllocator:
    """Hands out unique paths that load back under the domain they were written for.

    A taken path is suffixed with the entity id.  A name that a longer sibling
    domain prefix (or, for workspace-global files, any domain prefix) would
    claim is padded by ``claim_for_prefix``.
    """

    def __init__(self, workspace: Workspace) -> None:
        self._global_prefix = workspace_prefix(workspace.name)
        self._domain_prefixes = {d.id: domain_prefix(workspace.name, d.name) for d in workspace.domains}
        self._prefixes = [self._global_prefix, *self._domain_prefixes.values()]
        self._taken: set[str] = set()

    def claim(self, path: str, entity_id: str, domain_id: str | None) -> str:
        own = self._global_prefix if domain_id is None else self._domain_prefixes[domain_id]
        path = claim_for_prefix(path, own, self._prefixes)
        if path.lower() in self._taken:
            path = claim_for_prefix(with_id_suffix(path, entity_id), own, self._prefixes)
        self._taken.add(path.lower())
        return path


def build_manifest(workspace: Workspace, resources: WorkspaceResources) -> dict[str, Any]:
    """The ``{workspace}.workspace.yaml`` payload.

    Systems always carry ``table_ids`` and ``asset_ids`` (possibly empty) so
    that membership is explicit on the next load.
    """
    manifest = WorkspaceManifest(
        id=workspace.id,
        name=workspace.name,
        owner_id=workspace.owner_id,
        description=workspace.description,
        created_at=workspace.created_at,
        last_modified_at=workspace.last_modified_at,
        domains=[
            DomainSpec(
                id=domain.id,
                name=domain.name,
                description=domain.description,
                systems=[
                    SystemSpec(
                        id=s.id,
                        name=s.name,
                        description=s.description,
                        system_type=s.system_type,
                        table_ids=list(s.table_ids),
                        asset_ids=list(s.asset_ids),
                    )
                    for s in resources.systems_in(domain.id)
                ],
                view_positions=(
                    {
                        view: {eid: pos.model_dump() for eid, pos in nodes.items()}
                        for view, nodes in domain.view_positions.items()
                    }
                    if domain.view_positions
                    else None
                ),
            )
            for domain in workspace.domains
        ],
        relationships=[
            RelationshipSpec(
                id=r.id,
                source_table_id=r.source_table_id,
                target_table_id=r.target_table_id,
                cardinality=r.cardinality,
                source_cardinality=r.source_cardinality,
                target_cardinality=r.target_cardinality,
                notes=r.notes,
                color=r.color,
                source_handle=r.source_handle,
                target_handle=r.target_handle,
            )
            for r in resources.relationships
        ],
    )
    return manifest.model_dump(mode="json", exclude_none=True)


def _warn_orphans(resources: WorkspaceResources, domain_ids: set[str]) -> None:
    for table in resources.tables:
        if table.primary_domain_id not in domain_ids:
            logger.warning("Table '{}' has no known domain and was not saved", table.name)
    for _, field_name in _SINGLE_FILE_KINDS:
        for entity in getattr(resources, field_name):
            domain_id = getattr(entity, "domain_id", None)
            if domain_id is not None and domain_id not in domain_ids:
                logger.warning("{} '{}' has no known domain and was not saved", field_name, display_name(entity))
