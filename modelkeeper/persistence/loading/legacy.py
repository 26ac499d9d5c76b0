"""Planner for the legacy folder-based (v1) layout.

::

    acme/
      workspace.yaml            optional workspace metadata
      sales/
        domain.yaml             id, name, description, systems, relationships, tables
        tables.yaml             fallback: {tables: [...]}
        relationships.yaml      fallback: {relationships: [...]}
        systems.yaml            fallback: {systems: [...]}
        orders.odcs.yaml        loose typed resource files
      finance/
        ...

The workspace name is the folder holding the domain folders (or the source
name when the domain folders sit at the root).  A malformed ``domain.yaml``
or ``workspace.yaml`` is fatal; an unreadable ``relationships.yaml`` or
``systems.yaml`` is skipped and reported.
"""

from __future__ import annotations

from collections import defaultdict
from pathlib import PurePosixPath
from typing import Any

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from modelkeeper.persistence.errors import MalformedManifestError, NoWorkspaceFoundError
from modelkeeper.persistence.formats.base import FormatEngine
from modelkeeper.persistence.layout.categorize import DomainFiles, classify
from modelkeeper.persistence.layout.detect import LEGACY_DOMAIN_MARKERS, LEGACY_WORKSPACE_FILE
from modelkeeper.persistence.layout.naming import domain_prefix
from modelkeeper.persistence.loading.plan import (
    DomainPlan,
    InlineRecord,
    WorkspacePlan,
    read_document,
    validate_document,
)
from modelkeeper.persistence.loading.source import FileSource
from modelkeeper.persistence.models.enums import IssueKind, ResourceKind, WorkspaceFormat
from modelkeeper.persistence.models.manifest import DomainSpec, RelationshipSpec, SystemSpec, WorkspaceManifest
from modelkeeper.persistence.models.reports import LoadReport

TABLES_FILE = "tables.yaml"
DOMAIN_FILE = "domain.yaml"
RELATIONSHIPS_FILE = "relationships.yaml"
SYSTEMS_FILE = "systems.yaml"

_RELATIONSHIPS = TypeAdapter(list[RelationshipSpec])
_SYSTEMS = TypeAdapter(list[SystemSpec])


def _parent(path: str) -> str:
    parent = str(PurePosixPath(path).parent)
    return "" if parent == "." else parent


def _join(folder: str, name: str) -> str:
    return f"{folder}/{name}" if folder else name


def find_domain_folders(names: list[str]) -> tuple[str, list[str]]:
    """``(workspace_folder, domain_folders)`` of the first workspace found.

    Domain folders are the folders that contain a ``domain.yaml`` or
    ``tables.yaml``; the workspace folder is their common parent.
    """
    folders = sorted(
        {_parent(n) for n in names if PurePosixPath(n).name.lower() in LEGACY_DOMAIN_MARKERS and "/" in n}
    )
    if not folders:
        # A bare workspace.yaml is an empty v1 workspace.
        headers = sorted(
            n for n in names if PurePosixPath(n).name.lower() == LEGACY_WORKSPACE_FILE and n.count("/") <= 1
        )
        if headers:
            return _parent(headers[0]), []
        raise NoWorkspaceFoundError("no <domain>/domain.yaml or <domain>/tables.yaml folder")

    by_workspace: dict[str, list[str]] = defaultdict(list)
    for folder in folders:
        by_workspace[_parent(folder)].append(folder)

    # The shallowest workspace folder wins when a source holds several.
    workspace_folder = min(by_workspace, key=lambda f: (f.count("/") if f else -1, f))
    if len(by_workspace) > 1:
        logger.warning(
            "Found domain folders under {} workspace folders, using '{}'",
            len(by_workspace),
            workspace_folder or "<root>",
        )
    return workspace_folder, by_workspace[workspace_folder]


async def plan_legacy_workspace(source: FileSource, engine: FormatEngine) -> WorkspacePlan:
    names = source.names()
    workspace_folder, domain_folders = find_domain_folders(names)
    report = LoadReport()

    workspace_name = PurePosixPath(workspace_folder).name if workspace_folder else (source.name or "workspace")
    header_path = _join(workspace_folder, LEGACY_WORKSPACE_FILE)
    header: dict[str, Any] = {"name": workspace_name}
    if header_path in names:
        header.update(await read_document(source, engine, header_path))
        if not header.get("name"):
            header["name"] = workspace_name
    header.pop("domains", None)
    header.pop("relationships", None)
    manifest = validate_document(WorkspaceManifest, header, header_path)

    domains: list[DomainPlan] = []
    relationships: list[RelationshipSpec] = []
    for folder in domain_folders:
        plan, domain_relationships = await _plan_domain(source, engine, names, manifest.name, folder, report)
        domains.append(plan)
        relationships.extend(domain_relationships)

    manifest.domains = [d.spec for d in domains]
    manifest.relationships = relationships

    global_files = DomainFiles()
    for name in names:
        kind = classify(name)
        if kind in (ResourceKind.KNOWLEDGE, ResourceKind.DECISION_RECORD) and _parent(name) == workspace_folder:
            global_files.add(kind, name)

    logger.info("Planned v1 workspace '{}' with {} domain(s)", manifest.name, len(domains))
    return WorkspacePlan(
        format=WorkspaceFormat.V1,
        manifest=manifest,
        domains=domains,
        global_files=global_files,
        relationships=relationships,
        report=report,
    )


async def _plan_domain(
    source: FileSource,
    engine: FormatEngine,
    names: list[str],
    workspace_name: str,
    folder: str,
    report: LoadReport,
) -> tuple[DomainPlan, list[RelationshipSpec]]:
    lowered = {PurePosixPath(n).name.lower(): n for n in names if _parent(n) == folder}
    folder_name = PurePosixPath(folder).name

    # -- domain.yaml (authoritative, fatal when malformed) --------------------
    body: dict[str, Any] = {}
    if DOMAIN_FILE in lowered:
        body = await read_document(source, engine, lowered[DOMAIN_FILE])
    spec_path = lowered.get(DOMAIN_FILE, folder)
    spec = validate_document(DomainSpec, {**body, "name": body.get("name") or folder_name}, spec_path)

    inline: dict[ResourceKind, list[InlineRecord]] = {}
    embedded_tables = body.get("tables")
    if isinstance(embedded_tables, list):
        inline[ResourceKind.TABLE] = [InlineRecord(spec_path, t) for t in embedded_tables if isinstance(t, dict)]

    relationships = _validate_list(_RELATIONSHIPS, body.get("relationships"), spec_path)

    # -- Fallback files ---------------------------------------------------------
    if not spec.systems and SYSTEMS_FILE in lowered:
        spec.systems = await _read_list(source, engine, lowered[SYSTEMS_FILE], "systems", _SYSTEMS, report)
    if not relationships and RELATIONSHIPS_FILE in lowered:
        relationships = await _read_list(
            source, engine, lowered[RELATIONSHIPS_FILE], "relationships", _RELATIONSHIPS, report
        )

    # -- Resource files (tables.yaml plus loose typed files, any depth) ----------
    files = DomainFiles()
    prefix = f"{folder}/"
    for name in names:
        if not name.startswith(prefix):
            continue
        base = PurePosixPath(name).name.lower()
        if base == TABLES_FILE and _parent(name) == folder:
            files.add(ResourceKind.TABLE, name)
        elif (kind := classify(name)) is not None:
            files.add(kind, name)

    plan = DomainPlan(
        spec=spec,
        files=files,
        inline=inline,
        name_prefixes=(domain_prefix(workspace_name, spec.name),),
    )
    return plan, relationships


def _validate_list[T](adapter: TypeAdapter[list[T]], value: Any, path: str) -> list[T]:
    if value is None:
        return []
    try:
        return adapter.validate_python(value)
    except ValidationError as exc:
        raise MalformedManifestError(path, str(exc)) from exc


async def _read_list[T](
    source: FileSource,
    engine: FormatEngine,
    path: str,
    key: str,
    adapter: TypeAdapter[list[T]],
    report: LoadReport,
) -> list[T]:
    """Read ``{key: [...]}`` (or a bare list) from a fallback file; failures are recoverable."""
    try:
        text = await source.read(path)
        payload = await engine.parse_manifest(text)
        items = payload.get(key) if isinstance(payload, dict) else payload
        return adapter.validate_python(items or [])
    except (OSError, UnicodeDecodeError, ValueError) as exc:
        logger.warning("Skipping '{}': {}", path, exc)
        report.add(IssueKind.RESOURCE_SKIPPED, str(exc), path=path)
        return []
