"""Load entry point: any supported layout -> ``WorkspaceSnapshot``."""

from __future__ import annotations

from typing import Any

import anyio
from loguru import logger
from pydantic import TypeAdapter, ValidationError

from modelkeeper.persistence.formats.base import FormatEngine
from modelkeeper.persistence.identity import IdentityMap
from modelkeeper.persistence.layout.detect import detect_format
from modelkeeper.persistence.loading.assembler import assemble
from modelkeeper.persistence.loading.flat import plan_flat_workspace
from modelkeeper.persistence.loading.legacy import plan_legacy_workspace
from modelkeeper.persistence.loading.linkage import LinkageResolver
from modelkeeper.persistence.loading.plan import WorkspacePlan
from modelkeeper.persistence.loading.resources import DomainLoadResult, ResourceLoader
from modelkeeper.persistence.loading.source import FileSource
from modelkeeper.persistence.models.enums import WorkspaceFormat
from modelkeeper.persistence.models.reports import LoadReport, LoadResult
from modelkeeper.persistence.models.workspace import Domain, Position, System, Workspace, utc_now

_POSITIONS = TypeAdapter(dict[str, dict[str, Position]])


async def plan_workspace(source: FileSource, engine: FormatEngine) -> WorkspacePlan:
    """Detect the layout of ``source`` and build its load plan."""
    match detect_format(source.names()):
        case WorkspaceFormat.V2:
            return await plan_flat_workspace(source, engine)
        case WorkspaceFormat.V1:
            return await plan_legacy_workspace(source, engine)


async def load_workspace(
    source: FileSource,
    engine: FormatEngine,
    *,
    default_owner_id: str = "offline-user",
) -> LoadResult:
    """Load a workspace from ``source``.

    Raises
    ------
    NoWorkspaceFoundError
        ``source`` holds no recognizable workspace.
    MalformedManifestError
        The manifest (or a v1 ``domain.yaml`` / ``workspace.yaml``) is unreadable.
    IdCollisionError
        Two entities of one resource class share an id.

    Every other problem (bad resource file, ambiguous linkage, relationship
    without a resolvable domain) is returned in ``LoadResult.report``.
    """
    plan = await plan_workspace(source, engine)
    identities = IdentityMap()
    manifest = plan.manifest

    created_at = manifest.created_at or utc_now()
    workspace = Workspace(
        id=identities.normalize(manifest.id, label="workspace"),
        name=manifest.name,
        owner_id=manifest.owner_id or default_owner_id,
        description=manifest.description,
        created_at=created_at,
        last_modified_at=manifest.last_modified_at or created_at,
    )

    # Domains and systems get their ids before any resource is loaded so that
    # resource references can be resolved against them.
    domain_systems: list[tuple[Domain, list[System]]] = []
    for domain_plan in plan.domains:
        spec = domain_plan.spec
        domain = Domain(
            id=identities.normalize(spec.id, label="domain"),
            workspace_id=workspace.id,
            name=spec.name,
            description=spec.description,
            view_positions=_view_positions(spec.name, spec.view_positions),
        )
        systems = [
            System(
                id=identities.normalize(s.id, label="system"),
                domain_id=domain.id,
                name=s.name,
                description=s.description,
                system_type=s.system_type or "database",
            )
            for s in spec.systems
        ]
        domain_systems.append((domain, systems))
    workspace.domains = [d for d, _ in domain_systems]

    loader = ResourceLoader(source, engine, identities, workspace_id=workspace.id)
    results: list[DomainLoadResult | None] = [None] * len(plan.domains)
    global_result = DomainLoadResult(domain=None)

    async def load_one(index: int) -> None:
        domain, systems = domain_systems[index]
        results[index] = await loader.load_domain(plan.domains[index], domain, systems)

    async def load_global() -> None:
        nonlocal global_result
        global_result = await loader.load_global(plan.global_files)

    async with anyio.create_task_group() as tg:
        for index in range(len(plan.domains)):
            tg.start_soon(load_one, index)
        if len(plan.global_files):
            tg.start_soon(load_global)

    loaded = [r for r in results if r is not None]

    # Linkage runs after every domain is in, so manifest ids that were replaced
    # anywhere in the workspace resolve to their new values.
    resolver = LinkageResolver(identities)
    for domain_plan, result in zip(plan.domains, loaded, strict=True):
        resolver.link_systems(result, domain_plan.spec.systems, domain_plan.name_prefixes)

    assembled = assemble(workspace, [*loaded, global_result], plan.relationships, identities)

    report = LoadReport()
    report.extend(plan.report)
    report.extend(assembled.report)

    counts = assembled.snapshot.resources.counts()
    logger.info(
        "Loaded {} workspace '{}': {} domain(s), {} table(s), {} relationship(s), {} issue(s)",
        plan.format.value,
        workspace.name,
        len(workspace.domains),
        counts["tables"],
        counts["relationships"],
        len(report.issues),
    )
    return LoadResult(format=plan.format, snapshot=assembled.snapshot, report=report)


def _view_positions(domain_name: str, raw: Any) -> dict[str, dict[str, Position]] | None:
    if not raw:
        return None
    try:
        return _POSITIONS.validate_python(raw)
    except ValidationError:
        logger.warning("Ignoring malformed view positions of domain '{}'", domain_name)
        return None
