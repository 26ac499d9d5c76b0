"""Planner for the flat (v2) layout.

::

    acme.workspace.yaml
    README.md
    odcs/acme_sales_crm.odcs.yaml
    odps/acme_sales_revenue.odps.yaml
    kb/acme_onboarding.kb.yaml
    ...

Domains and systems come from the manifest; resource files are attributed to
domains by their ``{workspace}_{domain}_`` name prefix, wherever they sit.
"""

from __future__ import annotations

from loguru import logger

from modelkeeper.persistence.errors import NoWorkspaceFoundError
from modelkeeper.persistence.formats.base import FormatEngine
from modelkeeper.persistence.layout.categorize import (
    categorize_files,
    filter_for_domain,
    workspace_global_files,
)
from modelkeeper.persistence.layout.naming import domain_prefix
from modelkeeper.persistence.loading.plan import DomainPlan, WorkspacePlan, read_document, validate_document
from modelkeeper.persistence.loading.source import FileSource
from modelkeeper.persistence.models.enums import WorkspaceFormat
from modelkeeper.persistence.models.manifest import WorkspaceManifest


def pick_manifest(manifests: list[str]) -> str:
    """The shallowest manifest; ties resolve alphabetically."""
    if not manifests:
        raise NoWorkspaceFoundError("no *.workspace.yaml manifest")
    chosen = min(manifests, key=lambda p: (p.count("/"), p))
    if len(manifests) > 1:
        logger.warning("Found {} workspace manifests, using '{}'", len(manifests), chosen)
    return chosen


async def plan_flat_workspace(source: FileSource, engine: FormatEngine) -> WorkspacePlan:
    categorized = categorize_files(source.names())
    path = pick_manifest(categorized.manifests)
    manifest = validate_document(WorkspaceManifest, await read_document(source, engine, path), path)

    names = [d.name for d in manifest.domains]
    domains = [
        DomainPlan(
            spec=spec,
            files=filter_for_domain(
                categorized,
                manifest.name,
                spec.name,
                sibling_domains=[n for i, n in enumerate(names) if i != index],
            ),
            name_prefixes=(domain_prefix(manifest.name, spec.name),),
        )
        for index, spec in enumerate(manifest.domains)
    ]
    if categorized.unrecognized:
        logger.debug("Ignoring {} unrecognized file(s)", len(categorized.unrecognized))

    return WorkspacePlan(
        format=WorkspaceFormat.V2,
        manifest=manifest,
        domains=domains,
        global_files=workspace_global_files(categorized, manifest.name, names),
        relationships=list(manifest.relationships),
    )
