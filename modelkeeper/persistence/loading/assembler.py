"""Workspace assembly.

Merges per-domain load results into one workspace graph: concatenates the
resource lists, rejects duplicate ids, enforces single system membership,
builds relationships and derives their domains over the aggregated table set.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from modelkeeper.persistence.errors import IdCollisionError
from modelkeeper.persistence.identity import IdentityMap
from modelkeeper.persistence.loading.linkage import resolve_relationship_domain
from modelkeeper.persistence.loading.resources import DomainLoadResult
from modelkeeper.persistence.models.enums import Cardinality, IssueKind, RelationshipCardinality, ResourceKind
from modelkeeper.persistence.models.manifest import RelationshipSpec
from modelkeeper.persistence.models.reports import LoadReport
from modelkeeper.persistence.models.workspace import (
    CARDINALITY_TO_PAIR,
    Relationship,
    Workspace,
    WorkspaceResources,
    WorkspaceSnapshot,
)

# Resource kind -> WorkspaceResources field.
RESOURCE_FIELDS: dict[ResourceKind, str] = {
    ResourceKind.TABLE: "tables",
    ResourceKind.PRODUCT: "products",
    ResourceKind.ASSET: "assets",
    ResourceKind.PROCESS: "processes",
    ResourceKind.DECISION: "decisions",
    ResourceKind.KNOWLEDGE: "knowledge_articles",
    ResourceKind.DECISION_RECORD: "decision_records",
}


@dataclass
class AssembledWorkspace:
    snapshot: WorkspaceSnapshot
    report: LoadReport


def assemble(
    header: Workspace,
    domain_results: Sequence[DomainLoadResult],
    raw_relationships: Sequence[RelationshipSpec],
    identities: IdentityMap,
) -> AssembledWorkspace:
    """Merge domain results into a ``WorkspaceSnapshot``.

    ``header`` carries the workspace metadata and its ordered domains.

    Raises
    ------
    IdCollisionError
        The same id appears twice among the domains or within one resource class.
    """
    report = LoadReport()
    resources = WorkspaceResources()
    _check_unique("domain", [d.id for d in header.domains])

    for result in domain_results:
        report.extend(result.report)
        resources.systems.extend(result.systems)
        for kind, field_name in RESOURCE_FIELDS.items():
            getattr(resources, field_name).extend(result.of_kind(kind))

    _check_unique("system", [s.id for s in resources.systems])
    for kind, field_name in RESOURCE_FIELDS.items():
        _check_unique(kind.value, [r.id for r in getattr(resources, field_name)])
    _enforce_single_membership(resources)

    resources.relationships = build_relationships(header.id, raw_relationships, identities, resources, report)
    _check_unique("relationship", [r.id for r in resources.relationships])

    return AssembledWorkspace(snapshot=WorkspaceSnapshot(workspace=header, resources=resources), report=report)


def build_relationships(
    workspace_id: str,
    specs: Sequence[RelationshipSpec],
    identities: IdentityMap,
    resources: WorkspaceResources,
    report: LoadReport,
) -> list[Relationship]:
    """Turn raw relationship specs into relationships with a derived domain.

    Relationships are never dropped.  A missing or unknown endpoint falls back
    to the other one; when neither resolves the relationship keeps
    ``domain_id=None`` and is flagged in the report.
    """
    table_domains = {t.id: t.primary_domain_id for t in resources.tables}
    relationships: list[Relationship] = []

    for spec in specs:
        source_id = identities.resolve(spec.source_table_id, label="table")
        target_id = identities.resolve(spec.target_table_id, label="table")
        source_card, target_card = _cardinality_pair(spec)
        relationship = Relationship(
            id=identities.normalize(spec.id, label="relationship"),
            workspace_id=workspace_id,
            source_table_id=source_id,
            target_table_id=target_id,
            source_cardinality=source_card,
            target_cardinality=target_card,
            notes=spec.notes,
            color=spec.color,
            source_handle=spec.source_handle,
            target_handle=spec.target_handle,
        )
        relationship.domain_id = resolve_relationship_domain(relationship, table_domains)
        if relationship.domain_id is None:
            logger.info("Relationship {} has no resolvable domain", relationship.id)
            report.add(
                IssueKind.RELATIONSHIP_UNRESOLVED,
                "neither endpoint table was loaded",
                entity_id=relationship.id,
            )
        relationships.append(relationship)
    return relationships


def _cardinality_pair(spec: RelationshipSpec) -> tuple[Cardinality, Cardinality]:
    """Explicit source/target cardinalities win over the combined ``cardinality`` value."""
    default_source, default_target = CARDINALITY_TO_PAIR[spec.cardinality or RelationshipCardinality.ONE_TO_MANY]
    return spec.source_cardinality or default_source, spec.target_cardinality or default_target


def _check_unique(entity: str, ids: list[str]) -> None:
    seen: set[str] = set()
    for entity_id in ids:
        if entity_id in seen:
            raise IdCollisionError(entity, entity_id)
        seen.add(entity_id)


def _enforce_single_membership(resources: WorkspaceResources) -> None:
    """A table or asset belongs to at most one system: the first claim wins."""
    for field_name in ("table_ids", "asset_ids"):
        owner: dict[str, str] = {}
        for system in resources.systems:
            kept: list[str] = []
            for member in getattr(system, field_name):
                if member in owner:
                    logger.warning(
                        "{} already belongs to system {}; dropped from {}",
                        member,
                        owner[member],
                        system.id,
                    )
                    continue
                owner[member] = system.id
                kept.append(member)
            setattr(system, field_name, kept)
