"""Workspace graph models.

A workspace is the root of ownership: it holds an ordered list of domains.
Every other entity (systems, tables, relationships, products, ...) lives in
the flat lists of ``WorkspaceResources`` and points at its owning domain by
id.  ``WorkspaceSnapshot`` pairs the two and is the unit the engine loads,
saves, and hands back to the UI state container.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modelkeeper.persistence.models.enums import Cardinality, RelationshipCardinality
from modelkeeper.persistence.models.resources import (
    ComputeAsset,
    DataProduct,
    DecisionModel,
    DecisionRecord,
    KnowledgeArticle,
    Process,
    Table,
)


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _dedupe(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


# -- Domain ------------------------------------------------------------------


class Position(BaseModel):
    x: float
    y: float


class Domain(BaseModel):
    """A modeling scope grouping systems, tables and other resources."""

    id: str
    workspace_id: str
    name: str
    description: str | None = None
    view_positions: dict[str, dict[str, Position]] | None = Field(
        default=None, description="Canvas node positions keyed by view name, then entity id"
    )


class Workspace(BaseModel):
    """Top-level persisted project."""

    id: str
    name: str
    owner_id: str = "offline-user"
    description: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    last_modified_at: datetime = Field(default_factory=utc_now)
    domains: list[Domain] = Field(default_factory=list)


# -- System ------------------------------------------------------------------


class System(BaseModel):
    """Physical container (database, schema, service) grouping tables and assets."""

    id: str
    domain_id: str
    name: str
    description: str | None = None
    system_type: str = "database"
    table_ids: list[str] = Field(default_factory=list)
    asset_ids: list[str] = Field(default_factory=list)

    @field_validator("table_ids", "asset_ids")
    @classmethod
    def _unique_members(cls, value: list[str]) -> list[str]:
        return _dedupe(value)


# -- Relationship ------------------------------------------------------------

_PAIR_TO_CARDINALITY: dict[tuple[Cardinality, Cardinality], RelationshipCardinality] = {
    (Cardinality.ONE, Cardinality.ONE): RelationshipCardinality.ONE_TO_ONE,
    (Cardinality.ONE, Cardinality.MANY): RelationshipCardinality.ONE_TO_MANY,
    (Cardinality.MANY, Cardinality.ONE): RelationshipCardinality.MANY_TO_ONE,
    (Cardinality.MANY, Cardinality.MANY): RelationshipCardinality.MANY_TO_MANY,
}

CARDINALITY_TO_PAIR: dict[RelationshipCardinality, tuple[Cardinality, Cardinality]] = {
    v: k for k, v in _PAIR_TO_CARDINALITY.items()
}


class Relationship(BaseModel):
    """Edge between two tables.

    ``domain_id`` is derived from the endpoint tables at load time and stays
    ``None`` when neither endpoint can be found.
    """

    id: str
    workspace_id: str | None = None
    domain_id: str | None = None
    source_table_id: str | None = None
    target_table_id: str | None = None
    source_cardinality: Cardinality = Cardinality.ONE
    target_cardinality: Cardinality = Cardinality.MANY
    notes: str | None = None
    color: str | None = None
    source_handle: str | None = None
    target_handle: str | None = None

    @property
    def cardinality(self) -> RelationshipCardinality:
        """Nearest manifest cardinality (a ``0`` side counts as ``1``)."""
        source = Cardinality.MANY if self.source_cardinality == Cardinality.MANY else Cardinality.ONE
        target = Cardinality.MANY if self.target_cardinality == Cardinality.MANY else Cardinality.ONE
        return _PAIR_TO_CARDINALITY[(source, target)]


# -- Aggregates --------------------------------------------------------------


class WorkspaceResources(BaseModel):
    """All non-domain entities of a workspace, as flat lists."""

    systems: list[System] = Field(default_factory=list)
    tables: list[Table] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    products: list[DataProduct] = Field(default_factory=list)
    assets: list[ComputeAsset] = Field(default_factory=list)
    processes: list[Process] = Field(default_factory=list)
    decisions: list[DecisionModel] = Field(default_factory=list)
    knowledge_articles: list[KnowledgeArticle] = Field(default_factory=list)
    decision_records: list[DecisionRecord] = Field(default_factory=list)

    def systems_in(self, domain_id: str) -> list[System]:
        return [s for s in self.systems if s.domain_id == domain_id]

    def tables_in(self, domain_id: str) -> list[Table]:
        return [t for t in self.tables if t.primary_domain_id == domain_id]

    def system_of_table(self, table_id: str) -> System | None:
        return next((s for s in self.systems if table_id in s.table_ids), None)

    def system_of_asset(self, asset_id: str) -> System | None:
        return next((s for s in self.systems if asset_id in s.asset_ids), None)

    def counts(self) -> dict[str, int]:
        return {name: len(getattr(self, name)) for name in type(self).model_fields}


class WorkspaceSnapshot(BaseModel):
    """Explicit state handed to and returned from the engine's entry points."""

    workspace: Workspace
    resources: WorkspaceResources = Field(default_factory=WorkspaceResources)


class StateUpdate(BaseModel):
    """State changes the caller should apply to its store after a save."""

    model_config = ConfigDict(frozen=True)

    pending_changes: bool
    last_saved_at: datetime | None = None
    directory_bound: bool = False
