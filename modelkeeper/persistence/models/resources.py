"""Typed resource models parsed from workspace files.

Each resource class is a closed variant tagged by ``entity_type``.  The
format-specific payload is kept as extra fields so it survives a load/save
cycle untouched; this engine only looks at ids, names and ownership.

``validate_resource`` is the single constructor used at the load boundary:
payloads that do not match the expected shape raise ``ValidationError`` and
are quarantined by the loader instead of travelling deeper into the engine.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from modelkeeper.persistence.models.enums import ResourceKind

# Fields stamped by the loader rather than read from the file.
OWNERSHIP_FIELDS = frozenset({"entity_type", "domain_id", "workspace_id", "primary_domain_id"})


class ResourceBase(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str

    def payload(self) -> dict[str, Any]:
        """Serializable body for the format engine (ownership fields removed)."""
        return self.model_dump(mode="json", exclude=set(OWNERSHIP_FIELDS), exclude_none=True)


class Column(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    data_type: str | None = None
    nullable: bool = True
    is_primary_key: bool = False


class Table(ResourceBase):
    """Table contract (ODCS)."""

    entity_type: Literal["table"] = "table"
    name: str
    workspace_id: str | None = None
    primary_domain_id: str | None = None
    columns: list[Column] = Field(default_factory=list)
    visible_domains: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def system_hint(self) -> str | None:
        value = self.metadata.get("system_id")
        return str(value) if value else None


class DataProduct(ResourceBase):
    """Data product (ODPS)."""

    entity_type: Literal["product"] = "product"
    domain_id: str | None = None
    name: str


class ComputeAsset(ResourceBase):
    """Compute asset (CADS)."""

    entity_type: Literal["asset"] = "asset"
    domain_id: str | None = None
    name: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def system_hint(self) -> str | None:
        value = self.metadata.get("system_id")
        return str(value) if value else None


class Process(ResourceBase):
    """Business process (BPMN)."""

    entity_type: Literal["process"] = "process"
    domain_id: str | None = None
    name: str


class DecisionModel(ResourceBase):
    """Decision model (DMN)."""

    entity_type: Literal["decision"] = "decision"
    domain_id: str | None = None
    name: str


class KnowledgeArticle(ResourceBase):
    """Knowledge base article.  ``domain_id=None`` means workspace-global."""

    entity_type: Literal["knowledge"] = "knowledge"
    domain_id: str | None = None
    title: str


class DecisionRecord(ResourceBase):
    """Architecture decision record.  ``domain_id=None`` means workspace-global."""

    entity_type: Literal["decision_record"] = "decision_record"
    domain_id: str | None = None
    title: str


Resource = Annotated[
    Table | DataProduct | ComputeAsset | Process | DecisionModel | KnowledgeArticle | DecisionRecord,
    Field(discriminator="entity_type"),
]

RESOURCE_MODELS: dict[ResourceKind, type[ResourceBase]] = {
    ResourceKind.TABLE: Table,
    ResourceKind.PRODUCT: DataProduct,
    ResourceKind.ASSET: ComputeAsset,
    ResourceKind.PROCESS: Process,
    ResourceKind.DECISION: DecisionModel,
    ResourceKind.KNOWLEDGE: KnowledgeArticle,
    ResourceKind.DECISION_RECORD: DecisionRecord,
}

_RESOURCE_ADAPTER: TypeAdapter[Resource] = TypeAdapter(Resource)


def validate_resource(kind: ResourceKind, raw: dict[str, Any]) -> Resource:
    """Build the typed resource for ``kind`` from a parsed payload.

    Raises ``pydantic.ValidationError`` when the payload does not fit.
    """
    tag = RESOURCE_MODELS[kind].model_fields["entity_type"].default
    return _RESOURCE_ADAPTER.validate_python({**raw, "entity_type": tag})


def display_name(resource: ResourceBase) -> str:
    """Human name used for file naming (``name`` or ``title``)."""
    return getattr(resource, "name", None) or getattr(resource, "title", None) or resource.id
