"""On-disk manifest schemas.

These describe what is *read from* a workspace manifest (v2
``{ws}.workspace.yaml``) or a legacy domain file (v1 ``domain.yaml``).  They
are deliberately tolerant: ids may be missing or malformed (normalized later
by the loader) and unknown keys are ignored.

``table_ids`` / ``asset_ids`` distinguish "absent" (``None``: membership is
inferred) from "present" (a closed list, even when empty).
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from modelkeeper.persistence.models.enums import Cardinality, RelationshipCardinality


class _ManifestModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


def _coerce_id(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


RawId = Annotated[str | None, BeforeValidator(_coerce_id)]


def _coerce_cardinality(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value).upper()


RawCardinality = Annotated[Cardinality | None, BeforeValidator(_coerce_cardinality)]


class SystemSpec(_ManifestModel):
    id: RawId = None
    name: str
    description: str | None = None
    system_type: str | None = None
    table_ids: list[str] | None = None
    asset_ids: list[str] | None = None


class DomainSpec(_ManifestModel):
    id: RawId = None
    name: str
    description: str | None = None
    systems: list[SystemSpec] = Field(default_factory=list)
    view_positions: dict[str, dict[str, Any]] | None = None

    @field_validator("systems", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return value or []


class RelationshipSpec(_ManifestModel):
    id: RawId = None
    source_table_id: RawId = Field(default=None, validation_alias=AliasChoices("source_table_id", "source_id"))
    target_table_id: RawId = Field(default=None, validation_alias=AliasChoices("target_table_id", "target_id"))
    cardinality: RelationshipCardinality | None = None
    source_cardinality: RawCardinality = None
    target_cardinality: RawCardinality = None
    notes: str | None = Field(default=None, validation_alias=AliasChoices("notes", "description"))
    color: str | None = None
    source_handle: str | None = None
    target_handle: str | None = None


class WorkspaceManifest(_ManifestModel):
    """Root manifest of a v2 workspace (also used for v1 ``workspace.yaml``)."""

    id: RawId = None
    name: str
    owner_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None
    last_modified_at: datetime | None = None
    domains: list[DomainSpec] = Field(default_factory=list)
    relationships: list[RelationshipSpec] = Field(default_factory=list)

    @field_validator("domains", "relationships", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return value or []
