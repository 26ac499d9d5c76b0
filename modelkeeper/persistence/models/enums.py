"""Shared enumerations used across the persistence engine."""

from __future__ import annotations

from enum import StrEnum

# -- Layout ------------------------------------------------------------------


class WorkspaceFormat(StrEnum):
    """On-disk workspace layout."""

    V1 = "v1"
    """Legacy folder-based layout: ``{workspace}/{domain}/domain.yaml``."""

    V2 = "v2"
    """Flat layout: ``{workspace}.workspace.yaml`` plus typed subdirectories."""


class ResourceKind(StrEnum):
    """Resource classes a workspace file can hold.

    The value doubles as the typed subdirectory name in the v2 layout.
    """

    TABLE = "odcs"
    PRODUCT = "odps"
    ASSET = "cads"
    PROCESS = "bpmn"
    DECISION = "dmn"
    KNOWLEDGE = "kb"
    DECISION_RECORD = "adr"

    @property
    def extension(self) -> str:
        """Canonical file extension (without leading dot) used when writing."""
        return _EXTENSIONS[self]

    @property
    def is_xml(self) -> bool:
        return self in (ResourceKind.PROCESS, ResourceKind.DECISION)


_EXTENSIONS: dict[ResourceKind, str] = {
    ResourceKind.TABLE: "odcs.yaml",
    ResourceKind.PRODUCT: "odps.yaml",
    ResourceKind.ASSET: "cads.yaml",
    ResourceKind.PROCESS: "bpmn",
    ResourceKind.DECISION: "dmn",
    ResourceKind.KNOWLEDGE: "kb.yaml",
    ResourceKind.DECISION_RECORD: "adr.yaml",
}


# -- Relationships -----------------------------------------------------------


class Cardinality(StrEnum):
    ZERO = "0"
    ONE = "1"
    MANY = "N"


class RelationshipCardinality(StrEnum):
    """Cardinality pair as written in the workspace manifest."""

    ONE_TO_ONE = "one_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_ONE = "many_to_one"
    MANY_TO_MANY = "many_to_many"


# -- Load / save reporting ---------------------------------------------------


class IssueKind(StrEnum):
    """Non-fatal conditions recorded while loading a workspace."""

    RESOURCE_SKIPPED = "resource_skipped"
    LINKAGE_FALLBACK = "linkage_fallback"
    RELATIONSHIP_UNRESOLVED = "relationship_unresolved"
    ID_REPLACED = "id_replaced"


class SaveMode(StrEnum):
    MANUAL = "manual"
    AUTOSAVE = "autosave"


class SaveStatus(StrEnum):
    SAVED = "saved"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"
    ARCHIVED = "archived"


class PermissionState(StrEnum):
    """Access state of a directory handle (mirrors the browser permission API)."""

    GRANTED = "granted"
    PROMPT = "prompt"
    DENIED = "denied"


class EntryKind(StrEnum):
    FILE = "file"
    DIRECTORY = "directory"
