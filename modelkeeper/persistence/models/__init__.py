"""Data models for the persistence engine."""

from modelkeeper.persistence.models.enums import (
    Cardinality,
    EntryKind,
    IssueKind,
    PermissionState,
    RelationshipCardinality,
    ResourceKind,
    SaveMode,
    SaveStatus,
    WorkspaceFormat,
)
from modelkeeper.persistence.models.manifest import (
    DomainSpec,
    RelationshipSpec,
    SystemSpec,
    WorkspaceManifest,
)
from modelkeeper.persistence.models.reports import (
    FileRecord,
    LoadIssue,
    LoadReport,
    LoadResult,
    SaveOutcome,
    SyncReport,
)
from modelkeeper.persistence.models.resources import (
    RESOURCE_MODELS,
    Column,
    ComputeAsset,
    DataProduct,
    DecisionModel,
    DecisionRecord,
    KnowledgeArticle,
    Process,
    Resource,
    ResourceBase,
    Table,
    validate_resource,
)
from modelkeeper.persistence.models.workspace import (
    Domain,
    Position,
    Relationship,
    StateUpdate,
    System,
    Workspace,
    WorkspaceResources,
    WorkspaceSnapshot,
)

__all__ = [
    "RESOURCE_MODELS",
    # Enums
    "Cardinality",
    # Resources
    "Column",
    "ComputeAsset",
    "DataProduct",
    "DecisionModel",
    "DecisionRecord",
    # Workspace
    "Domain",
    # Manifest
    "DomainSpec",
    "EntryKind",
    # Reports
    "FileRecord",
    "IssueKind",
    "KnowledgeArticle",
    "LoadIssue",
    "LoadReport",
    "LoadResult",
    "PermissionState",
    "Position",
    "Process",
    "Relationship",
    "RelationshipCardinality",
    "RelationshipSpec",
    "Resource",
    "ResourceBase",
    "ResourceKind",
    "SaveMode",
    "SaveOutcome",
    "SaveStatus",
    "StateUpdate",
    "SyncReport",
    "System",
    "SystemSpec",
    "Table",
    "Workspace",
    "WorkspaceFormat",
    "WorkspaceManifest",
    "WorkspaceResources",
    "WorkspaceSnapshot",
    "validate_resource",
]
