"""Workspace loading: layout planning, resource loading, linkage and assembly."""

from modelkeeper.persistence.loading.assembler import AssembledWorkspace, assemble
from modelkeeper.persistence.loading.linkage import (
    LINKAGE_STRATEGIES,
    LinkageResolver,
    resolve_relationship_domain,
)
from modelkeeper.persistence.loading.loader import load_workspace, plan_workspace
from modelkeeper.persistence.loading.resources import DomainLoadResult, ResourceLoader
from modelkeeper.persistence.loading.source import DirectorySource, FileSource, MemorySource

__all__ = [
    "LINKAGE_STRATEGIES",
    "AssembledWorkspace",
    "DirectorySource",
    "DomainLoadResult",
    "FileSource",
    "LinkageResolver",
    "MemorySource",
    "ResourceLoader",
    "assemble",
    "load_workspace",
    "plan_workspace",
    "resolve_relationship_domain",
]
