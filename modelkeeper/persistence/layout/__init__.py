"""On-disk layout: format detection, file categorization and naming."""

from modelkeeper.persistence.layout.categorize import (
    MANAGED_EXTENSIONS,
    CategorizedFiles,
    DomainFiles,
    categorize_files,
    claim_for_prefix,
    classify,
    filter_for_domain,
    is_managed,
    workspace_global_files,
)
from modelkeeper.persistence.layout.detect import detect_format
from modelkeeper.persistence.layout.naming import (
    domain_prefix,
    manifest_file_name,
    resource_file_name,
    sanitize_name,
)

__all__ = [
    "MANAGED_EXTENSIONS",
    "CategorizedFiles",
    "DomainFiles",
    "categorize_files",
    "claim_for_prefix",
    "classify",
    "detect_format",
    "domain_prefix",
    "filter_for_domain",
    "is_managed",
    "manifest_file_name",
    "resource_file_name",
    "sanitize_name",
    "workspace_global_files",
]
