"""File categorization and per-domain filtering.

``categorize_files`` buckets every path by its suffix into one resource kind.
It is an allow-list: anything that is not a known resource suffix, the
workspace manifest or the README is dropped.

``filter_for_domain`` then narrows the buckets to the files of one domain using
the ``{workspace}_{domain}_`` file-name prefix.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from modelkeeper.persistence.layout.naming import (
    MANIFEST_SUFFIX,
    README_NAME,
    domain_prefix,
    workspace_prefix,
)
from modelkeeper.persistence.models.enums import ResourceKind

# Longest suffix first so ".odcs.yaml" never loses to a shorter rule.
RESOURCE_SUFFIXES: tuple[tuple[str, ResourceKind], ...] = (
    (".odcs.yaml", ResourceKind.TABLE),
    (".odcs.yml", ResourceKind.TABLE),
    (".odps.yaml", ResourceKind.PRODUCT),
    (".cads.yaml", ResourceKind.ASSET),
    (".bpmn", ResourceKind.PROCESS),
    (".dmn", ResourceKind.DECISION),
    (".kb.yaml", ResourceKind.KNOWLEDGE),
    (".adr.yaml", ResourceKind.DECISION_RECORD),
)

# Files the synchronizer is allowed to create and delete: every loadable
# resource suffix plus the manifest.
MANAGED_EXTENSIONS: tuple[str, ...] = (*(suffix for suffix, _ in RESOURCE_SUFFIXES), MANIFEST_SUFFIX)


def classify(name: str) -> ResourceKind | None:
    """Resource kind of a single file name (base name, case-insensitive)."""
    lowered = PurePosixPath(name).name.lower()
    for suffix, kind in RESOURCE_SUFFIXES:
        if lowered.endswith(suffix):
            return kind
    return None


def is_managed(name: str) -> bool:
    lowered = PurePosixPath(name).name.lower()
    return any(lowered.endswith(ext) for ext in MANAGED_EXTENSIONS)


@dataclass
class DomainFiles:
    """Resource paths of one domain (or of the workspace-global bucket), by kind."""

    by_kind: dict[ResourceKind, list[str]] = field(default_factory=dict)

    def get(self, kind: ResourceKind) -> list[str]:
        return self.by_kind.get(kind, [])

    def add(self, kind: ResourceKind, path: str) -> None:
        self.by_kind.setdefault(kind, []).append(path)

    def __len__(self) -> int:
        return sum(len(v) for v in self.by_kind.values())


@dataclass
class CategorizedFiles:
    resources: DomainFiles = field(default_factory=DomainFiles)
    manifests: list[str] = field(default_factory=list)
    readme: str | None = None
    unrecognized: list[str] = field(default_factory=list)

    def get(self, kind: ResourceKind) -> list[str]:
        return self.resources.get(kind)


def categorize_files(names: Iterable[str]) -> CategorizedFiles:
    result = CategorizedFiles()
    for name in sorted(names):
        base = PurePosixPath(name).name
        lowered = base.lower()
        if lowered.endswith(MANIFEST_SUFFIX):
            result.manifests.append(name)
        elif lowered == README_NAME.lower():
            # Only the root README is ours.
            if "/" not in name and result.readme is None:
                result.readme = name
        elif (kind := classify(base)) is not None:
            result.resources.add(kind, name)
        else:
            result.unrecognized.append(name)
    return result


def _owning_prefix(base: str, prefixes: Sequence[str]) -> str | None:
    """Longest prefix in ``prefixes`` that ``base`` starts with."""
    best: str | None = None
    for prefix in prefixes:
        if base.startswith(prefix) and (best is None or len(prefix) > len(best)):
            best = prefix
    return best


def filter_for_domain(
    categorized: CategorizedFiles,
    workspace_name: str,
    domain_name: str,
    sibling_domains: Sequence[str] = (),
) -> DomainFiles:
    """Files of ``domain_name``.

    When a sibling domain's prefix is a longer match for the same file
    (``sales`` vs ``sales_eu``), the file belongs to the sibling only.
    """
    own = domain_prefix(workspace_name, domain_name)
    prefixes = [own, *(domain_prefix(workspace_name, d) for d in sibling_domains)]
    result = DomainFiles()
    for kind, paths in categorized.resources.by_kind.items():
        for path in paths:
            base = PurePosixPath(path).name.lower()
            if _owning_prefix(base, prefixes) == own:
                result.add(kind, path)
    return result


def workspace_global_files(
    categorized: CategorizedFiles,
    workspace_name: str,
    domain_names: Sequence[str],
) -> DomainFiles:
    """Knowledge articles and decision records that belong to no domain."""
    ws = workspace_prefix(workspace_name)
    prefixes = [domain_prefix(workspace_name, d) for d in domain_names]
    result = DomainFiles()
    for kind in (ResourceKind.KNOWLEDGE, ResourceKind.DECISION_RECORD):
        for path in categorized.get(kind):
            base = PurePosixPath(path).name.lower()
            if base.startswith(ws) and _owning_prefix(base, prefixes) is None:
                result.add(kind, path)
    return result


def claim_for_prefix(path: str, own: str, prefixes: Sequence[str]) -> str:
    """Rename ``path`` so that the longest-prefix rule reads it back as ``own``.

    A table ``EU Orders`` of domain ``Sales`` would be written as
    ``acme_sales_eu_orders`` and land in a sibling domain ``Sales EU`` on the
    next load.  Padding the part after ``own`` with ``_`` moves the name out of
    every longer prefix: ``acme_sales__eu_orders``.  ``own`` must be one of
    ``prefixes``.  Padding is bounded: a sibling whose name sanitizes to
    underscores only matches every padded name.
    """
    directory, _, base = path.rpartition("/")
    for _ in range(max(map(len, prefixes))):
        if _owning_prefix(base.lower(), prefixes) == own:
            break
        base = f"{own}_{base[len(own) :]}"
    return f"{directory}/{base}" if directory else base
