"""Deterministic file naming for the flat (v2) layout.

Every resource file name is built from sanitized workspace / domain /
(optional) system / entity names, so the same graph always produces the same
paths.  The synchronizer's stale-file diff depends on that stability.
"""

from __future__ import annotations

import re

from modelkeeper.persistence.models.enums import ResourceKind

MANIFEST_SUFFIX = ".workspace.yaml"
README_NAME = "README.md"

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^a-zA-Z0-9_-]")


def sanitize_name(name: str) -> str:
    """Lower-case ``name``, turn whitespace runs into ``_`` and drop anything
    outside ``[a-z0-9_-]``.

    >>> sanitize_name("Sales EU / Orders")
    'sales_eu__orders'
    """
    return _DISALLOWED.sub("", _WHITESPACE.sub("_", name.strip())).lower() or "unnamed"


def domain_prefix(workspace_name: str, domain_name: str) -> str:
    """File name prefix shared by every resource of one domain."""
    return f"{sanitize_name(workspace_name)}_{sanitize_name(domain_name)}_"


def workspace_prefix(workspace_name: str) -> str:
    return f"{sanitize_name(workspace_name)}_"


def manifest_file_name(workspace_name: str) -> str:
    return f"{sanitize_name(workspace_name)}{MANIFEST_SUFFIX}"


def resource_file_name(
    kind: ResourceKind,
    workspace_name: str,
    domain_name: str | None,
    entity_name: str,
    system_name: str | None = None,
) -> str:
    """Relative path of a resource file, e.g. ``odcs/acme_sales_crm_orders.odcs.yaml``.

    ``domain_name=None`` is used for workspace-global knowledge articles and
    decision records.
    """
    parts = [sanitize_name(workspace_name)]
    if domain_name is not None:
        parts.append(sanitize_name(domain_name))
    if system_name:
        parts.append(sanitize_name(system_name))
    parts.append(sanitize_name(entity_name))
    return f"{kind.value}/{'_'.join(parts)}.{kind.extension}"


def with_id_suffix(path: str, entity_id: str) -> str:
    """Disambiguate a colliding path by inserting ``_{id[:8]}`` before the extension."""
    directory, _, name = path.rpartition("/")
    stem, dot, ext = name.partition(".")
    renamed = f"{stem}_{entity_id[:8]}{dot}{ext}"
    return f"{directory}/{renamed}" if directory else renamed


def strip_prefix(name: str, *prefixes: str) -> str:
    """Remove the first matching prefix (case-insensitive) from ``name``."""
    lowered = name.lower()
    for prefix in prefixes:
        if prefix and lowered.startswith(prefix.lower()):
            return name[len(prefix) :]
    return name
