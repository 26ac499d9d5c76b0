"""Workspace layout detection.

Pure function over the list of relative file paths found in a source.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import PurePosixPath

from modelkeeper.persistence.errors import NoWorkspaceFoundError
from modelkeeper.persistence.layout.naming import MANIFEST_SUFFIX
from modelkeeper.persistence.models.enums import WorkspaceFormat

# Files that mark a v1 domain folder when found one level (or more) below the root.
LEGACY_DOMAIN_MARKERS = frozenset({"tables.yaml", "domain.yaml"})
LEGACY_WORKSPACE_FILE = "workspace.yaml"


def detect_format(names: Iterable[str]) -> WorkspaceFormat:
    """Classify a file set as the flat (v2) or folder-based (v1) layout.

    Raises
    ------
    NoWorkspaceFoundError
        The set is empty or contains neither a ``*.workspace.yaml`` manifest nor
        a ``<domain>/tables.yaml`` / ``<domain>/domain.yaml`` folder.
    """
    paths = [PurePosixPath(n) for n in names]
    if not paths:
        raise NoWorkspaceFoundError()

    if any(p.name.lower().endswith(MANIFEST_SUFFIX) for p in paths):
        return WorkspaceFormat.V2

    for p in paths:
        name = p.name.lower()
        if name in LEGACY_DOMAIN_MARKERS and len(p.parts) >= 2:
            return WorkspaceFormat.V1
        if name == LEGACY_WORKSPACE_FILE and len(p.parts) <= 2:
            return WorkspaceFormat.V1

    raise NoWorkspaceFoundError(f"no manifest or domain folder among {len(paths)} file(s)")
