"""Format engine interface.

The engine owns the semantics of every resource file format.  The
persistence engine only hands it text to parse and payloads to render, and
reads back ids, names and ownership hints from the structured result.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from modelkeeper.persistence.models.enums import ResourceKind


@runtime_checkable
class FormatEngine(Protocol):
    """Async per-kind parse / render service.

    Implementations raise ``FormatEngineError`` for documents they cannot
    handle; any other exception is treated the same way by the loader.
    """

    async def parse(self, kind: ResourceKind, text: str) -> Any:
        """Parse file text into a structured payload (usually a mapping)."""
        ...

    async def to_text(self, kind: ResourceKind, payload: dict[str, Any]) -> str:
        """Render a payload back to file text."""
        ...

    async def parse_manifest(self, text: str) -> Any:
        """Parse the workspace manifest (or a legacy ``*.yaml`` metadata file)."""
        ...

    async def manifest_to_text(self, payload: dict[str, Any]) -> str:
        ...
