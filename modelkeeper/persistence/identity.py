"""Entity id normalization.

Every entity id in a workspace is a UUID.  Ids read from disk are kept
verbatim when they already parse as a UUID; anything else (missing, empty,
``"table-1"``, ...) is replaced with a fresh ``uuid4``.

A replaced id that had a non-empty value is remembered as an alias, per
entity label, so that references still pointing at the old value (manifest
``table_ids``, relationship endpoints) can be rewritten to the new id.  When
two definitions share the same invalid value, each still gets its own id and
references follow the first one.  One ``IdentityMap`` lives for the duration
of a single load call.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable

from loguru import logger


def is_valid_uuid(value: object) -> bool:
    if not isinstance(value, str) or not value:
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def new_id() -> str:
    return str(uuid.uuid4())


class IdentityMap:
    """Per-load registry of replaced ids."""

    def __init__(self) -> None:
        self._aliases: dict[tuple[str, str], str] = {}

    def normalize(self, raw: object, *, label: str = "entity") -> str:
        """Return ``raw`` if it is a valid UUID, otherwise a new id."""
        if is_valid_uuid(raw):
            return raw  # type: ignore[return-value]

        key = str(raw) if raw not in (None, "") else None
        replacement = new_id()
        if key is not None:
            self._aliases.setdefault((label, key), replacement)
        logger.debug("Replaced invalid {} id {!r} with {}", label, raw, replacement)
        return replacement

    def resolve(self, ref: object, *, label: str = "entity") -> str | None:
        """Translate a reference to its current id; unknown references pass through."""
        if ref in (None, ""):
            return None
        ref = str(ref)
        return self._aliases.get((label, ref), ref)

    def resolve_all(self, refs: Iterable[object] | None, *, label: str = "entity") -> list[str]:
        """Translate and de-duplicate a list of references, keeping first-seen order."""
        seen: dict[str, None] = {}
        for ref in refs or ():
            resolved = self.resolve(ref, label=label)
            if resolved is not None:
                seen.setdefault(resolved, None)
        return list(seen)
