"""Exceptions raised by the persistence engine.

Only fatal conditions are exceptions.  A single unreadable resource file, an
ambiguous system linkage, or a stale file that refuses to be deleted are
recorded in the load / sync reports instead.
"""

from __future__ import annotations


class WorkspacePersistenceError(Exception):
    """Base class for all engine errors."""


# -- Load --------------------------------------------------------------------


class NoWorkspaceFoundError(WorkspacePersistenceError, LookupError):
    """No recognizable workspace layout among the given files."""

    def __init__(self, detail: str = "no files given") -> None:
        super().__init__(f"No workspace found: {detail}")


class MalformedManifestError(WorkspacePersistenceError, ValueError):
    """The workspace manifest (or a legacy domain file) cannot be read."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Malformed manifest '{path}': {reason}")


class IdCollisionError(WorkspacePersistenceError, ValueError):
    """The same entity id was loaded twice within one resource class."""

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"Duplicate {entity} id '{entity_id}'")


# -- Save --------------------------------------------------------------------


class SerializationError(WorkspacePersistenceError):
    """The format engine failed to render an entity; the save is aborted."""

    def __init__(self, entity: str, name: str, cause: BaseException) -> None:
        super().__init__(f"Failed to serialize {entity} '{name}': {cause}")


class SyncWriteError(WorkspacePersistenceError, OSError):
    """Writing an expected file failed; the save is aborted."""

    def __init__(self, path: str, cause: BaseException) -> None:
        self.path = path
        super().__init__(f"Failed to write '{path}': {cause}")


class DirectoryPermissionError(WorkspacePersistenceError, PermissionError):
    """The directory handle is no longer writable."""

    def __init__(self, directory: str, state: str = "denied") -> None:
        self.state = state
        super().__init__(f"No write permission for directory '{directory}' ({state})")


class PickerCancelledError(WorkspacePersistenceError):
    """The user dismissed the directory picker.  Not an error for the caller."""


# -- Format engine -----------------------------------------------------------


class FormatEngineError(WorkspacePersistenceError, ValueError):
    """The format engine could not parse or render a document."""
