from __future__ import annotations


class StructureError(Exception):
    """Raised when a hierarchy is structurally invalid (cycles, bad refs, duplicates)."""


class CycleError(StructureError):
    """Raised when a move or a flat list would make a node its own ancestor."""


class UnknownParentError(StructureError):
    """Raised when a node references a parent id that does not exist."""

    def __init__(self, message: str, orphan_ids: list | None = None) -> None:
        super().__init__(message)
        self.orphan_ids = list(orphan_ids or [])


class UnknownNodeError(StructureError):
    """Raised when an operation targets a node id that is not in the list."""


class DuplicateIdError(StructureError):
    """Raised when two nodes share the same id."""


class TaskFileError(Exception):
    """Raised when a task document cannot be parsed into nodes."""


class ConfigError(Exception):
    """Raised when the engine configuration is invalid."""
