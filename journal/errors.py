"""Error types raised by the journal store and analytics."""

from __future__ import annotations

__all__ = [
    "JournalError",
    "NotFoundError",
    "ConstraintViolationError",
    "StorageFailureError",
    "ConfigurationError",
]


class JournalError(Exception):
    """Base class for every error raised by the journal."""


class NotFoundError(JournalError):
    """A product, session or check-in id does not exist."""

    def __init__(self, entity: str, entity_id: object) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ConstraintViolationError(JournalError):
    """A write references a parent record that does not exist."""


class StorageFailureError(JournalError):
    """The underlying store could not complete a read or write."""


class ConfigurationError(JournalError):
    """An environment setting holds a value the journal cannot use."""
