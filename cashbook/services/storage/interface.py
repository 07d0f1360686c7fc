"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the JSON file store, or move to Google Sheets, without touching
   the ledger
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally tiny. Every collection is read as
"all records" and written as "replace all records", exactly like the
browser key-value store the data model was designed around. Each
replace is one atomic write; there are no cross-collection transactions.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from cashbook.models.audit import AuditEvent


class CollectionBackend(ABC):
    """
    Abstract interface for a record-collection backend.

    Records are plain JSON-compatible dicts that carry an "id" key.
    """

    @abstractmethod
    def load(self, name: str) -> list[dict]:
        """
        Read every record of a collection.

        Args:
            name: Collection name (e.g. 'accounts')

        Returns:
            The records, or an empty list if the collection was never written
        """
        pass

    @abstractmethod
    def replace(self, name: str, records: list[dict]) -> None:
        """
        Replace the whole collection.

        Args:
            name: Collection name
            records: The complete new contents

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def drop(self, name: str) -> None:
        """
        Remove a collection entirely. Dropping a missing collection is a no-op.
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity, in chronological order.
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
