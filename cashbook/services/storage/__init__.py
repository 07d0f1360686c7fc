"""
Storage Services Package

Provides the abstract collection interface, typed entity collections and
the concrete backends (in-memory, JSON files, Google Sheets).
"""

from cashbook.services.storage.interface import (
    AuditStorageInterface,
    CollectionBackend,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)
from cashbook.services.storage.collections import EntityCollection, LedgerStore
from cashbook.services.storage.memory import InMemoryAuditStorage, InMemoryBackend
from cashbook.services.storage.json_file import JsonFileBackend
from cashbook.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBackend,
    GoogleSheetsClient,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "CollectionBackend",
    # Exceptions
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # Collections
    "EntityCollection",
    "LedgerStore",
    # Backends
    "InMemoryAuditStorage",
    "InMemoryBackend",
    "JsonFileBackend",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBackend",
    "GoogleSheetsClient",
]
