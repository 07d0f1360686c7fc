"""Services package."""

from cashbook.services.currency import (
    amount_to_display_text,
    apply_typing_mask,
    display_text_to_amount,
)
from cashbook.services.nfe import (
    MalformedDocumentError,
    NFeError,
    parse_nfe_xml,
    suggested_source,
)
from cashbook.services.storage import (
    AuditStorageInterface,
    CollectionBackend,
    GoogleSheetsAuditStorage,
    GoogleSheetsBackend,
    GoogleSheetsClient,
    InMemoryAuditStorage,
    InMemoryBackend,
    JsonFileBackend,
    LedgerStore,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # Currency text
    "amount_to_display_text",
    "apply_typing_mask",
    "display_text_to_amount",
    # NFe documents
    "MalformedDocumentError",
    "NFeError",
    "parse_nfe_xml",
    "suggested_source",
    # Storage services
    "AuditStorageInterface",
    "CollectionBackend",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBackend",
    "GoogleSheetsClient",
    "InMemoryAuditStorage",
    "InMemoryBackend",
    "JsonFileBackend",
    "LedgerStore",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
]
