"""
In-Memory Storage

Used by the test-suite and for throwaway sessions. Records are deep-copied
on the way in and out, so callers can never mutate stored state by
accident - the same isolation a serialized store gives.
"""

import copy
from uuid import UUID

from cashbook.models.audit import AuditEvent
from cashbook.services.storage.interface import (
    AuditStorageInterface,
    CollectionBackend,
)


class InMemoryBackend(CollectionBackend):
    """Dict-of-lists backend."""

    def __init__(self):
        self._collections: dict[str, list[dict]] = {}

    def load(self, name: str) -> list[dict]:
        return copy.deepcopy(self._collections.get(name, []))

    def replace(self, name: str, records: list[dict]) -> None:
        self._collections[name] = copy.deepcopy(records)

    def drop(self, name: str) -> None:
        self._collections.pop(name, None)

    def collection_names(self) -> list[str]:
        return sorted(self._collections)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
