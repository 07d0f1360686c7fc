"""
Typed Entity Collections

An EntityCollection turns the raw record lists of a CollectionBackend
into pydantic models and back. LedgerStore bundles the six collections
the ledger works with.

Every save() and delete() is a read-modify-replace of the whole
collection, which is what makes a single collection write atomic.
"""

from typing import Generic, Iterable, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel

from cashbook.models.ledger import (
    BankAccount,
    Expense,
    MonthlyRevenueSupplement,
    Movement,
    Payable,
    Sale,
)
from cashbook.services.storage.interface import CollectionBackend, NotFoundError


ModelT = TypeVar("ModelT", bound=BaseModel)


class EntityCollection(Generic[ModelT]):
    """get_all / get_by_id / save_all / save / delete over one collection."""

    def __init__(self, backend: CollectionBackend, name: str, model: type[ModelT]):
        self._backend = backend
        self.name = name
        self.model = model

    def get_all(self) -> list[ModelT]:
        return [self.model.model_validate(record) for record in self._backend.load(self.name)]

    def get_by_id(self, entity_id: UUID) -> Optional[ModelT]:
        for item in self.get_all():
            if item.id == entity_id:
                return item
        return None

    def require(self, entity_id: UUID) -> ModelT:
        """Like get_by_id, but a missing record is an error."""
        item = self.get_by_id(entity_id)
        if item is None:
            raise NotFoundError(f"{self.model.__name__} not found: {entity_id}")
        return item

    def save_all(self, items: Iterable[ModelT]) -> None:
        self._backend.replace(self.name, [item.model_dump(mode="json") for item in items])

    def save(self, item: ModelT) -> ModelT:
        """Insert or replace by id."""
        items = self.get_all()
        for idx, existing in enumerate(items):
            if existing.id == item.id:
                items[idx] = item
                break
        else:
            items.append(item)
        self.save_all(items)
        return item

    def delete(self, entity_id: UUID) -> bool:
        """Remove by id. Returns False when nothing matched."""
        items = self.get_all()
        remaining = [item for item in items if item.id != entity_id]
        if len(remaining) == len(items):
            return False
        self.save_all(remaining)
        return True

    def clear(self) -> None:
        self._backend.drop(self.name)


class LedgerStore:
    """
    The six collections of the ledger.

    Collection names double as storage keys, so they must stay stable
    across releases.
    """

    def __init__(self, backend: CollectionBackend):
        self.backend = backend
        self.accounts = EntityCollection(backend, "accounts", BankAccount)
        self.payables = EntityCollection(backend, "payables", Payable)
        self.sales = EntityCollection(backend, "sales", Sale)
        self.movements = EntityCollection(backend, "movements", Movement)
        self.expenses = EntityCollection(backend, "expenses", Expense)
        self.revenue_supplements = EntityCollection(
            backend, "revenue-supplements", MonthlyRevenueSupplement
        )

    @property
    def collections(self) -> list[EntityCollection]:
        return [
            self.accounts,
            self.payables,
            self.sales,
            self.movements,
            self.expenses,
            self.revenue_supplements,
        ]

    def reset_all(self) -> list[str]:
        """Clear every collection. There is no undo."""
        names = []
        for collection in self.collections:
            collection.clear()
            names.append(collection.name)
        return names
