"""
Sale Manager

PIX, debit and credit sales credit the chosen bank account through the
BalanceLedger. Cash sales touch no account and only feed cash-on-hand.

DESIGN DECISION: An edit is always reverse-then-reapply.
The previous ledger effect is undone and the merged sale is applied
from scratch, even when neither amount nor account changed. This keeps
the edit path identical for every kind of change (amount, account,
method, cash <-> card) and guarantees at most one Movement per sale.
"""

from datetime import date
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

from cashbook.audit import AuditLogger, create_correlation_id
from cashbook.ledger.balance import BalanceLedger
from cashbook.ledger.errors import raise_if_invalid
from cashbook.models.audit import AuditEventType
from cashbook.models.ledger import MovementDirection, Sale, SaleMethod, revise
from cashbook.services.storage import LedgerStore
from cashbook.validation import LedgerValidator


_UNSET = object()


def movement_description(sale: Sale) -> str:
    return f"Sale: {sale.description} ({sale.method.value.upper()})"


class SaleManager:
    """Record, edit and delete sales while keeping account balances in step."""

    def __init__(
        self,
        store: LedgerStore,
        ledger: BalanceLedger,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], date] = date.today,
    ):
        self._store = store
        self._ledger = ledger
        self._validator = validator or LedgerValidator()
        self._audit_logger = audit_logger
        self._clock = clock

    def _validate(
        self,
        operation: str,
        description: str,
        amount: Decimal,
        method: SaleMethod,
        account_id: Optional[UUID],
    ) -> None:
        """Look up the account (NotFoundError) and validate the whole sale."""
        account = None
        if account_id is not None and method.requires_account:
            account = self._store.accounts.require(account_id)
        raise_if_invalid(
            operation,
            self._validator.validate_sale(description, amount, method, account_id, account),
            self._audit_logger,
        )

    def _apply(self, sale: Sale, correlation_id: UUID) -> None:
        if sale.account_id is None:
            return
        self._ledger.apply_effect(
            account_id=sale.account_id,
            amount=sale.amount,
            direction=MovementDirection.IN,
            description=movement_description(sale),
            sale_id=sale.id,
            on=sale.sale_date,
            correlation_id=correlation_id,
        )

    def create(
        self,
        description: str,
        amount: Decimal,
        method: SaleMethod,
        account_id: Optional[UUID] = None,
        sale_date: Optional[date] = None,
    ) -> Sale:
        """
        Record a sale.

        Raises:
            ValidationError: blank description, amount <= 0, account
                missing/forbidden for the method, inactive account or an
                account that does not accept the method
            NotFoundError: unknown account
        """
        method = SaleMethod(method)
        self._validate("create_sale", description, amount, method, account_id)

        sale = Sale(
            description=description,
            amount=amount,
            method=method,
            account_id=account_id,
            sale_date=sale_date or self._clock(),
        )
        correlation_id = create_correlation_id()

        self._store.sales.save(sale)
        self._apply(sale, correlation_id)

        if self._audit_logger:
            self._audit_logger.log_entity_event(
                event_type=AuditEventType.SALE_RECORDED,
                entity_type="sale",
                entity_id=sale.id,
                description=f"Sale recorded: {sale.description}",
                details={"amount": str(sale.amount), "method": sale.method.value},
                correlation_id=correlation_id,
            )
        return sale

    def edit(
        self,
        sale_id: UUID,
        description: Optional[str] = None,
        amount: Optional[Decimal] = None,
        method: Optional[SaleMethod] = None,
        account_id=_UNSET,
        sale_date: Optional[date] = None,
    ) -> Sale:
        """
        Edit a sale and move its ledger effect to match.

        Omitted fields keep their value. Switching to cash drops the
        account link. The merged sale is validated before anything is
        reversed.
        """
        sale = self._store.sales.require(sale_id)

        new_method = SaleMethod(method) if method is not None else sale.method
        if account_id is _UNSET:
            new_account_id = sale.account_id
        else:
            new_account_id = account_id
        if not new_method.requires_account:
            new_account_id = None

        changes = {
            "description": description if description is not None else sale.description,
            "amount": amount if amount is not None else sale.amount,
            "method": new_method,
            "account_id": new_account_id,
            "sale_date": sale_date or sale.sale_date,
        }
        self._validate(
            "edit_sale",
            changes["description"],
            changes["amount"],
            new_method,
            new_account_id,
        )

        updated = revise(sale, **changes)

        correlation_id = create_correlation_id()
        self._ledger.reverse_effect(sale_id=sale.id, correlation_id=correlation_id)
        self._store.sales.save(updated)
        self._apply(updated, correlation_id)

        if self._audit_logger:
            self._audit_logger.log_entity_event(
                event_type=AuditEventType.SALE_UPDATED,
                entity_type="sale",
                entity_id=updated.id,
                description=f"Sale updated: {updated.description}",
                details={
                    "previous_amount": str(sale.amount),
                    "amount": str(updated.amount),
                    "previous_method": sale.method.value,
                    "method": updated.method.value,
                },
                correlation_id=correlation_id,
            )
        return updated

    def delete(self, sale_id: UUID) -> None:
        """Take the sale's money back out of its account, then delete it."""
        sale = self._store.sales.require(sale_id)
        correlation_id = create_correlation_id()
        self._ledger.reverse_effect(sale_id=sale.id, correlation_id=correlation_id)
        self._store.sales.delete(sale.id)

        if self._audit_logger:
            self._audit_logger.log_entity_event(
                event_type=AuditEventType.SALE_DELETED,
                entity_type="sale",
                entity_id=sale.id,
                description=f"Sale deleted: {sale.description}",
                details={"amount": str(sale.amount), "method": sale.method.value},
                correlation_id=correlation_id,
            )

    def get(self, sale_id: UUID) -> Optional[Sale]:
        return self._store.sales.get_by_id(sale_id)

    def list_all(self) -> list[Sale]:
        """Newest sale date first."""
        return sorted(self._store.sales.get_all(), key=lambda s: s.sale_date, reverse=True)
