"""
Balance Ledger

CRITICAL: This is the ONLY module that writes BankAccount.current_balance.
Payables and sales never touch a balance directly; they ask the ledger to
apply an effect and, when they are reversed, to take it back.

Every effect is recorded as exactly one Movement. Reversal applies the
exact inverse of each recorded Movement and then deletes it, so that

    current_balance == opening_balance + sum(signed movements)

holds after every completed operation. reconcile() checks it.

Write ordering:
- apply: account balance first, then the Movement log
- reverse: account balances first, then the Movement deletions
Each collection write is one atomic replace. There is no rollback across
collections.
"""

from datetime import date
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

import structlog

from cashbook.audit import AuditLogger
from cashbook.ledger.errors import ValidationError
from cashbook.models.ledger import (
    Movement,
    MovementDirection,
    PaymentSource,
    SaleMethod,
    revise,
)
from cashbook.models.reports import ZERO
from cashbook.services.storage import LedgerStore


logger = structlog.get_logger(__name__)


def cash_on_hand(store: LedgerStore) -> Decimal:
    """
    Cash is not an account; its balance is derived.

    Cash sales minus payables settled from cash.
    """
    received = sum(
        (sale.amount for sale in store.sales.get_all() if sale.method is SaleMethod.CASH),
        ZERO,
    )
    paid_out = sum(
        (
            payable.amount
            for payable in store.payables.get_all()
            if payable.paid and payable.payment_source is PaymentSource.CASH
        ),
        ZERO,
    )
    return received - paid_out


class BalanceLedger:
    """
    Applies and reverses balance effects on bank accounts.

    GUARANTEES:
    - One Movement per applied effect
    - Reversal restores every affected balance exactly
    - Reversing an origin with no Movements is a no-op
    """

    def __init__(
        self,
        store: LedgerStore,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], date] = date.today,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._clock = clock

    def apply_effect(
        self,
        account_id: UUID,
        amount: Decimal,
        direction: MovementDirection,
        description: str = "",
        payable_id: Optional[UUID] = None,
        sale_id: Optional[UUID] = None,
        on: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Movement:
        """
        Move `amount` into or out of an account and record it.

        Raises:
            ValidationError: amount <= 0, or both back-references given
            NotFoundError: unknown account
        """
        if amount is None or Decimal(amount) <= 0:
            raise ValidationError.single(
                "amount", "invalid_value", f"Movement amount must be positive (got {amount})"
            )
        if payable_id is not None and sale_id is not None:
            raise ValidationError.single(
                "origin", "forbidden", "A movement references at most one origin"
            )

        account = self._store.accounts.require(account_id)

        movement = Movement(
            account_id=account_id,
            direction=direction,
            amount=amount,
            description=description,
            payable_id=payable_id,
            sale_id=sale_id,
            movement_date=on or self._clock(),
        )
        updated = revise(
            account,
            current_balance=account.current_balance + movement.signed_amount,
        )

        self._store.accounts.save(updated)
        self._store.movements.save(movement)

        if self._audit_logger:
            self._audit_logger.log_movement_applied(
                movement_id=movement.id,
                account_id=account_id,
                direction=direction.value,
                amount=movement.amount,
                new_balance=updated.current_balance,
                correlation_id=correlation_id,
            )

        return movement

    def reverse_effect(
        self,
        payable_id: Optional[UUID] = None,
        sale_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Movement]:
        """
        Undo every Movement that references an origin.

        Returns the removed Movements (empty when there were none).

        Raises:
            ValidationError: not exactly one origin given
        """
        if (payable_id is None) == (sale_id is None):
            raise ValidationError.single(
                "origin", "invalid_value", "Exactly one of payable_id or sale_id is required"
            )

        all_movements = self._store.movements.get_all()
        if payable_id is not None:
            reversed_movements = [m for m in all_movements if m.payable_id == payable_id]
        else:
            reversed_movements = [m for m in all_movements if m.sale_id == sale_id]

        if not reversed_movements:
            return []

        accounts = {account.id: account for account in self._store.accounts.get_all()}
        for movement in reversed_movements:
            account = accounts.get(movement.account_id)
            if account is None:
                logger.warning(
                    "reverse_missing_account",
                    movement_id=str(movement.id),
                    account_id=str(movement.account_id),
                )
                continue
            accounts[account.id] = revise(
                account,
                current_balance=account.current_balance - movement.signed_amount,
            )

        reversed_ids = {m.id for m in reversed_movements}
        self._store.accounts.save_all(accounts.values())
        self._store.movements.save_all(m for m in all_movements if m.id not in reversed_ids)

        if self._audit_logger:
            for movement in reversed_movements:
                self._audit_logger.log_movement_reversed(
                    movement_id=movement.id,
                    account_id=movement.account_id,
                    origin_id=movement.origin_id,
                    amount=movement.amount,
                    correlation_id=correlation_id,
                )

        return reversed_movements

    # =========================================================================
    # RECONCILIATION
    # =========================================================================

    def movements_for(self, account_id: UUID) -> list[Movement]:
        """Movements of one account, oldest first."""
        movements = [m for m in self._store.movements.get_all() if m.account_id == account_id]
        movements.sort(key=lambda m: m.movement_date)
        return movements

    def expected_balance(self, account_id: UUID) -> Decimal:
        """Opening balance plus every signed Movement of the account."""
        account = self._store.accounts.require(account_id)
        return account.opening_balance + sum(
            (m.signed_amount for m in self.movements_for(account_id)),
            ZERO,
        )

    def reconcile(self, account_id: UUID) -> Decimal:
        """
        Stored balance minus the balance implied by the Movement log.

        Zero when the account is consistent.
        """
        account = self._store.accounts.require(account_id)
        return account.current_balance - self.expected_balance(account_id)

    def verify_all(self) -> dict[UUID, Decimal]:
        """Discrepancy per account, only for accounts that drifted."""
        drift = {}
        for account in self._store.accounts.get_all():
            discrepancy = self.reconcile(account.id)
            if discrepancy != 0:
                drift[account.id] = discrepancy
                logger.error(
                    "balance_drift",
                    account_id=str(account.id),
                    discrepancy=str(discrepancy),
                )
                if self._audit_logger:
                    self._audit_logger.log_error(
                        error_type="BalanceDrift",
                        error_message=f"Account '{account.name}' is off by {discrepancy}",
                        details={"account_id": str(account.id), "discrepancy": str(discrepancy)},
                    )
        return drift
