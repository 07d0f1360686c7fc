"""
Payable Lifecycle Manager

Owns the state machine of a payable ("boleto"):

    pending --settle--> paid --reverse_settlement--> pending

DESIGN DECISION: Settlement is the only way money leaves for a payable.
Paying from a bank account records an outgoing Movement through the
BalanceLedger; paying from cash records nothing on any account and is
picked up by the derived cash-on-hand figure instead.

The amount of a paid payable is locked. What an edit that tries to
change it does is a setting (paid_amount_edit_policy): "reject" raises,
"ignore" keeps the old amount and applies the rest of the edit.
"""

from datetime import date
from decimal import Decimal
from typing import Callable, Iterable, Optional
from uuid import UUID

import structlog

from cashbook.audit import AuditLogger, create_correlation_id
from cashbook.config import LedgerSettings, get_settings
from cashbook.ledger.balance import BalanceLedger, cash_on_hand
from cashbook.ledger.errors import (
    InsufficientFundsError,
    LedgerError,
    ValidationError,
    raise_if_invalid,
)
from cashbook.models.audit import AuditEventType
from cashbook.models.ledger import (
    MovementDirection,
    Payable,
    PaymentSource,
    revise,
)
from cashbook.models.reports import (
    BulkSettlementResult,
    SettlementFailure,
    SettlementRequest,
)
from cashbook.services.storage import LedgerStore, StorageError
from cashbook.validation import LedgerValidator


logger = structlog.get_logger(__name__)


class PayableManager:
    """
    Create, edit, settle, reverse and delete payables.

    All validation happens before the first write.
    """

    def __init__(
        self,
        store: LedgerStore,
        ledger: BalanceLedger,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
        clock: Callable[[], date] = date.today,
    ):
        self._store = store
        self._ledger = ledger
        self._validator = validator or LedgerValidator()
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().ledger
        self._clock = clock

    def _log(
        self,
        event_type: AuditEventType,
        payable: Payable,
        description: str,
        correlation_id: Optional[UUID] = None,
        **details,
    ) -> None:
        if self._audit_logger:
            self._audit_logger.log_entity_event(
                event_type=event_type,
                entity_type="payable",
                entity_id=payable.id,
                description=description,
                details=details,
                correlation_id=correlation_id,
            )

    # =========================================================================
    # CRUD
    # =========================================================================

    def create(self, description: str, amount: Decimal, due_date: date) -> Payable:
        """Create a pending payable."""
        raise_if_invalid(
            "create_payable",
            self._validator.validate_payable(description, amount, due_date),
            self._audit_logger,
        )
        payable = Payable(description=description, amount=amount, due_date=due_date)
        self._store.payables.save(payable)
        self._log(
            AuditEventType.PAYABLE_CREATED,
            payable,
            f"Payable created: {payable.description}",
            amount=str(payable.amount),
            due_date=payable.due_date.isoformat(),
        )
        return payable

    def edit(
        self,
        payable_id: UUID,
        description: Optional[str] = None,
        amount: Optional[Decimal] = None,
        due_date: Optional[date] = None,
    ) -> Payable:
        """
        Edit description, amount or due date.

        Raises:
            NotFoundError: unknown payable
            ValidationError: invalid values, or an amount change on a paid
                payable under the "reject" policy
        """
        payable = self._store.payables.require(payable_id)

        changes = {}
        if description is not None:
            changes["description"] = description
        if due_date is not None:
            changes["due_date"] = due_date
        if amount is not None and Decimal(amount) != payable.amount:
            if not payable.paid:
                changes["amount"] = amount
            elif self._settings.paid_amount_edit_policy == "reject":
                raise ValidationError.single(
                    "amount",
                    "locked",
                    f"The amount of paid payable '{payable.description}' cannot change; "
                    "reverse the settlement first",
                )
            else:
                logger.warning(
                    "paid_amount_edit_ignored",
                    payable_id=str(payable.id),
                    requested=str(amount),
                    kept=str(payable.amount),
                )

        raise_if_invalid(
            "edit_payable",
            self._validator.validate_payable(
                changes.get("description", payable.description),
                changes.get("amount", payable.amount),
                changes.get("due_date", payable.due_date),
            ),
            self._audit_logger,
        )

        updated = revise(payable, **changes)
        self._store.payables.save(updated)
        self._log(
            AuditEventType.PAYABLE_UPDATED,
            updated,
            f"Payable updated: {updated.description}",
            fields=sorted(changes),
        )
        return updated

    def delete(self, payable_id: UUID) -> None:
        """
        Delete a payable. A paid payable has its settlement reversed first,
        so the money comes back to the account it left.
        """
        payable = self._store.payables.require(payable_id)
        correlation_id = create_correlation_id()
        if payable.paid:
            self._ledger.reverse_effect(payable_id=payable.id, correlation_id=correlation_id)
        self._store.payables.delete(payable.id)
        self._log(
            AuditEventType.PAYABLE_DELETED,
            payable,
            f"Payable deleted: {payable.description}",
            correlation_id=correlation_id,
            was_paid=payable.paid,
        )

    def get(self, payable_id: UUID) -> Optional[Payable]:
        return self._store.payables.get_by_id(payable_id)

    def list_all(self) -> list[Payable]:
        return sorted(self._store.payables.get_all(), key=lambda p: p.due_date)

    def pending(self) -> list[Payable]:
        """Unpaid payables, earliest due date first."""
        return [p for p in self.list_all() if not p.paid]

    def paid(self) -> list[Payable]:
        """Paid payables, most recent payment first."""
        paid = [p for p in self._store.payables.get_all() if p.paid]
        return sorted(paid, key=lambda p: p.payment_date, reverse=True)

    # =========================================================================
    # SETTLEMENT
    # =========================================================================

    def settle(
        self,
        payable_id: UUID,
        source: PaymentSource,
        account_id: Optional[UUID] = None,
        on: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Payable:
        """
        Pay a pending payable from cash or from a bank account.

        The Movement is written before the payable is marked paid.

        Raises:
            NotFoundError: unknown payable or account
            ValidationError: already paid, missing/forbidden account,
                inactive account
            InsufficientFundsError: the source cannot cover the amount
        """
        payable = self._store.payables.require(payable_id)
        source = PaymentSource(source)

        account = None
        if source is PaymentSource.BANK_ACCOUNT and account_id is not None:
            account = self._store.accounts.require(account_id)

        raise_if_invalid(
            "settle_payable",
            self._validator.validate_settlement(payable, source, account_id, account),
            self._audit_logger,
        )

        if source is PaymentSource.CASH:
            available = cash_on_hand(self._store)
            if available < payable.amount:
                raise InsufficientFundsError(available, payable.amount, source="cash")
        elif self._settings.enforce_account_funds and account.current_balance < payable.amount:
            raise InsufficientFundsError(
                account.current_balance, payable.amount, source="bank_account"
            )

        payment_date = on or self._clock()
        settled = revise(
            payable,
            paid=True,
            payment_date=payment_date,
            payment_source=source,
            account_id=account.id if account else None,
        )

        if account is not None:
            self._ledger.apply_effect(
                account_id=account.id,
                amount=payable.amount,
                direction=MovementDirection.OUT,
                description=f"Payable payment: {payable.description}",
                payable_id=payable.id,
                on=payment_date,
                correlation_id=correlation_id,
            )
        self._store.payables.save(settled)

        if self._audit_logger:
            self._audit_logger.log_payable_settled(
                payable_id=payable.id,
                source=source.value,
                amount=payable.amount,
                account_id=settled.account_id,
                correlation_id=correlation_id,
            )
        return settled

    def reverse_settlement(self, payable_id: UUID) -> Payable:
        """
        Return a paid payable to pending, giving the money back to the
        account it was paid from.

        Raises:
            NotFoundError: unknown payable
            ValidationError: the payable is not paid
        """
        payable = self._store.payables.require(payable_id)
        if not payable.paid:
            raise ValidationError.single(
                "paid", "not_paid", f"Payable '{payable.description}' is not paid"
            )

        correlation_id = create_correlation_id()
        self._ledger.reverse_effect(payable_id=payable.id, correlation_id=correlation_id)

        reopened = revise(
            payable,
            paid=False,
            payment_date=None,
            payment_source=None,
            account_id=None,
        )
        self._store.payables.save(reopened)
        self._log(
            AuditEventType.SETTLEMENT_REVERSED,
            reopened,
            f"Settlement reversed: {payable.description}",
            correlation_id=correlation_id,
            source=payable.payment_source.value,
            amount=str(payable.amount),
        )
        return reopened

    def settle_many(self, requests: Iterable[SettlementRequest]) -> BulkSettlementResult:
        """
        Settle each request independently.

        A failure is recorded and the loop moves on; earlier successes
        are never rolled back.
        """
        result = BulkSettlementResult()
        correlation_id = create_correlation_id()
        for request in requests:
            try:
                self.settle(
                    request.payable_id,
                    request.source,
                    account_id=request.account_id,
                    correlation_id=correlation_id,
                )
            except (LedgerError, StorageError) as e:
                result.failures.append(SettlementFailure(
                    payable_id=request.payable_id,
                    error_type=type(e).__name__,
                    message=str(e),
                ))
            else:
                result.settled.append(request.payable_id)
        return result
