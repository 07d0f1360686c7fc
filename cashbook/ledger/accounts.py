"""
Account Manager

Registers and maintains bank accounts.

Balances are NOT editable here. opening_balance is fixed at
registration and current_balance belongs to the BalanceLedger.
An account with Movements cannot be deleted, only deactivated, so the
history behind every balance stays reachable.
"""

from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from cashbook.audit import AuditLogger
from cashbook.ledger.balance import BalanceLedger
from cashbook.ledger.errors import ValidationError, raise_if_invalid
from cashbook.models.audit import AuditEventType
from cashbook.models.ledger import BankAccount, PaymentMethod, revise
from cashbook.services.storage import LedgerStore
from cashbook.validation import LedgerValidator


class AccountManager:
    """Register, edit, deactivate and delete bank accounts."""

    def __init__(
        self,
        store: LedgerStore,
        ledger: BalanceLedger,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._ledger = ledger
        self._validator = validator or LedgerValidator()
        self._audit_logger = audit_logger

    def _log(self, event_type: AuditEventType, account: BankAccount, description: str, **details) -> None:
        if self._audit_logger:
            self._audit_logger.log_entity_event(
                event_type=event_type,
                entity_type="account",
                entity_id=account.id,
                description=description,
                details=details,
            )

    def register(
        self,
        name: str,
        opening_balance: Decimal = Decimal("0"),
        bank: str = "",
        branch: str = "",
        number: str = "",
        accepted_methods: Optional[Iterable[PaymentMethod]] = None,
    ) -> BankAccount:
        """Create an account whose current balance starts at the opening balance."""
        raise_if_invalid(
            "register_account",
            self._validator.validate_account(
                name, opening_balance, bank=bank, branch=branch, number=number
            ),
            self._audit_logger,
        )

        account = BankAccount(
            name=name,
            bank=bank,
            branch=branch,
            number=number,
            opening_balance=opening_balance,
            accepted_methods=set(accepted_methods or ()),
        )
        self._store.accounts.save(account)
        self._log(
            AuditEventType.ACCOUNT_REGISTERED,
            account,
            f"Account registered: {account.name}",
            opening_balance=str(account.opening_balance),
        )
        return account

    def edit(
        self,
        account_id: UUID,
        name: Optional[str] = None,
        bank: Optional[str] = None,
        branch: Optional[str] = None,
        number: Optional[str] = None,
        accepted_methods: Optional[Iterable[PaymentMethod]] = None,
    ) -> BankAccount:
        """
        Change descriptive fields.

        Raises:
            NotFoundError: unknown account
            ValidationError: blank or over-long name or text field
        """
        account = self._store.accounts.require(account_id)

        changes = {
            key: value
            for key, value in {"name": name, "bank": bank, "branch": branch, "number": number}.items()
            if value is not None
        }
        if accepted_methods is not None:
            changes["accepted_methods"] = set(accepted_methods)

        text_fields = {key: changes[key] for key in ("bank", "branch", "number") if key in changes}
        raise_if_invalid(
            "edit_account",
            self._validator.validate_account(changes.get("name", account.name), **text_fields),
            self._audit_logger,
        )

        updated = revise(account, **changes)
        self._store.accounts.save(updated)
        self._log(
            AuditEventType.ACCOUNT_UPDATED,
            updated,
            f"Account updated: {updated.name}",
            fields=sorted(changes),
        )
        return updated

    def set_active(self, account_id: UUID, active: bool) -> BankAccount:
        account = self._store.accounts.require(account_id)
        updated = revise(account, active=active)
        self._store.accounts.save(updated)
        self._log(
            AuditEventType.ACCOUNT_UPDATED if active else AuditEventType.ACCOUNT_DEACTIVATED,
            updated,
            f"Account {'activated' if active else 'deactivated'}: {updated.name}",
        )
        return updated

    def deactivate(self, account_id: UUID) -> BankAccount:
        """Hide an account from new sales and settlements, keeping its history."""
        return self.set_active(account_id, False)

    def delete(self, account_id: UUID) -> None:
        """
        Delete an account that never moved.

        Raises:
            NotFoundError: unknown account
            ValidationError: the account has Movements
        """
        account = self._store.accounts.require(account_id)
        movements = self._ledger.movements_for(account_id)
        if movements:
            raise ValidationError.single(
                "account_id",
                "has_history",
                f"Account '{account.name}' has {len(movements)} movement(s); deactivate it instead",
            )
        self._store.accounts.delete(account_id)
        self._log(AuditEventType.ACCOUNT_DELETED, account, f"Account deleted: {account.name}")

    def get(self, account_id: UUID) -> Optional[BankAccount]:
        return self._store.accounts.get_by_id(account_id)

    def list_all(self, include_inactive: bool = True) -> list[BankAccount]:
        accounts = self._store.accounts.get_all()
        if not include_inactive:
            accounts = [a for a in accounts if a.active]
        return sorted(accounts, key=lambda a: a.name.lower())
