"""
Ledger Input Validation

DESIGN DECISION: Validation happens BEFORE any mutation.
Every ledger operation first asks the validator for a ValidationResult
covering the whole input, and only touches storage when it has no errors.

WHY COLLECT INSTEAD OF FAILING FAST:
1. The caller sees every problem with an input at once
2. Better error messages (each issue names its field)
3. The rejected operation can be audited with all its issues

IMPORTANT: Validation NEVER silently fixes issues.
Normalization rules (expense status, for example) belong to the
managers; the validator only reports.

The validator does not read storage. Managers look records up
(raising NotFoundError for unknown ids) and hand them over.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from cashbook.models.ledger import (
    BankAccount,
    Payable,
    PaymentSource,
    Periodicity,
    SaleMethod,
    ValidationIssue,
    ValidationResult,
)


# Mirrors the field limits of cashbook.models.ledger
MONEY_PLACES = 2
DESCRIPTION_MAX_LENGTH = 200
ACCOUNT_NAME_MAX_LENGTH = 100
ACCOUNT_TEXT_LIMITS = {"bank": 100, "branch": 20, "number": 30}
EXPENSE_TEXT_LIMITS = {"supplier": 200, "cost_center": 100, "notes": 1000}


class LedgerValidator:
    """
    Checks the inputs of ledger operations.

    Each validate_* method returns a ValidationResult; none of them raise.
    """

    # =========================================================================
    # SHARED CHECKS
    # =========================================================================

    def _check_length(
        self,
        value: Optional[str],
        limit: int,
        field: str,
        issues: list[ValidationIssue],
    ) -> None:
        if value is not None and len(value) > limit:
            issues.append(ValidationIssue(
                field=field,
                issue_type="too_long",
                message=f"{field} must be at most {limit} characters (got {len(value)})",
            ))

    def _check_precision(
        self,
        value: Optional[Decimal],
        field: str,
        issues: list[ValidationIssue],
    ) -> None:
        if value is None:
            return
        exponent = Decimal(str(value)).normalize().as_tuple().exponent
        if isinstance(exponent, int) and exponent < -MONEY_PLACES:
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_precision",
                message=f"{field} must have at most {MONEY_PLACES} decimal places (got {value})",
            ))

    def _check_description(self, description: Optional[str], issues: list[ValidationIssue]) -> None:
        if description is None or not description.strip():
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
            ))
        else:
            self._check_length(description, DESCRIPTION_MAX_LENGTH, "description", issues)

    def _check_amount(
        self,
        amount: Optional[Decimal],
        issues: list[ValidationIssue],
        field: str = "amount",
    ) -> None:
        if amount is None:
            issues.append(ValidationIssue(
                field=field,
                issue_type="missing",
                message="Amount is required",
            ))
        elif Decimal(amount) <= 0:
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message=f"Amount must be greater than zero (got {amount})",
            ))
        else:
            self._check_precision(amount, field, issues)

    def _check_receiving_account(
        self,
        account: BankAccount,
        method: SaleMethod,
        issues: list[ValidationIssue],
    ) -> None:
        if not account.active:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="inactive",
                message=f"Account '{account.name}' is inactive",
            ))
        payment_method = method.as_payment_method()
        if payment_method is not None and not account.accepts(payment_method):
            issues.append(ValidationIssue(
                field="method",
                issue_type="not_accepted",
                message=f"Account '{account.name}' does not accept {method.value} payments",
            ))

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def validate_account(
        self,
        name: Optional[str],
        opening_balance: Optional[Decimal] = None,
        **text_fields: Optional[str],
    ) -> ValidationResult:
        """
        `text_fields` takes bank, branch and number, whichever are being set.
        """
        issues = []
        if name is None or not name.strip():
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Account name is required",
            ))
        else:
            self._check_length(name, ACCOUNT_NAME_MAX_LENGTH, "name", issues)
        for field, value in text_fields.items():
            self._check_length(value, ACCOUNT_TEXT_LIMITS[field], field, issues)
        self._check_precision(opening_balance, "opening_balance", issues)
        return ValidationResult(issues=issues)

    # =========================================================================
    # PAYABLES
    # =========================================================================

    def validate_payable(
        self,
        description: Optional[str],
        amount: Optional[Decimal],
        due_date: Optional[date],
    ) -> ValidationResult:
        issues = []
        self._check_description(description, issues)
        self._check_amount(amount, issues)
        if due_date is None:
            issues.append(ValidationIssue(
                field="due_date",
                issue_type="missing",
                message="Due date is required",
            ))
        return ValidationResult(issues=issues)

    def validate_settlement(
        self,
        payable: Payable,
        source: PaymentSource,
        account_id=None,
        account: Optional[BankAccount] = None,
    ) -> ValidationResult:
        """
        Checks that do not depend on balances.

        Insufficient funds is a separate error, raised by the manager.
        """
        issues = []
        if payable.paid:
            issues.append(ValidationIssue(
                field="paid",
                issue_type="already_paid",
                message=f"Payable '{payable.description}' is already paid",
            ))
        if source is PaymentSource.BANK_ACCOUNT and account_id is None:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="missing",
                message="A bank account is required to pay from an account",
            ))
        if source is PaymentSource.CASH and account_id is not None:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="forbidden",
                message="Cash payments cannot reference a bank account",
            ))
        if account is not None and not account.active:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="inactive",
                message=f"Account '{account.name}' is inactive",
            ))
        return ValidationResult(issues=issues)

    # =========================================================================
    # SALES
    # =========================================================================

    def validate_sale(
        self,
        description: Optional[str],
        amount: Optional[Decimal],
        method: SaleMethod,
        account_id=None,
        account: Optional[BankAccount] = None,
    ) -> ValidationResult:
        issues = []
        self._check_description(description, issues)
        self._check_amount(amount, issues)

        if method.requires_account and account_id is None:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="missing",
                message=f"{method.value} sales need a bank account",
            ))
        elif not method.requires_account and account_id is not None:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="forbidden",
                message="Cash sales cannot reference a bank account",
            ))

        if account is not None and method.requires_account:
            self._check_receiving_account(account, method, issues)

        return ValidationResult(issues=issues)

    # =========================================================================
    # EXPENSES
    # =========================================================================

    def validate_expense(
        self,
        description: Optional[str],
        amount: Optional[Decimal],
        due_date: Optional[date],
        recurring: bool,
        periodicity: Optional[Periodicity],
        **text_fields: Optional[str],
    ) -> ValidationResult:
        issues = []
        self._check_description(description, issues)
        self._check_amount(amount, issues)
        for field, value in text_fields.items():
            self._check_length(value, EXPENSE_TEXT_LIMITS[field], field, issues)
        if due_date is None:
            issues.append(ValidationIssue(
                field="due_date",
                issue_type="missing",
                message="Due date is required",
            ))
        if recurring and periodicity is None:
            issues.append(ValidationIssue(
                field="periodicity",
                issue_type="missing",
                message="Recurring expenses need a periodicity",
            ))
        return ValidationResult(issues=issues)

    # =========================================================================
    # REPORTS
    # =========================================================================

    def validate_date_range(
        self,
        date_from: Optional[date],
        date_to: Optional[date],
    ) -> ValidationResult:
        issues = []
        if date_from is not None and date_to is not None and date_from > date_to:
            issues.append(ValidationIssue(
                field="date_from",
                issue_type="invalid_range",
                message=f"Start date {date_from} is after end date {date_to}",
            ))
        return ValidationResult(issues=issues)

    def validate_month(self, year: int, month: int) -> ValidationResult:
        issues = []
        if not 1 <= month <= 12:
            issues.append(ValidationIssue(
                field="month",
                issue_type="invalid_value",
                message=f"Month must be between 1 and 12 (got {month})",
            ))
        if not 1900 <= year <= 9999:
            issues.append(ValidationIssue(
                field="year",
                issue_type="invalid_value",
                message=f"Year out of range (got {year})",
            ))
        return ValidationResult(issues=issues)

    def validate_supplement_values(self, values: dict[str, Optional[Decimal]]) -> ValidationResult:
        """Revenue-table figures may be zero but never negative."""
        issues = []
        for field, value in values.items():
            if value is not None and Decimal(value) < 0:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="invalid_value",
                    message=f"{field} cannot be negative (got {value})",
                ))
            else:
                self._check_precision(value, field, issues)
        return ValidationResult(issues=issues)
