"""
Ledger Exceptions

Every rule violation raised by the ledger managers is one of these.
Missing records raise storage's NotFoundError instead, so callers can
tell "you asked for something that isn't there" from "you asked for
something that isn't allowed".
"""

from decimal import Decimal
from typing import Optional

from cashbook.models.ledger import ValidationIssue, ValidationResult


class LedgerError(Exception):
    """Base exception for ledger rule violations."""
    pass


class ValidationError(LedgerError):
    """Input rejected before any mutation took place."""

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        self.issues = issues or []
        super().__init__(message)

    @classmethod
    def single(cls, field: str, issue_type: str, message: str) -> "ValidationError":
        issue = ValidationIssue(field=field, issue_type=issue_type, message=message)
        return cls(message, [issue])

    @classmethod
    def from_result(cls, operation: str, result: ValidationResult) -> "ValidationError":
        errors = [issue for issue in result.issues if issue.severity == "error"]
        summary = "; ".join(issue.message for issue in errors)
        return cls(f"{operation} rejected: {summary}", errors)


class InsufficientFundsError(LedgerError):
    """The chosen payment source cannot cover the amount."""

    def __init__(self, available: Decimal, required: Decimal, source: str = "cash"):
        self.available = available
        self.required = required
        self.source = source
        super().__init__(
            f"Insufficient {source} funds: available {available}, required {required}"
        )


class ImportParseError(LedgerError):
    """An import document could not be turned into a payable."""

    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(message)


def raise_if_invalid(operation: str, result: ValidationResult, audit_logger=None) -> None:
    """
    Raise ValidationError when the result has errors.

    The rejection is audited first when an audit logger is given.
    """
    if not result.has_errors:
        return
    if audit_logger:
        audit_logger.log_validation_failed(
            operation=operation,
            issues=[issue.model_dump() for issue in result.issues],
        )
    raise ValidationError.from_result(operation, result)
