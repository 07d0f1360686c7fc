"""
Data Models Package

This package contains all Pydantic models used in the Cashbook system.
All records kept in the collection store must conform to these schemas.
"""

from cashbook.models.ledger import (
    BankAccount,
    Expense,
    ExpenseCategory,
    ExpensePaymentMethod,
    ExpenseStatus,
    ExpenseType,
    MonthlyRevenueSupplement,
    Movement,
    MovementDirection,
    Payable,
    PaymentMethod,
    PaymentSource,
    Periodicity,
    Sale,
    SaleMethod,
    ValidationIssue,
    ValidationResult,
)
from cashbook.models.reports import (
    BulkSettlementResult,
    CategoryBreakdown,
    ConfirmationResult,
    ExpenseDashboard,
    ImportedDocument,
    ImportFailure,
    ImportResult,
    LedgerOverview,
    MonthlySalesPoint,
    PaidPayablesReport,
    PendingImport,
    RevenueRow,
    RevenueTable,
    SalesByMethod,
    SalesReport,
    SettlementFailure,
    SettlementRequest,
)
from cashbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "BankAccount",
    "Expense",
    "ExpenseCategory",
    "ExpensePaymentMethod",
    "ExpenseStatus",
    "ExpenseType",
    "MonthlyRevenueSupplement",
    "Movement",
    "MovementDirection",
    "Payable",
    "PaymentMethod",
    "PaymentSource",
    "Periodicity",
    "Sale",
    "SaleMethod",
    "ValidationIssue",
    "ValidationResult",
    # Derived views
    "BulkSettlementResult",
    "CategoryBreakdown",
    "ConfirmationResult",
    "ExpenseDashboard",
    "ImportedDocument",
    "ImportFailure",
    "ImportResult",
    "LedgerOverview",
    "MonthlySalesPoint",
    "PaidPayablesReport",
    "PendingImport",
    "RevenueRow",
    "RevenueTable",
    "SalesByMethod",
    "SalesReport",
    "SettlementFailure",
    "SettlementRequest",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
