"""
Ledger Package

The consistency engine: balances, payables, sales and expenses.
Only BalanceLedger writes account balances; every other manager goes
through it.
"""

from cashbook.ledger.errors import (
    ImportParseError,
    InsufficientFundsError,
    LedgerError,
    ValidationError,
)
from cashbook.ledger.balance import BalanceLedger, cash_on_hand
from cashbook.ledger.accounts import AccountManager
from cashbook.ledger.payables import PayableManager
from cashbook.ledger.sales import SaleManager
from cashbook.ledger.expenses import (
    ExpenseEngine,
    ExpenseFilters,
    derive_status,
    end_of_month,
    generate_recurrences,
    next_due_date,
    normalize_status,
)

__all__ = [
    # Errors
    "ImportParseError",
    "InsufficientFundsError",
    "LedgerError",
    "ValidationError",
    # Managers
    "AccountManager",
    "BalanceLedger",
    "ExpenseEngine",
    "PayableManager",
    "SaleManager",
    # Pure functions
    "ExpenseFilters",
    "cash_on_hand",
    "derive_status",
    "end_of_month",
    "generate_recurrences",
    "next_due_date",
    "normalize_status",
]
