"""
Derived-view Models for Cashbook

Everything in here is computed on demand from the collections and
never persisted. The reporting aggregator returns these models; the
document import flow returns the import models.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from cashbook.models.ledger import (
    ExpenseCategory,
    Payable,
    PaymentSource,
    Sale,
)


ZERO = Decimal("0")


# =============================================================================
# DASHBOARD MODELS
# =============================================================================

class LedgerOverview(BaseModel):
    """Headline figures shown on the home dashboard."""

    total_bank_balance: Decimal = ZERO
    cash_on_hand: Decimal = ZERO
    pending_payables_count: int = Field(default=0, ge=0)
    pending_payables_total: Decimal = ZERO
    total_sales: Decimal = ZERO


class CategoryBreakdown(BaseModel):
    """One category's share of a month's expenses."""

    category: ExpenseCategory
    total: Decimal
    percent_of_total: float = Field(..., ge=0.0)
    alert: bool = Field(
        ...,
        description="True when the share is strictly above the alert threshold"
    )


class ExpenseDashboard(BaseModel):
    """Monthly expense summary."""

    year: int
    month: int = Field(..., ge=1, le=12)
    total: Decimal = ZERO
    total_paid: Decimal = ZERO
    total_pending: Decimal = ZERO
    total_overdue: Decimal = ZERO
    fixed_total: Decimal = ZERO
    variable_total: Decimal = ZERO
    projected_next_month: Decimal = ZERO
    categories: list[CategoryBreakdown] = Field(default_factory=list)


class SalesByMethod(BaseModel):
    pix: Decimal = ZERO
    cash: Decimal = ZERO
    debit: Decimal = ZERO
    credit: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.pix + self.cash + self.debit + self.credit

    @property
    def card(self) -> Decimal:
        return self.debit + self.credit


class MonthlySalesPoint(BaseModel):
    """Per-method sales of one calendar month (chart series)."""

    year: int
    month: int = Field(..., ge=1, le=12)
    by_method: SalesByMethod = Field(default_factory=SalesByMethod)


class SalesReport(BaseModel):
    date_from: date
    date_to: date
    sales: list[Sale] = Field(default_factory=list)
    total: Decimal = ZERO


class PaidPayablesReport(BaseModel):
    year: int
    month: int = Field(..., ge=1, le=12)
    payables: list[Payable] = Field(default_factory=list)
    total: Decimal = ZERO


# =============================================================================
# MONTHLY REVENUE TABLE
# =============================================================================

class RevenueRow(BaseModel):
    """
    One month of the revenue/cost table.

    cost_of_goods_sold = opening_inventory + purchases
                         + off_books_purchases - closing_inventory
    """

    year: int
    month: int = Field(..., ge=1, le=12)
    revenue: Decimal = ZERO
    card_revenue: Decimal = ZERO
    expenses: Decimal = ZERO
    purchases: Decimal = ZERO
    off_books_purchases: Decimal = ZERO
    settlements: Decimal = ZERO
    merchandise: Decimal = ZERO
    total: Decimal = ZERO
    prior_year_total: Decimal = ZERO
    growth_percent: Optional[float] = None
    opening_inventory: Decimal = ZERO
    closing_inventory: Decimal = ZERO
    cost_of_goods_sold: Decimal = ZERO
    gross_profit: Decimal = ZERO
    net_profit: Decimal = ZERO
    net_margin_percent: Optional[float] = None
    supplement_id: Optional[UUID] = None


class RevenueTable(BaseModel):
    year: int
    rows: list[RevenueRow] = Field(default_factory=list)
    totals: dict[str, Decimal] = Field(default_factory=dict)
    averages: dict[str, Decimal] = Field(default_factory=dict)
    prior_year_total: Decimal = ZERO
    annual_growth_percent: Optional[float] = None


# =============================================================================
# SETTLEMENT AND IMPORT RESULTS
# =============================================================================

class SettlementRequest(BaseModel):
    payable_id: UUID
    source: PaymentSource
    account_id: Optional[UUID] = None


class SettlementFailure(BaseModel):
    payable_id: UUID
    error_type: str
    message: str


class BulkSettlementResult(BaseModel):
    """Per-item outcome of a bulk settlement. Successes are never rolled back."""

    settled: list[UUID] = Field(default_factory=list)
    failures: list[SettlementFailure] = Field(default_factory=list)


class ImportedDocument(BaseModel):
    """
    Fields read from an NFe XML document.

    This is PROPOSED data: it only becomes a Payable through the
    import flow.
    """

    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0)
    due_date: date
    document_number: Optional[str] = None
    issue_date: Optional[str] = None
    issuer_name: Optional[str] = None
    nature_of_operation: Optional[str] = None
    payment_method_code: Optional[str] = None
    payment_method_label: Optional[str] = None


class PendingImport(BaseModel):
    """
    A parsed document that declared a payment method.

    source=None keeps the created payable pending.
    """

    document: ImportedDocument
    source: Optional[PaymentSource] = None
    account_id: Optional[UUID] = None


class ImportFailure(BaseModel):
    name: str
    message: str


class ImportResult(BaseModel):
    created: list[UUID] = Field(default_factory=list)
    failures: list[ImportFailure] = Field(default_factory=list)
    awaiting_payment: list[PendingImport] = Field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.created)

    @property
    def failed_count(self) -> int:
        return len(self.failures)


class ConfirmationResult(BaseModel):
    """Outcome of confirming the payment mapping of imported documents."""

    created: list[UUID] = Field(default_factory=list)
    settlement: BulkSettlementResult = Field(default_factory=BulkSettlementResult)
