"""
Reporting Aggregator

DESIGN DECISION: Reporting is READ-ONLY and DETERMINISTIC.
Every figure is recomputed from the collections on each call; nothing
here is cached or persisted. Two calls over the same data always return
the same numbers.

The only write in this module is RevenueSupplementManager, which stores
the figures the owner types into the monthly revenue table (inventory,
purchases, agreements, merchandise). Those are inputs, not derived data.

Percentages are floats (0-100 scale). Money stays Decimal.
"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Iterable, Optional
from uuid import UUID

from dateutil.relativedelta import relativedelta

from cashbook.audit import AuditLogger
from cashbook.config import LedgerSettings, get_settings
from cashbook.ledger.balance import cash_on_hand
from cashbook.ledger.errors import raise_if_invalid
from cashbook.ledger.expenses import ExpenseEngine
from cashbook.models.audit import AuditEventType
from cashbook.models.ledger import (
    Expense,
    ExpenseCategory,
    ExpenseStatus,
    ExpenseType,
    MonthlyRevenueSupplement,
    Payable,
    Sale,
    SaleMethod,
    revise,
    utcnow,
)
from cashbook.models.reports import (
    ZERO,
    CategoryBreakdown,
    ExpenseDashboard,
    LedgerOverview,
    MonthlySalesPoint,
    PaidPayablesReport,
    RevenueRow,
    RevenueTable,
    SalesByMethod,
    SalesReport,
)
from cashbook.services.storage import LedgerStore
from cashbook.validation import LedgerValidator


CENTS = Decimal("0.01")

# Columns summed into RevenueTable.totals, and the subset averaged per month
TOTAL_COLUMNS = (
    "purchases",
    "card_revenue",
    "revenue",
    "settlements",
    "merchandise",
    "total",
    "prior_year_total",
    "expenses",
    "gross_profit",
    "net_profit",
)
AVERAGE_COLUMNS = (
    "purchases",
    "card_revenue",
    "revenue",
    "settlements",
    "merchandise",
    "total",
    "prior_year_total",
)


def _in_month(day: Optional[date], year: int, month: int) -> bool:
    return day is not None and day.year == year and day.month == month


def _sum(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO)


def _ratio_percent(part: Decimal, whole: Decimal) -> float:
    return float(part / whole * 100)


class ReportingAggregator:
    """
    Derived views over sales, payables, expenses and accounts.

    GUARANTEES:
    - Only reads storage (the expense engine's refresh is the one
      exception, so that expense statuses are current)
    - Empty data yields zeros, never errors
    """

    def __init__(
        self,
        store: LedgerStore,
        expense_engine: Optional[ExpenseEngine] = None,
        validator: Optional[LedgerValidator] = None,
        settings: Optional[LedgerSettings] = None,
        clock: Callable[[], date] = date.today,
    ):
        self._store = store
        self._expense_engine = expense_engine
        self._validator = validator or LedgerValidator()
        self._settings = settings or get_settings().ledger
        self._clock = clock

    def _expenses(self) -> list[Expense]:
        if self._expense_engine is not None:
            return self._expense_engine.refresh(self._clock())
        return self._store.expenses.get_all()

    # =========================================================================
    # HEADLINE FIGURES
    # =========================================================================

    def cash_on_hand(self) -> Decimal:
        """Cash sales minus payables settled from cash."""
        return cash_on_hand(self._store)

    def overview(self) -> LedgerOverview:
        pending = [p for p in self._store.payables.get_all() if not p.paid]
        return LedgerOverview(
            total_bank_balance=_sum(a.current_balance for a in self._store.accounts.get_all()),
            cash_on_hand=self.cash_on_hand(),
            pending_payables_count=len(pending),
            pending_payables_total=_sum(p.amount for p in pending),
            total_sales=_sum(s.amount for s in self._store.sales.get_all()),
        )

    # =========================================================================
    # SALES
    # =========================================================================

    def _sales_between(self, date_from: Optional[date], date_to: Optional[date]) -> list[Sale]:
        raise_if_invalid("sales_report", self._validator.validate_date_range(date_from, date_to))
        return [
            s for s in self._store.sales.get_all()
            if (date_from is None or s.sale_date >= date_from)
            and (date_to is None or s.sale_date <= date_to)
        ]

    @staticmethod
    def _by_method(sales: Iterable[Sale]) -> SalesByMethod:
        totals = {method.value: ZERO for method in SaleMethod}
        for sale in sales:
            totals[sale.method.value] += sale.amount
        return SalesByMethod(**totals)

    def sales_by_method(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> SalesByMethod:
        return self._by_method(self._sales_between(date_from, date_to))

    def sales_report(self, date_from: date, date_to: date) -> SalesReport:
        """
        Sales in an inclusive date range, oldest first.

        Raises:
            ValidationError: date_from after date_to
        """
        sales = sorted(self._sales_between(date_from, date_to), key=lambda s: s.sale_date)
        return SalesReport(
            date_from=date_from,
            date_to=date_to,
            sales=sales,
            total=_sum(s.amount for s in sales),
        )

    def monthly_sales_series(self, months: int = 6, today: Optional[date] = None) -> list[MonthlySalesPoint]:
        """Per-method totals for the trailing `months` months, oldest first."""
        today = today or self._clock()
        sales = self._store.sales.get_all()
        current = today.replace(day=1)
        points = []
        for offset in range(months - 1, -1, -1):
            start = current - relativedelta(months=offset)
            in_month = [s for s in sales if _in_month(s.sale_date, start.year, start.month)]
            points.append(MonthlySalesPoint(
                year=start.year,
                month=start.month,
                by_method=self._by_method(in_month),
            ))
        return points

    # =========================================================================
    # PAYABLES
    # =========================================================================

    def paid_payables_report(self, year: int, month: int) -> PaidPayablesReport:
        """Payables paid in a month (by payment date), oldest payment first."""
        raise_if_invalid("paid_payables_report", self._validator.validate_month(year, month))
        paid = [
            p for p in self._store.payables.get_all()
            if p.paid and _in_month(p.payment_date, year, month)
        ]
        paid.sort(key=lambda p: p.payment_date)
        return PaidPayablesReport(
            year=year,
            month=month,
            payables=paid,
            total=_sum(p.amount for p in paid),
        )

    def payables_by_due_date(self, year: int, month: int) -> dict[date, list[Payable]]:
        """Calendar view: the month's payables grouped by due date."""
        raise_if_invalid("payables_calendar", self._validator.validate_month(year, month))
        calendar: dict[date, list[Payable]] = {}
        for payable in sorted(self._store.payables.get_all(), key=lambda p: p.due_date):
            if _in_month(payable.due_date, year, month):
                calendar.setdefault(payable.due_date, []).append(payable)
        return calendar

    # =========================================================================
    # EXPENSE DASHBOARD
    # =========================================================================

    def expense_dashboard(self, year: int, month: int) -> ExpenseDashboard:
        """
        Monthly expense summary by due date.

        A category raises an alert when its share of the month is
        STRICTLY above the configured threshold. The projection for next
        month is the mean of the preceding months with non-zero totals,
        or this month's total when there are none.
        """
        raise_if_invalid("expense_dashboard", self._validator.validate_month(year, month))
        expenses = self._expenses()
        in_month = [e for e in expenses if _in_month(e.due_date, year, month)]
        month_total = _sum(e.amount for e in in_month)

        def total_where(predicate) -> Decimal:
            return _sum(e.amount for e in in_month if predicate(e))

        threshold = self._settings.category_alert_threshold_percent
        categories = []
        for category in ExpenseCategory:
            category_total = total_where(lambda e: e.category is category)
            if category_total <= 0:
                continue
            percent = _ratio_percent(category_total, month_total)
            categories.append(CategoryBreakdown(
                category=category,
                total=category_total,
                percent_of_total=percent,
                alert=percent > threshold,
            ))
        categories.sort(key=lambda c: c.total, reverse=True)

        reference = date(year, month, 1)
        history = []
        for back in range(1, self._settings.projection_window_months + 1):
            previous = reference - relativedelta(months=back)
            previous_total = _sum(
                e.amount for e in expenses if _in_month(e.due_date, previous.year, previous.month)
            )
            if previous_total > 0:
                history.append(previous_total)
        if history:
            projection = (_sum(history) / len(history)).quantize(CENTS, rounding=ROUND_HALF_UP)
        else:
            projection = month_total

        return ExpenseDashboard(
            year=year,
            month=month,
            total=month_total,
            total_paid=total_where(lambda e: e.status is ExpenseStatus.PAID),
            total_pending=total_where(lambda e: e.status is ExpenseStatus.PENDING),
            total_overdue=total_where(lambda e: e.status is ExpenseStatus.OVERDUE),
            fixed_total=total_where(lambda e: e.type is ExpenseType.FIXED),
            variable_total=total_where(lambda e: e.type is ExpenseType.VARIABLE),
            projected_next_month=projection,
            categories=categories,
        )

    # =========================================================================
    # MONTHLY REVENUE TABLE
    # =========================================================================

    def _revenue_rows(
        self,
        year: int,
        sales: list[Sale],
        payables: list[Payable],
        supplements: dict[tuple[int, int], MonthlyRevenueSupplement],
        prior_totals: Optional[list[Decimal]] = None,
    ) -> list[RevenueRow]:
        rows = []
        previous_closing = ZERO
        for month in range(1, 13):
            month_sales = [s for s in sales if _in_month(s.sale_date, year, month)]
            revenue = _sum(s.amount for s in month_sales)
            card_revenue = _sum(s.amount for s in month_sales if s.method.is_card)
            expenses = _sum(
                p.amount for p in payables if p.paid and _in_month(p.payment_date, year, month)
            )

            supplement = supplements.get((year, month))
            if supplement is not None:
                opening = (
                    supplement.opening_inventory
                    if supplement.opening_inventory is not None
                    else previous_closing
                )
                closing = supplement.closing_inventory
                purchases = supplement.purchases
                off_books = supplement.off_books_purchases
                settlements = supplement.settlements
                merchandise = supplement.merchandise
            else:
                opening = previous_closing
                closing = purchases = off_books = settlements = merchandise = ZERO

            total = revenue + settlements + merchandise
            prior_total = prior_totals[month - 1] if prior_totals else ZERO
            growth = _ratio_percent(total - prior_total, prior_total) if prior_total > 0 else None

            cogs = opening + purchases + off_books - closing
            gross = revenue - cogs
            net = gross - expenses

            rows.append(RevenueRow(
                year=year,
                month=month,
                revenue=revenue,
                card_revenue=card_revenue,
                expenses=expenses,
                purchases=purchases,
                off_books_purchases=off_books,
                settlements=settlements,
                merchandise=merchandise,
                total=total,
                prior_year_total=prior_total,
                growth_percent=growth,
                opening_inventory=opening,
                closing_inventory=closing,
                cost_of_goods_sold=cogs,
                gross_profit=gross,
                net_profit=net,
                net_margin_percent=_ratio_percent(net, revenue) if revenue > 0 else None,
                supplement_id=supplement.id if supplement else None,
            ))
            previous_closing = closing
        return rows

    def revenue_table(self, year: int) -> RevenueTable:
        """
        Twelve monthly rows plus yearly totals, monthly averages (total / 12)
        and growth against the previous year.

        Opening inventory chains from the previous month's closing within
        the year and starts at zero in January unless a supplement says
        otherwise.
        """
        sales = self._store.sales.get_all()
        payables = self._store.payables.get_all()
        supplements = {(s.year, s.month): s for s in self._store.revenue_supplements.get_all()}

        prior_rows = self._revenue_rows(year - 1, sales, payables, supplements)
        prior_totals = [row.total for row in prior_rows]
        rows = self._revenue_rows(year, sales, payables, supplements, prior_totals)

        totals = {column: _sum(getattr(row, column) for row in rows) for column in TOTAL_COLUMNS}
        averages = {
            column: (totals[column] / 12).quantize(CENTS, rounding=ROUND_HALF_UP)
            for column in AVERAGE_COLUMNS
        }
        prior_year_total = _sum(prior_totals)
        annual_growth = (
            _ratio_percent(totals["total"] - prior_year_total, prior_year_total)
            if prior_year_total > 0
            else None
        )

        return RevenueTable(
            year=year,
            rows=rows,
            totals=totals,
            averages=averages,
            prior_year_total=prior_year_total,
            annual_growth_percent=annual_growth,
        )


class RevenueSupplementManager:
    """
    Stores the owner-entered figures of the revenue table.

    At most one supplement per (year, month): saving again updates it.
    """

    def __init__(
        self,
        store: LedgerStore,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._validator = validator or LedgerValidator()
        self._audit_logger = audit_logger

    def get(self, year: int, month: int) -> Optional[MonthlyRevenueSupplement]:
        for supplement in self._store.revenue_supplements.get_all():
            if supplement.year == year and supplement.month == month:
                return supplement
        return None

    def suggested_opening_inventory(self, year: int, month: int) -> Decimal:
        """Previous month's closing inventory; zero in January or without data."""
        if month == 1:
            return ZERO
        previous = self.get(year, month - 1)
        return previous.closing_inventory if previous else ZERO

    def save(
        self,
        year: int,
        month: int,
        opening_inventory: Optional[Decimal] = None,
        closing_inventory: Decimal = ZERO,
        purchases: Decimal = ZERO,
        off_books_purchases: Decimal = ZERO,
        settlements: Decimal = ZERO,
        merchandise: Decimal = ZERO,
    ) -> MonthlyRevenueSupplement:
        """
        Create or update the supplement for a month.

        Raises:
            ValidationError: month outside 1-12, or a negative figure
        """
        values = {
            "opening_inventory": opening_inventory,
            "closing_inventory": closing_inventory,
            "purchases": purchases,
            "off_books_purchases": off_books_purchases,
            "settlements": settlements,
            "merchandise": merchandise,
        }
        raise_if_invalid("save_supplement", self._validator.validate_month(year, month), self._audit_logger)
        raise_if_invalid(
            "save_supplement",
            self._validator.validate_supplement_values(values),
            self._audit_logger,
        )

        existing = self.get(year, month)
        if existing is not None:
            supplement = revise(existing, **values, updated_at=utcnow())
        else:
            supplement = MonthlyRevenueSupplement(year=year, month=month, **values)
        self._store.revenue_supplements.save(supplement)

        if self._audit_logger:
            self._audit_logger.log_entity_event(
                event_type=AuditEventType.SUPPLEMENT_SAVED,
                entity_type="revenue_supplement",
                entity_id=supplement.id,
                description=f"Revenue figures saved for {year}-{month:02d}",
                details={key: str(value) if value is not None else None for key, value in values.items()},
            )
        return supplement

    def delete(self, supplement_id: UUID) -> bool:
        return self._store.revenue_supplements.delete(supplement_id)
