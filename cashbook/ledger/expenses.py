"""
Expense Recurrence Engine

General expenses never move a bank balance; they feed the monthly
expense dashboard. What makes them interesting is that they recur.

DESIGN DECISION: Recurrence generation is a PURE function of
(existing expenses, horizon, now). It returns only the new instances and
never reads or writes storage, which is what makes it testable and
idempotent: running it twice with the same inputs produces nothing the
second time.

Status is DERIVED, not authoritative. Every read goes through refresh(),
which recomputes pending/overdue against today before returning, so a
status can never go stale between sessions.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterable, Optional
from uuid import UUID, uuid4

import structlog
from dateutil.relativedelta import relativedelta
from pydantic import BaseModel

from cashbook.audit import AuditLogger
from cashbook.config import LedgerSettings, get_settings
from cashbook.ledger.errors import ValidationError, raise_if_invalid
from cashbook.models.audit import AuditEventType
from cashbook.models.ledger import (
    Expense,
    ExpenseCategory,
    ExpensePaymentMethod,
    ExpenseStatus,
    ExpenseType,
    Periodicity,
    revise,
    utcnow,
)
from cashbook.services.storage import LedgerStore
from cashbook.validation import LedgerValidator


logger = structlog.get_logger(__name__)

EDITABLE_FIELDS = frozenset({
    "description",
    "category",
    "type",
    "amount",
    "due_date",
    "payment_date",
    "status",
    "payment_method",
    "supplier",
    "cost_center",
    "notes",
    "recurring",
    "periodicity",
})


# =============================================================================
# PURE FUNCTIONS
# =============================================================================

def next_due_date(current: date, periodicity: Periodicity) -> date:
    """
    One period after `current`.

    Months and years clamp to the last day of a shorter month
    (Jan 31 + 1 month = Feb 28/29).
    """
    if periodicity is Periodicity.WEEKLY:
        return current + timedelta(weeks=1)
    if periodicity is Periodicity.YEARLY:
        return current + relativedelta(years=1)
    return current + relativedelta(months=1)


def end_of_month(day: date) -> date:
    return day + relativedelta(day=31)


def normalize_status(status: ExpenseStatus, payment_date: Optional[date]) -> ExpenseStatus:
    """
    A payment date always means paid; "paid" without a payment date
    falls back to pending.
    """
    if payment_date is not None:
        return ExpenseStatus.PAID
    if status is ExpenseStatus.PAID:
        return ExpenseStatus.PENDING
    return status


def derive_status(expense: Expense, today: date) -> ExpenseStatus:
    """Paid stays paid; otherwise overdue once the due date has passed."""
    if expense.payment_date is not None or expense.status is ExpenseStatus.PAID:
        return expense.status
    if expense.due_date < today:
        return ExpenseStatus.OVERDUE
    return ExpenseStatus.PENDING


def _series_template(members: list[Expense], series_id: UUID) -> Optional[Expense]:
    """The series origin when it still exists, else its first recurring member."""
    recurring = [m for m in members if m.recurring and m.periodicity is not None]
    if not recurring:
        return None
    for member in recurring:
        if member.id == series_id:
            return member
    return recurring[0]


def generate_recurrences(
    expenses: Iterable[Expense],
    horizon: date,
    now: Optional[datetime] = None,
) -> list[Expense]:
    """
    New instances for every recurring series, up to and including `horizon`.

    Generation starts one period after the latest due date already in the
    series, so it never fills gaps in the past and never duplicates a
    (series, due date) pair. Instances copy the template's fields, start
    pending and unpaid, and share the series origin id.
    """
    now = now or utcnow()
    expenses = list(expenses)

    series: dict[UUID, list[Expense]] = {}
    for expense in expenses:
        series.setdefault(expense.series_id, []).append(expense)

    generated = []
    for series_id, members in series.items():
        template = _series_template(members, series_id)
        if template is None:
            continue

        existing_dates = {m.due_date for m in members}
        cursor = max(existing_dates)
        while True:
            upcoming = next_due_date(cursor, template.periodicity)
            if upcoming > horizon:
                break
            if upcoming not in existing_dates:
                generated.append(revise(
                    template,
                    id=uuid4(),
                    due_date=upcoming,
                    payment_date=None,
                    status=ExpenseStatus.PENDING,
                    recurrence_origin_id=series_id,
                    created_at=now,
                    updated_at=now,
                ))
                existing_dates.add(upcoming)
            cursor = upcoming

    return generated


class ExpenseFilters(BaseModel):
    """Optional filters for ExpenseEngine.list(). None means "any"."""

    date_from: Optional[date] = None
    date_to: Optional[date] = None
    category: Optional[ExpenseCategory] = None
    status: Optional[ExpenseStatus] = None
    search: Optional[str] = None

    def matches(self, expense: Expense) -> bool:
        if self.date_from and expense.due_date < self.date_from:
            return False
        if self.date_to and expense.due_date > self.date_to:
            return False
        if self.category and expense.category is not self.category:
            return False
        if self.status and expense.status is not self.status:
            return False
        term = (self.search or "").strip().lower()
        if term:
            haystack = (expense.description, expense.supplier, expense.cost_center)
            if not any(term in text.lower() for text in haystack):
                return False
        return True


# =============================================================================
# ENGINE
# =============================================================================

class ExpenseEngine:
    """
    Expense CRUD plus the automatic rules applied on every read:
    seed (first run only), recurrence generation, status refresh.
    """

    def __init__(
        self,
        store: LedgerStore,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
        clock: Callable[[], date] = date.today,
    ):
        self._store = store
        self._validator = validator or LedgerValidator()
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().ledger
        self._clock = clock

    def _log(self, event_type: AuditEventType, expense: Expense, description: str, **details) -> None:
        if self._audit_logger:
            self._audit_logger.log_entity_event(
                event_type=event_type,
                entity_type="expense",
                entity_id=expense.id,
                description=description,
                details=details,
            )

    def seed_examples(self, today: date) -> list[Expense]:
        """Three example expenses dated in the current month."""
        month_start = today.replace(day=1)
        energy = Expense(
            description="Store electricity bill",
            category=ExpenseCategory.ELECTRICITY,
            type=ExpenseType.FIXED,
            amount=Decimal("1850.00"),
            due_date=month_start.replace(day=10),
            payment_method=ExpensePaymentMethod.BOLETO,
            supplier="Power utility",
            cost_center="Operations",
            recurring=True,
            periodicity=Periodicity.MONTHLY,
        )
        return [
            revise(energy, recurrence_origin_id=energy.id),
            Expense(
                description="Material freight",
                category=ExpenseCategory.TRANSPORT,
                type=ExpenseType.VARIABLE,
                amount=Decimal("920.00"),
                due_date=month_start.replace(day=8),
                payment_date=month_start.replace(day=8),
                status=ExpenseStatus.PAID,
                payment_method=ExpensePaymentMethod.PIX,
                supplier="Alpha Freight",
                cost_center="Logistics",
                notes="Cement and sand delivery",
            ),
            Expense(
                description="Material purchase for resale",
                category=ExpenseCategory.MATERIAL_SUPPLIERS,
                type=ExpenseType.VARIABLE,
                amount=Decimal("6500.00"),
                due_date=month_start.replace(day=5),
                payment_method=ExpensePaymentMethod.TRANSFER,
                supplier="Construction Distributor Ltd",
                cost_center="Inventory",
                notes="Order #2034",
            ),
        ]

    def refresh(self, today: Optional[date] = None) -> list[Expense]:
        """
        Apply the automatic rules and persist the result.

        1. Seed examples when the collection is empty (if enabled)
        2. Generate recurring instances up to the end of the current month
        3. Recompute every status against today
        """
        today = today or self._clock()
        expenses = self._store.expenses.get_all()

        if not expenses and self._settings.seed_expenses_on_first_run:
            expenses = self.seed_examples(today)
            logger.info("expenses_seeded", count=len(expenses))

        horizon = end_of_month(today)
        generated = generate_recurrences(expenses, horizon)
        if generated:
            expenses = expenses + generated
            if self._audit_logger:
                self._audit_logger.log_recurrences_generated(
                    count=len(generated),
                    horizon=horizon.isoformat(),
                )

        refreshed = []
        for expense in expenses:
            status = derive_status(expense, today)
            refreshed.append(expense if status is expense.status else revise(expense, status=status))

        self._store.expenses.save_all(refreshed)
        return refreshed

    def _validate(self, operation: str, data: dict) -> None:
        raise_if_invalid(
            operation,
            self._validator.validate_expense(
                data.get("description"),
                data.get("amount"),
                data.get("due_date"),
                bool(data.get("recurring")),
                data.get("periodicity"),
                **{key: data.get(key) for key in ("supplier", "cost_center", "notes")},
            ),
            self._audit_logger,
        )

    def create(
        self,
        description: str,
        category: ExpenseCategory,
        type: ExpenseType,
        amount: Decimal,
        due_date: date,
        payment_date: Optional[date] = None,
        status: ExpenseStatus = ExpenseStatus.PENDING,
        payment_method: ExpensePaymentMethod = ExpensePaymentMethod.BOLETO,
        supplier: str = "",
        cost_center: str = "",
        notes: str = "",
        recurring: bool = False,
        periodicity: Optional[Periodicity] = None,
    ) -> Expense:
        """
        Create an expense. A recurring expense becomes the origin of its
        own series.

        Raises:
            ValidationError: blank description, amount <= 0, missing due
                date, recurring without periodicity
        """
        data = {
            "description": description,
            "category": category,
            "type": type,
            "amount": amount,
            "due_date": due_date,
            "payment_date": payment_date,
            "payment_method": payment_method,
            "supplier": supplier,
            "cost_center": cost_center,
            "notes": notes,
            "recurring": recurring,
            "periodicity": periodicity if recurring else None,
        }
        self._validate("create_expense", data)

        data["status"] = normalize_status(ExpenseStatus(status), payment_date)
        expense = Expense(**data)
        expense = revise(
            expense,
            status=derive_status(expense, self._clock()),
            recurrence_origin_id=expense.id if recurring else None,
        )

        self._store.expenses.save(expense)
        self._log(
            AuditEventType.EXPENSE_CREATED,
            expense,
            f"Expense created: {expense.description}",
            amount=str(expense.amount),
            recurring=expense.recurring,
        )
        return expense

    def edit(self, expense_id: UUID, **fields) -> Expense:
        """
        Change any editable field. Passing payment_date=None clears it.

        Raises:
            NotFoundError: unknown expense
            ValidationError: unknown field or invalid merged values
        """
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError.single(
                ", ".join(sorted(unknown)),
                "unknown_field",
                f"Expense fields cannot be edited: {', '.join(sorted(unknown))}",
            )

        expense = self._store.expenses.require(expense_id)
        merged = {**expense.model_dump(), **fields}
        if not merged["recurring"]:
            merged["periodicity"] = None
        self._validate("edit_expense", merged)

        merged["status"] = normalize_status(ExpenseStatus(merged["status"]), merged["payment_date"])
        merged["recurrence_origin_id"] = (
            expense.recurrence_origin_id or expense.id if merged["recurring"] else None
        )
        merged["updated_at"] = utcnow()

        updated = Expense.model_validate(merged)
        updated = revise(updated, status=derive_status(updated, self._clock()))

        self._store.expenses.save(updated)
        self._log(
            AuditEventType.EXPENSE_UPDATED,
            updated,
            f"Expense updated: {updated.description}",
            fields=sorted(fields),
        )
        return updated

    def delete(self, expense_id: UUID) -> None:
        """Delete one instance. Other instances of its series are kept."""
        expense = self._store.expenses.require(expense_id)
        self._store.expenses.delete(expense_id)
        self._log(AuditEventType.EXPENSE_DELETED, expense, f"Expense deleted: {expense.description}")

    def get(self, expense_id: UUID) -> Optional[Expense]:
        for expense in self.refresh():
            if expense.id == expense_id:
                return expense
        return None

    def list(self, filters: Optional[ExpenseFilters] = None) -> list[Expense]:
        """
        Refreshed expenses matching the filters, newest due date first.

        Raises:
            ValidationError: date_from after date_to
        """
        filters = filters or ExpenseFilters()
        raise_if_invalid(
            "list_expenses",
            self._validator.validate_date_range(filters.date_from, filters.date_to),
            self._audit_logger,
        )
        matching = [e for e in self.refresh() if filters.matches(e)]
        return sorted(matching, key=lambda e: e.due_date, reverse=True)
