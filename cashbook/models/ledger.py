"""
Core Data Models for Cashbook

These models define the strict schemas for every record kept in the
collection store. They are designed to:
1. Enforce type safety at runtime
2. Reject impossible states (a paid payable without a payment date,
   a card sale without a bank account, ...)
3. Be serializable for storage and logging

DESIGN DECISION: Money is always Decimal with two decimal places.
Floats only appear in derived percentages.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp used for created/updated fields."""
    return datetime.now(timezone.utc)


def revise(model: BaseModel, **changes: Any) -> Any:
    """
    Copy of a model with some fields changed, validated again.

    model_copy(update=...) skips validation, so an edit could otherwise
    produce a record that would fail to load.
    """
    return type(model).model_validate({**model.model_dump(), **changes})


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class PaymentMethod(str, Enum):
    """Electronic methods a bank account can receive."""
    PIX = "pix"
    DEBIT = "debit"
    CREDIT = "credit"


class SaleMethod(str, Enum):
    """
    How a sale was paid.

    Every method except CASH lands in a bank account.
    """
    PIX = "pix"
    CASH = "cash"
    DEBIT = "debit"
    CREDIT = "credit"

    @property
    def requires_account(self) -> bool:
        return self is not SaleMethod.CASH

    @property
    def is_card(self) -> bool:
        return self in (SaleMethod.DEBIT, SaleMethod.CREDIT)

    def as_payment_method(self) -> Optional[PaymentMethod]:
        if self is SaleMethod.CASH:
            return None
        return PaymentMethod(self.value)


class PaymentSource(str, Enum):
    """Where the money to settle a payable came from."""
    CASH = "cash"
    BANK_ACCOUNT = "bank_account"


class MovementDirection(str, Enum):
    """Direction of a balance change."""
    IN = "in"
    OUT = "out"

    @property
    def sign(self) -> int:
        return 1 if self is MovementDirection.IN else -1


class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    DESIGN DECISION: Using explicit categories rather than free text ensures
    consistent categorization and makes the monthly breakdown reliable.
    """
    WATER = "water"
    ELECTRICITY = "electricity"
    INTERNET = "internet"
    RENT = "rent"
    PAYROLL = "payroll"
    MATERIAL_SUPPLIERS = "material_suppliers"
    EQUIPMENT_MAINTENANCE = "equipment_maintenance"
    FUEL = "fuel"
    TAXES = "taxes"
    ACCOUNTING = "accounting"
    MARKETING = "marketing"
    TRANSPORT = "transport"
    OTHER = "other"


class ExpenseType(str, Enum):
    FIXED = "fixed"
    VARIABLE = "variable"


class ExpenseStatus(str, Enum):
    """
    Expense status.

    Derived from due date and payment date, never set freely.
    """
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class ExpensePaymentMethod(str, Enum):
    """Descriptive only - expenses never move a bank balance."""
    PIX = "pix"
    BOLETO = "boleto"
    TRANSFER = "transfer"
    CARD = "card"
    CASH = "cash"


class Periodicity(str, Enum):
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    YEARLY = "yearly"


# =============================================================================
# BANK ACCOUNTS AND THE MOVEMENT LOG
# =============================================================================

class BankAccount(BaseModel):
    """
    A bank account that receives card/PIX sales and pays payables.

    CRITICAL: current_balance is only ever changed by the BalanceLedger.
    It must always equal opening_balance plus the signed movements.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    bank: str = Field(default="", max_length=100)
    branch: str = Field(default="", max_length=20)
    number: str = Field(default="", max_length=30)
    opening_balance: Decimal = Field(
        default=Decimal("0"),
        decimal_places=2,
        description="Balance when the account was registered (immutable)"
    )
    current_balance: Decimal = Field(
        ...,
        decimal_places=2,
        description="Authoritative running balance"
    )
    accepted_methods: set[PaymentMethod] = Field(
        default_factory=set,
        description="Electronic methods this account receives (empty = any)"
    )
    active: bool = Field(
        default=True,
        description="Inactive accounts are hidden but keep their history"
    )
    created_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode='before')
    @classmethod
    def default_current_balance(cls, data: Any) -> Any:
        """A freshly registered account starts at its opening balance."""
        if isinstance(data, dict) and data.get("current_balance") is None:
            data = dict(data)
            data["current_balance"] = data.get("opening_balance", Decimal("0"))
        return data

    def accepts(self, method: PaymentMethod) -> bool:
        return not self.accepted_methods or method in self.accepted_methods


class Movement(BaseModel):
    """
    Immutable audit record of one balance change.

    Created exactly once per balance-affecting event and deleted only
    when that event is reversed.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(default_factory=uuid4)
    account_id: UUID
    direction: MovementDirection
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    description: str = Field(default="", max_length=300)
    payable_id: Optional[UUID] = None
    sale_id: Optional[UUID] = None
    movement_date: date = Field(default_factory=date.today)

    @model_validator(mode='after')
    def validate_single_origin(self) -> 'Movement':
        if self.payable_id is not None and self.sale_id is not None:
            raise ValueError("A movement references at most one origin")
        return self

    @property
    def signed_amount(self) -> Decimal:
        return self.amount * self.direction.sign

    @property
    def origin_id(self) -> Optional[UUID]:
        return self.payable_id or self.sale_id


# =============================================================================
# PAYABLES, SALES AND EXPENSES
# =============================================================================

class Payable(BaseModel):
    """
    A billed obligation ("boleto").

    State machine: pending -> paid (settlement) -> pending (reversal).
    The amount is locked while paid.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    due_date: date
    paid: bool = False
    payment_date: Optional[date] = None
    payment_source: Optional[PaymentSource] = None
    account_id: Optional[UUID] = None
    created_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode='after')
    def validate_settlement_fields(self) -> 'Payable':
        """Payment fields exist exactly when the payable is paid."""
        if self.paid:
            if self.payment_date is None or self.payment_source is None:
                raise ValueError("A paid payable needs a payment date and source")
            if self.payment_source is PaymentSource.BANK_ACCOUNT and self.account_id is None:
                raise ValueError("Bank account settlements need an account")
            if self.payment_source is PaymentSource.CASH and self.account_id is not None:
                raise ValueError("Cash settlements cannot reference an account")
        elif (
            self.payment_date is not None
            or self.payment_source is not None
            or self.account_id is not None
        ):
            raise ValueError("A pending payable cannot carry payment details")
        return self


class Sale(BaseModel):
    """
    A sales receipt.

    PIX, debit and credit sales credit a bank account; cash sales
    feed cash-on-hand and never reference an account.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    method: SaleMethod
    account_id: Optional[UUID] = None
    sale_date: date = Field(default_factory=date.today)
    created_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode='after')
    def validate_account_link(self) -> 'Sale':
        if self.method.requires_account and self.account_id is None:
            raise ValueError(f"{self.method.value} sales need a bank account")
        if not self.method.requires_account and self.account_id is not None:
            raise ValueError("Cash sales cannot reference a bank account")
        return self


class Expense(BaseModel):
    """
    A general expense, optionally part of a recurrence series.

    recurrence_origin_id is the id of the first instance of the series;
    the first instance points at itself.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    description: str = Field(..., min_length=1, max_length=200)
    category: ExpenseCategory
    type: ExpenseType
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    due_date: date
    payment_date: Optional[date] = None
    status: ExpenseStatus = ExpenseStatus.PENDING
    payment_method: ExpensePaymentMethod = ExpensePaymentMethod.BOLETO
    supplier: str = Field(default="", max_length=200)
    cost_center: str = Field(default="", max_length=100)
    notes: str = Field(default="", max_length=1000)
    recurring: bool = False
    periodicity: Optional[Periodicity] = None
    recurrence_origin_id: Optional[UUID] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode='after')
    def validate_recurrence(self) -> 'Expense':
        if self.recurring and self.periodicity is None:
            raise ValueError("Recurring expenses need a periodicity")
        if not self.recurring and self.periodicity is not None:
            raise ValueError("Only recurring expenses have a periodicity")
        if self.payment_date is not None and self.status is not ExpenseStatus.PAID:
            raise ValueError("An expense with a payment date is paid")
        return self

    @property
    def series_id(self) -> UUID:
        return self.recurrence_origin_id or self.id


class MonthlyRevenueSupplement(BaseModel):
    """
    User-supplied figures for the monthly revenue table.

    One record per (year, month). opening_inventory=None means
    "carry over last month's closing inventory".
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    year: int = Field(..., ge=1900, le=9999)
    month: int = Field(..., ge=1, le=12)
    opening_inventory: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    closing_inventory: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    purchases: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    off_books_purchases: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        decimal_places=2,
        description="Purchases made without an invoice"
    )
    settlements: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        decimal_places=2,
        description="Agreement (acordo) income added to the month total"
    )
    merchandise: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        decimal_places=2,
        description="Merchandise (mercadoria) income added to the month total"
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'forbidden')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Result of validating one operation's input."""

    validated_at: datetime = Field(default_factory=utcnow)
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]
