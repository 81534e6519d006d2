# cashdesk/domain/models/movement.py
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class Direction(Enum):
    INCOME = "income"
    EXPENSE = "expense"


class ExpenseCategory(Enum):
    FINANCE = "finance"
    OPERATIONS = "operations"
    SALES = "sales"
    ADMINISTRATIVE = "administrative"


class CostType(Enum):
    LABOR = "labor"
    RAW_MATERIAL = "raw_material"
    OTHER_EXPENSE = "other_expense"


class IncomeCategory(Enum):
    OPENING_BALANCE = "opening_balance"
    DIRECT_SALE = "direct_sale"
    OPERATIONS_SALE = "operations_sale"
    FINANCIAL_INCOME = "financial_income"
    OTHER_INCOME = "other_income"


class PaymentMethod(Enum):
    CASH = "cash"
    TRANSFER = "transfer"
    YAPE = "yape"
    PLIN = "plin"
    BANK_DEPOSIT = "bank_deposit"
    CHECK = "check"
    CARD = "card"


MIN_AMOUNT = Decimal("0.01")
MAX_AMOUNT = Decimal("999999999")


@dataclass(kw_only=True)
class Movement:
    """
    Common part of a cash movement. Only the two subclasses are ever
    instantiated; the subclass decides the direction and carries the
    classification fields that belong to it.
    """

    event_date: date
    amount: Decimal
    description: str
    payment_method: PaymentMethod
    voucher: Optional[str] = None
    notes: Optional[str] = None
    catalog_entry_id: Optional[int] = None
    id: Optional[int] = None
    user_id: Optional[int] = None
    owner_username: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.amount <= 0:
            raise ValueError("Movement amount must be positive.")

    @property
    def direction(self) -> Direction:
        raise NotImplementedError


@dataclass(kw_only=True)
class IncomeMovement(Movement):
    income_category: IncomeCategory

    @property
    def direction(self) -> Direction:
        return Direction.INCOME


@dataclass(kw_only=True)
class ExpenseMovement(Movement):
    category: ExpenseCategory
    cost_type: CostType

    @property
    def direction(self) -> Direction:
        return Direction.EXPENSE


def classification_fields(direction: Direction) -> tuple:
    if direction == Direction.INCOME:
        return ("income_category",)
    return ("category", "cost_type")


@dataclass
class Summary:
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expense


@dataclass
class BreakdownRow:
    # key is None for movements that carry no value for the grouped field
    key: Optional[Enum]
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    count: int = 0


@dataclass
class MovementReport:
    summary: Summary
    by_category: List[BreakdownRow] = field(default_factory=list)
    by_cost_type: List[BreakdownRow] = field(default_factory=list)


@dataclass
class MovementListing:
    movements: List[Movement]
    total_count: int
    page: int
    limit: int
    report: MovementReport

    @property
    def total_pages(self) -> int:
        return -(-self.total_count // self.limit) if self.limit else 0
