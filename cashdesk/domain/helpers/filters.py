from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from cashdesk.domain.errors import ValidationFailure, violations_from_error
from cashdesk.domain.models.catalog import CatalogCategory, EntryStatus, ExpenseType
from cashdesk.domain.models.movement import (
    CostType,
    Direction,
    ExpenseCategory,
    IncomeCategory,
    PaymentMethod,
)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

FiltersT = TypeVar("FiltersT", bound=BaseModel)


class Pagination(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    page: int = Field(1, ge=1)
    limit: int = Field(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class MovementFilters(Pagination):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    category: Optional[ExpenseCategory] = None
    cost_type: Optional[CostType] = None
    income_category: Optional[IncomeCategory] = None
    payment_method: Optional[PaymentMethod] = None
    direction: Optional[Direction] = None
    search: Optional[str] = Field(None, max_length=200)

    @model_validator(mode="after")
    def _ordered_range(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class CatalogFilters(Pagination):
    spend_category: Optional[CatalogCategory] = None
    expense_type: Optional[ExpenseType] = None
    status: EntryStatus = EntryStatus.ACTIVE
    any_status: bool = False
    search: Optional[str] = Field(None, max_length=100)
    tag: Optional[str] = Field(None, max_length=50)
    min_amount: Optional[Decimal] = Field(None, ge=0)
    max_amount: Optional[Decimal] = Field(None, ge=0)


def parse_filters(model: Type[FiltersT], values: Optional[Mapping[str, Any]] = None) -> FiltersT:
    """Build a filter model, dropping unset/blank values; errors become ValidationFailure."""
    data = {k: v for k, v in (values or {}).items() if v is not None and v != ""}
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ValidationFailure(violations_from_error(e), message="Invalid filters")
