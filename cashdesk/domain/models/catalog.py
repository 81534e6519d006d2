# cashdesk/domain/models/catalog.py
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from cashdesk.domain.models.movement import CostType


class CatalogCategory(Enum):
    LABOR = "labor"
    RAW_MATERIAL = "raw_material"
    OTHER_EXPENSE = "other_expense"


class ExpenseType(Enum):
    FIXED = "fixed"
    VARIABLE = "variable"
    OCCASIONAL = "occasional"


class EntryStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"

    def can_transition_to(self, target: "EntryStatus") -> bool:
        """
        ACTIVE <-> INACTIVE, ACTIVE/INACTIVE -> ARCHIVED. ARCHIVED is terminal,
        staying in the same state is always allowed.
        """
        if target == self:
            return True
        if self == EntryStatus.ARCHIVED:
            return False
        return True


@dataclass
class CatalogEntry:
    id: Optional[int]
    name: str
    spend_category: CatalogCategory
    expense_type: ExpenseType
    description: Optional[str] = None
    estimated_amount: Optional[Decimal] = None
    status: EntryStatus = EntryStatus.ACTIVE
    notes: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class CostTypeSuggestion:
    cost_type: CostType
    confidence: int
    reason: str
    matching_tags: List[str] = field(default_factory=list)


@dataclass
class EntrySuggestion:
    entry_id: int
    name: str
    spend_category: CatalogCategory
    expense_type: ExpenseType
    estimated_amount: Optional[Decimal]
    suggested_cost_type: CostType
    relevance: int


@dataclass
class SyncStatistics:
    total_entries: int
    total_active_entries: int
    active_by_cost_type: Dict[CostType, int]
    # Always empty while the two enumerations map 1:1
    orphan_categories: List[CatalogCategory] = field(default_factory=list)


@dataclass
class CatalogGroupTotal:
    key: Enum
    count: int
    estimated_total: Decimal


@dataclass
class CatalogSummary:
    total_active_entries: int
    by_spend_category: List[CatalogGroupTotal]
    by_expense_type: List[CatalogGroupTotal]


@dataclass
class CatalogListing:
    entries: List[CatalogEntry]
    total_count: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return -(-self.total_count // self.limit) if self.limit else 0
