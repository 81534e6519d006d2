import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from cashdesk.data.repositories.catalog_repository import (
    CatalogEntryORM,
    count_by_category,
    count_entries,
    find_entries,
    text_match,
)
from cashdesk.domain.errors import ValidationFailure, Violation
from cashdesk.domain.helpers.suggestions import (
    CATEGORY_FOR_COST_TYPE,
    COST_TYPE_FOR_CATEGORY,
    rank_by_inference,
    rank_for_cost_type,
    suggest_cost_type,
)
from cashdesk.domain.models.catalog import (
    CatalogCategory,
    CostTypeSuggestion,
    EntryStatus,
    EntrySuggestion,
    SyncStatistics,
)
from cashdesk.domain.models.movement import CostType
from cashdesk.domain.services.catalog_service import get_catalog_entry

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTION_LIMIT = 10
SEARCH_RESULT_CAP = 10
MIN_SEARCH_LENGTH = 2
MAX_SEARCH_LENGTH = 100


def _parse_cost_type(value) -> CostType:
    if isinstance(value, CostType):
        return value
    try:
        return CostType(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(c.value for c in CostType)
        raise ValidationFailure(
            [Violation("cost_type", "enum", f"cost_type must be one of: {allowed}")]
        )


def _parse_search_text(text: Optional[str]) -> str:
    text = (text or "").strip()
    if not MIN_SEARCH_LENGTH <= len(text) <= MAX_SEARCH_LENGTH:
        raise ValidationFailure(
            [
                Violation(
                    "text",
                    "length",
                    f"text must be between {MIN_SEARCH_LENGTH} and "
                    f"{MAX_SEARCH_LENGTH} characters",
                )
            ]
        )
    return text


async def suggest_entries_for_cost_type(
    db: AsyncSession,
    cost_type,
    active_only: bool = True,
    require_estimated_amount: bool = False,
    limit: int = DEFAULT_SUGGESTION_LIMIT,
) -> List[EntrySuggestion]:
    """
    Catalog entries whose category maps to the cost type, ranked by how many
    of their tags are typical for it.
    """
    cost_type = _parse_cost_type(cost_type)
    if limit < 1:
        raise ValidationFailure(
            [Violation("limit", "greater_than_equal", "limit must be at least 1")]
        )
    predicates = [CatalogEntryORM.spend_category == CATEGORY_FOR_COST_TYPE[cost_type]]
    if active_only:
        predicates.append(CatalogEntryORM.status == EntryStatus.ACTIVE)
    if require_estimated_amount:
        predicates.append(CatalogEntryORM.estimated_amount > 0)
    entries = await find_entries(db, predicates)
    return rank_for_cost_type(entries, cost_type, limit)


async def suggest_cost_type_for_entry(
    db: AsyncSession, entry_id: int
) -> CostTypeSuggestion:
    entry = await get_catalog_entry(db, entry_id)
    return suggest_cost_type(entry)


async def search_entries_by_text(
    db: AsyncSession, text: Optional[str], cost_type=None
) -> List[EntrySuggestion]:
    text = _parse_search_text(text)
    predicates = [CatalogEntryORM.status == EntryStatus.ACTIVE, text_match(text)]
    if cost_type is not None:
        cost_type = _parse_cost_type(cost_type)
        predicates.append(
            CatalogEntryORM.spend_category == CATEGORY_FOR_COST_TYPE[cost_type]
        )
    entries = await find_entries(db, predicates)
    results = rank_by_inference(entries, SEARCH_RESULT_CAP)
    logger.debug("Catalog search '%s' matched %s entries", text, len(entries))
    return results


async def compute_synchronization_statistics(db: AsyncSession) -> SyncStatistics:
    active = [CatalogEntryORM.status == EntryStatus.ACTIVE]
    by_cost_type = {cost_type: 0 for cost_type in CostType}
    orphans = []
    for category, count in await count_by_category(db, active):
        cost_type = COST_TYPE_FOR_CATEGORY.get(category)
        if cost_type is None:
            orphans.append(category)
            continue
        by_cost_type[cost_type] += int(count)
    return SyncStatistics(
        total_entries=await count_entries(db),
        total_active_entries=await count_entries(db, active),
        active_by_cost_type=by_cost_type,
        orphan_categories=orphans,
    )


def get_cost_type_mapping() -> Dict[str, Any]:
    return {
        "mapping": {
            category.value: cost_type.value
            for category, cost_type in COST_TYPE_FOR_CATEGORY.items()
        },
        "catalog_categories": [c.value for c in CatalogCategory],
        "cost_types": [c.value for c in CostType],
    }
