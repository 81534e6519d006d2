from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from cashdesk.data.base import get_db
from cashdesk.domain.models.catalog import EntrySuggestion
from cashdesk.domain.services.auth_service import get_current_user
from cashdesk.domain.services.sync_service import (
    compute_synchronization_statistics,
    get_cost_type_mapping,
    search_entries_by_text,
    suggest_cost_type_for_entry,
    suggest_entries_for_cost_type,
)


class EntrySuggestionResponse(BaseModel):
    entry_id: int
    name: str
    spend_category: str
    expense_type: str
    estimated_amount: Optional[float] = None
    suggested_cost_type: str
    relevance: int

    @staticmethod
    def from_domain(s: EntrySuggestion) -> "EntrySuggestionResponse":
        return EntrySuggestionResponse(
            entry_id=s.entry_id,
            name=s.name,
            spend_category=s.spend_category.value,
            expense_type=s.expense_type.value,
            estimated_amount=(
                float(s.estimated_amount) if s.estimated_amount is not None else None
            ),
            suggested_cost_type=s.suggested_cost_type.value,
            relevance=s.relevance,
        )


class CostTypeSuggestionResponse(BaseModel):
    entry_id: int
    cost_type: str
    confidence: int
    reason: str
    matching_tags: List[str]


class SyncStatisticsResponse(BaseModel):
    total_entries: int
    total_active_entries: int
    active_by_cost_type: Dict[str, int]
    orphan_categories: List[str]


router = APIRouter(prefix="/api/sync", tags=["sync"])


@router.get(
    "/cost-types/{cost_type}/entries", response_model=List[EntrySuggestionResponse]
)
async def entries_for_cost_type_endpoint(
    cost_type: str,
    active_only: bool = True,
    require_estimated_amount: bool = False,
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    suggestions = await suggest_entries_for_cost_type(
        db,
        cost_type,
        active_only=active_only,
        require_estimated_amount=require_estimated_amount,
        limit=limit,
    )
    return [EntrySuggestionResponse.from_domain(s) for s in suggestions]


@router.get(
    "/entries/{entry_id}/cost-type", response_model=CostTypeSuggestionResponse
)
async def cost_type_for_entry_endpoint(
    entry_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    suggestion = await suggest_cost_type_for_entry(db, entry_id)
    return CostTypeSuggestionResponse(
        entry_id=entry_id,
        cost_type=suggestion.cost_type.value,
        confidence=suggestion.confidence,
        reason=suggestion.reason,
        matching_tags=suggestion.matching_tags,
    )


@router.get("/search", response_model=List[EntrySuggestionResponse])
async def search_entries_endpoint(
    text: Optional[str] = Query(None, alias="q"),
    cost_type: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    results = await search_entries_by_text(db, text, cost_type)
    return [EntrySuggestionResponse.from_domain(s) for s in results]


@router.get("/statistics", response_model=SyncStatisticsResponse)
async def statistics_endpoint(
    db: AsyncSession = Depends(get_db), current_user=Depends(get_current_user)
):
    stats = await compute_synchronization_statistics(db)
    return SyncStatisticsResponse(
        total_entries=stats.total_entries,
        total_active_entries=stats.total_active_entries,
        active_by_cost_type={
            cost_type.value: count
            for cost_type, count in stats.active_by_cost_type.items()
        },
        orphan_categories=[c.value for c in stats.orphan_categories],
    )


@router.get("/mapping", response_model=Dict[str, Any])
async def mapping_endpoint(current_user=Depends(get_current_user)):
    return get_cost_type_mapping()
