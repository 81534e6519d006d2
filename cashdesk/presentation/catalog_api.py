from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from cashdesk.data.base import get_db
from cashdesk.domain.models.catalog import CatalogEntry, CatalogGroupTotal
from cashdesk.domain.services.auth_service import get_current_user
from cashdesk.domain.services.catalog_service import (
    archive_catalog_entry,
    create_catalog_entry,
    get_catalog_entry,
    list_catalog_entries,
    summarize_catalog,
    update_catalog_entry,
)


class CatalogEntryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    spend_category: str
    expense_type: str
    estimated_amount: Optional[float] = None
    status: str
    notes: Optional[str] = None
    tags: List[str] = []
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @staticmethod
    def from_domain(e: CatalogEntry) -> "CatalogEntryResponse":
        return CatalogEntryResponse(
            id=e.id,
            name=e.name,
            description=e.description,
            spend_category=e.spend_category.value,
            expense_type=e.expense_type.value,
            estimated_amount=(
                float(e.estimated_amount) if e.estimated_amount is not None else None
            ),
            status=e.status.value,
            notes=e.notes,
            tags=list(e.tags),
            created_by=e.user_id,
            created_at=e.created_at,
            updated_at=e.updated_at,
        )


class PaginatedCatalogResponse(BaseModel):
    entries: List[CatalogEntryResponse]
    total_count: int
    page: int
    limit: int
    total_pages: int


class GroupTotalResponse(BaseModel):
    key: str
    count: int
    estimated_total: float

    @staticmethod
    def from_domain(group: CatalogGroupTotal) -> "GroupTotalResponse":
        return GroupTotalResponse(
            key=group.key.value,
            count=group.count,
            estimated_total=float(group.estimated_total),
        )


class CatalogSummaryResponse(BaseModel):
    total_active_entries: int
    by_spend_category: List[GroupTotalResponse]
    by_expense_type: List[GroupTotalResponse]


router = APIRouter(prefix="/api/catalog", tags=["catalog"])


def catalog_filters(
    spend_category: Optional[str] = None,
    expense_type: Optional[str] = None,
    status: Optional[str] = None,
    any_status: Optional[str] = None,
    search: Optional[str] = None,
    tag: Optional[str] = None,
    min_amount: Optional[str] = None,
    max_amount: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "spend_category": spend_category,
        "expense_type": expense_type,
        "status": status,
        "any_status": any_status,
        "search": search,
        "tag": tag,
        "min_amount": min_amount,
        "max_amount": max_amount,
        "page": page,
        "limit": limit,
    }


@router.post(
    "", response_model=CatalogEntryResponse, status_code=status.HTTP_201_CREATED
)
async def create_catalog_entry_endpoint(
    payload: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    entry = await create_catalog_entry(db, payload, current_user.id)
    return CatalogEntryResponse.from_domain(entry)


@router.get("", response_model=PaginatedCatalogResponse)
async def list_catalog_entries_endpoint(
    filters: Dict[str, Any] = Depends(catalog_filters),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    listing = await list_catalog_entries(db, filters)
    return PaginatedCatalogResponse(
        entries=[CatalogEntryResponse.from_domain(e) for e in listing.entries],
        total_count=listing.total_count,
        page=listing.page,
        limit=listing.limit,
        total_pages=listing.total_pages,
    )


@router.get("/summary", response_model=CatalogSummaryResponse)
async def catalog_summary_endpoint(
    db: AsyncSession = Depends(get_db), current_user=Depends(get_current_user)
):
    summary = await summarize_catalog(db)
    return CatalogSummaryResponse(
        total_active_entries=summary.total_active_entries,
        by_spend_category=[
            GroupTotalResponse.from_domain(g) for g in summary.by_spend_category
        ],
        by_expense_type=[
            GroupTotalResponse.from_domain(g) for g in summary.by_expense_type
        ],
    )


@router.get("/{entry_id}", response_model=CatalogEntryResponse)
async def get_catalog_entry_endpoint(
    entry_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return CatalogEntryResponse.from_domain(await get_catalog_entry(db, entry_id))


@router.put("/{entry_id}", response_model=CatalogEntryResponse)
async def update_catalog_entry_endpoint(
    entry_id: int,
    changes: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    entry = await update_catalog_entry(db, entry_id, changes)
    return CatalogEntryResponse.from_domain(entry)


@router.delete("/{entry_id}", response_model=CatalogEntryResponse)
async def archive_catalog_entry_endpoint(
    entry_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return CatalogEntryResponse.from_domain(await archive_catalog_entry(db, entry_id))
