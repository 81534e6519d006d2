from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Response, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from cashdesk.data.base import get_db
from cashdesk.domain.models.movement import (
    BreakdownRow,
    Movement,
    MovementListing,
    MovementReport,
)
from cashdesk.domain.services.auth_service import get_current_user
from cashdesk.domain.services.movement_service import (
    create_movement,
    create_movement_from_catalog_entry,
    delete_movement,
    get_movement,
    list_movements,
    summarize_movements,
    update_movement,
)


def _value(enum_value) -> Optional[str]:
    return enum_value.value if enum_value is not None else None


class MovementResponse(BaseModel):
    id: int
    event_date: date
    amount: float
    direction: str
    description: str
    category: Optional[str] = None
    cost_type: Optional[str] = None
    income_category: Optional[str] = None
    payment_method: str
    voucher: Optional[str] = None
    notes: Optional[str] = None
    catalog_entry_id: Optional[int] = None
    owner: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @staticmethod
    def from_domain(m: Movement) -> "MovementResponse":
        return MovementResponse(
            id=m.id,
            event_date=m.event_date,
            amount=float(m.amount),
            direction=m.direction.value,
            description=m.description,
            category=_value(getattr(m, "category", None)),
            cost_type=_value(getattr(m, "cost_type", None)),
            income_category=_value(getattr(m, "income_category", None)),
            payment_method=m.payment_method.value,
            voucher=m.voucher,
            notes=m.notes,
            catalog_entry_id=m.catalog_entry_id,
            owner=m.owner_username,
            created_at=m.created_at,
            updated_at=m.updated_at,
        )


class SummaryResponse(BaseModel):
    total_income: float
    total_expense: float
    balance: float


class BreakdownRowResponse(BaseModel):
    key: Optional[str] = None
    income: float
    expense: float
    count: int

    @staticmethod
    def from_domain(row: BreakdownRow) -> "BreakdownRowResponse":
        return BreakdownRowResponse(
            key=_value(row.key),
            income=float(row.income),
            expense=float(row.expense),
            count=row.count,
        )


class ReportResponse(BaseModel):
    summary: SummaryResponse
    by_category: List[BreakdownRowResponse]
    by_cost_type: List[BreakdownRowResponse]

    @staticmethod
    def from_domain(report: MovementReport) -> "ReportResponse":
        return ReportResponse(
            summary=SummaryResponse(
                total_income=float(report.summary.total_income),
                total_expense=float(report.summary.total_expense),
                balance=float(report.summary.balance),
            ),
            by_category=[BreakdownRowResponse.from_domain(r) for r in report.by_category],
            by_cost_type=[
                BreakdownRowResponse.from_domain(r) for r in report.by_cost_type
            ],
        )


class PaginatedMovementsResponse(ReportResponse):
    movements: List[MovementResponse]
    total_count: int
    page: int
    limit: int
    total_pages: int

    @staticmethod
    def from_listing(listing: MovementListing) -> "PaginatedMovementsResponse":
        report = ReportResponse.from_domain(listing.report)
        return PaginatedMovementsResponse(
            movements=[MovementResponse.from_domain(m) for m in listing.movements],
            total_count=listing.total_count,
            page=listing.page,
            limit=listing.limit,
            total_pages=listing.total_pages,
            summary=report.summary,
            by_category=report.by_category,
            by_cost_type=report.by_cost_type,
        )


router = APIRouter(prefix="/api/movements", tags=["movements"])


def movement_filters(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    category: Optional[str] = None,
    cost_type: Optional[str] = None,
    income_category: Optional[str] = None,
    payment_method: Optional[str] = None,
    direction: Optional[str] = None,
    search: Optional[str] = Query(None, description="Substring of the description"),
    page: Optional[str] = None,
    limit: Optional[str] = None,
) -> Dict[str, Any]:
    # Raw strings; the domain filter model reports every invalid value at once
    return {
        "start_date": start_date,
        "end_date": end_date,
        "category": category,
        "cost_type": cost_type,
        "income_category": income_category,
        "payment_method": payment_method,
        "direction": direction,
        "search": search,
        "page": page,
        "limit": limit,
    }


@router.post(
    "", response_model=MovementResponse, status_code=status.HTTP_201_CREATED
)
async def create_movement_endpoint(
    payload: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    movement = await create_movement(db, payload, current_user.id)
    return MovementResponse.from_domain(movement)


@router.post(
    "/from-catalog/{entry_id}",
    response_model=MovementResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_movement_from_catalog_endpoint(
    entry_id: int,
    payload: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    movement = await create_movement_from_catalog_entry(
        db, entry_id, payload, current_user.id
    )
    return MovementResponse.from_domain(movement)


@router.get("", response_model=PaginatedMovementsResponse)
async def list_movements_endpoint(
    filters: Dict[str, Any] = Depends(movement_filters),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    listing = await list_movements(db, current_user.id, filters)
    return PaginatedMovementsResponse.from_listing(listing)


@router.get("/report", response_model=ReportResponse)
async def movements_report_endpoint(
    filters: Dict[str, Any] = Depends(movement_filters),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    report = await summarize_movements(db, current_user.id, filters)
    return ReportResponse.from_domain(report)


@router.get("/{movement_id}", response_model=MovementResponse)
async def get_movement_endpoint(
    movement_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return MovementResponse.from_domain(
        await get_movement(db, movement_id, current_user.id)
    )


@router.put("/{movement_id}", response_model=MovementResponse)
async def update_movement_endpoint(
    movement_id: int,
    changes: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    movement = await update_movement(db, movement_id, current_user.id, changes)
    return MovementResponse.from_domain(movement)


@router.delete("/{movement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_movement_endpoint(
    movement_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    await delete_movement(db, movement_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
