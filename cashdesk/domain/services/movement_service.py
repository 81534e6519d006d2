import logging
from datetime import date
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from cashdesk.data.repositories.catalog_repository import get_entry
from cashdesk.data.repositories.movement_repository import (
    MovementORM,
    add_movement,
    build_movement_filters,
    count_movements,
    find_movements,
    save_movement,
    sum_by_direction,
    sum_by_key,
)
from cashdesk.data.repositories.movement_repository import (
    delete_movement as repo_delete_movement,
)
from cashdesk.data.repositories.movement_repository import (
    get_movement as repo_get_movement,
)
from cashdesk.domain.errors import InvalidReference, NotFound
from cashdesk.domain.helpers.aggregation import build_breakdown, build_summary
from cashdesk.domain.helpers.filters import MovementFilters, parse_filters
from cashdesk.domain.helpers.movement_validator import (
    validate_and_normalize_movement,
    validate_movement_update,
)
from cashdesk.domain.helpers.suggestions import suggest_cost_type
from cashdesk.domain.models.catalog import EntryStatus
from cashdesk.domain.models.movement import (
    Direction,
    Movement,
    MovementListing,
    MovementReport,
)

logger = logging.getLogger(__name__)


async def _check_catalog_reference(db: AsyncSession, entry_id: Optional[int]) -> None:
    if entry_id is not None and await get_entry(db, entry_id) is None:
        raise InvalidReference(f"Catalog entry {entry_id} does not exist")


async def create_movement(
    db: AsyncSession,
    payload: Mapping[str, Any],
    user_id: int,
    today: Optional[date] = None,
) -> Movement:
    movement = validate_and_normalize_movement(payload, today=today)
    await _check_catalog_reference(db, movement.catalog_entry_id)
    stored = await add_movement(db, movement, user_id)
    logger.info(
        "Created %s movement %s for user %s",
        stored.direction.value,
        stored.id,
        user_id,
    )
    return stored


async def create_movement_from_catalog_entry(
    db: AsyncSession,
    entry_id: int,
    payload: Mapping[str, Any],
    user_id: int,
    today: Optional[date] = None,
) -> Movement:
    """
    Assisted creation: pre-fill an expense from a catalog entry. The cost type
    always comes from the entry; description and amount default to the
    entry's name and estimated amount when the caller leaves them out.
    Archived entries cannot be used.
    """
    entry = await get_entry(db, entry_id)
    if entry is None:
        raise InvalidReference(f"Catalog entry {entry_id} does not exist")
    if entry.status == EntryStatus.ARCHIVED:
        raise InvalidReference(f"Catalog entry {entry_id} is archived")

    suggestion = suggest_cost_type(entry)
    data: Dict[str, Any] = dict(payload or {})
    data["direction"] = Direction.EXPENSE
    data["cost_type"] = suggestion.cost_type
    data["catalog_entry_id"] = entry.id
    data.pop("income_category", None)
    if data.get("description") is None:
        data["description"] = entry.name
    if data.get("amount") is None and entry.estimated_amount:
        data["amount"] = entry.estimated_amount

    movement = validate_and_normalize_movement(data, today=today)
    stored = await add_movement(db, movement, user_id)
    logger.info(
        "Created movement %s from catalog entry %s (%s, confidence %s)",
        stored.id,
        entry.id,
        suggestion.cost_type.value,
        suggestion.confidence,
    )
    return stored


async def get_movement(db: AsyncSession, movement_id: int, user_id: int) -> Movement:
    movement = await repo_get_movement(db, movement_id, user_id)
    if movement is None:
        raise NotFound(f"Movement with id {movement_id} not found")
    return movement


async def update_movement(
    db: AsyncSession,
    movement_id: int,
    user_id: int,
    changes: Mapping[str, Any],
    today: Optional[date] = None,
) -> Movement:
    current = await get_movement(db, movement_id, user_id)
    movement = validate_movement_update(current, changes, today=today)
    if movement.catalog_entry_id != current.catalog_entry_id:
        await _check_catalog_reference(db, movement.catalog_entry_id)
    stored = await save_movement(db, movement)
    if stored is None:
        # Removed between the read and the write
        raise NotFound(f"Movement with id {movement_id} not found")
    logger.info("Updated movement %s for user %s", movement_id, user_id)
    return stored


async def delete_movement(db: AsyncSession, movement_id: int, user_id: int) -> None:
    deleted = await repo_delete_movement(db, movement_id, user_id)
    if not deleted:
        raise NotFound(f"Movement with id {movement_id} not found")
    logger.info("Deleted movement %s for user %s", movement_id, user_id)


async def _report(db: AsyncSession, predicates: list) -> MovementReport:
    summary = build_summary(await sum_by_direction(db, predicates))
    by_category = build_breakdown(
        await sum_by_key(db, predicates, MovementORM.category)
    )
    by_cost_type = build_breakdown(
        await sum_by_key(db, predicates, MovementORM.cost_type)
    )
    return MovementReport(
        summary=summary, by_category=by_category, by_cost_type=by_cost_type
    )


def _as_filters(filters) -> MovementFilters:
    if isinstance(filters, MovementFilters):
        return filters
    return parse_filters(MovementFilters, filters)


async def list_movements(
    db: AsyncSession, user_id: int, filters: MovementFilters | Mapping | None = None
) -> MovementListing:
    """
    One page of the owner's movements plus totals and breakdowns computed by
    the store over the whole filtered set, not only over the page.
    """
    filters = _as_filters(filters)
    predicates = build_movement_filters(user_id, filters)
    movements = await find_movements(
        db, predicates, offset=filters.offset, limit=filters.limit
    )
    total = await count_movements(db, predicates)
    report = await _report(db, predicates)
    return MovementListing(
        movements=movements,
        total_count=total,
        page=filters.page,
        limit=filters.limit,
        report=report,
    )


async def summarize_movements(
    db: AsyncSession, user_id: int, filters: MovementFilters | Mapping | None = None
) -> MovementReport:
    filters = _as_filters(filters)
    return await _report(db, build_movement_filters(user_id, filters))
