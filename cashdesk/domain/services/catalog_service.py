import logging
from typing import Any, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from cashdesk.data.repositories.catalog_repository import (
    CatalogEntryORM,
    add_entry,
    build_catalog_filters,
    count_entries,
    estimates_by,
    find_entries,
    get_entry,
    update_entry,
)
from cashdesk.domain.errors import DuplicateFailure, NotFound, ValidationFailure, Violation
from cashdesk.domain.helpers.aggregation import to_money
from cashdesk.domain.helpers.catalog_validator import (
    validate_catalog_changes,
    validate_catalog_entry,
)
from cashdesk.domain.helpers.filters import CatalogFilters, parse_filters
from cashdesk.domain.models.catalog import (
    CatalogEntry,
    CatalogGroupTotal,
    CatalogListing,
    CatalogSummary,
    EntryStatus,
)

logger = logging.getLogger(__name__)


async def create_catalog_entry(
    db: AsyncSession, payload: Mapping[str, Any], user_id: int
) -> CatalogEntry:
    values = validate_catalog_entry(payload).model_dump()
    try:
        entry = await add_entry(db, values, user_id)
    except DuplicateFailure as e:
        logger.info(
            "Rejected duplicate catalog entry '%s' (existing id %s)",
            values["name"],
            e.existing_id,
        )
        raise
    logger.info("Created catalog entry %s '%s'", entry.id, entry.name)
    return entry


async def get_catalog_entry(db: AsyncSession, entry_id: int) -> CatalogEntry:
    entry = await get_entry(db, entry_id)
    if entry is None:
        raise NotFound(f"Catalog entry with id {entry_id} not found")
    return entry


def _check_transition(current: EntryStatus, target: EntryStatus) -> None:
    if not current.can_transition_to(target):
        raise ValidationFailure(
            [
                Violation(
                    "status",
                    "invalid_transition",
                    f"status cannot change from {current.value} to {target.value}",
                )
            ]
        )


async def update_catalog_entry(
    db: AsyncSession, entry_id: int, changes: Mapping[str, Any]
) -> CatalogEntry:
    """
    Partial replacement. Only the supplied fields change; tags are always
    stored re-deduplicated and a status change must follow the status machine.
    """
    values = validate_catalog_changes(changes)
    current = await get_catalog_entry(db, entry_id)
    if "status" in values:
        _check_transition(current.status, values["status"])
    if not values:
        return current

    entry = await update_entry(db, entry_id, values)
    if entry is None:
        raise NotFound(f"Catalog entry with id {entry_id} not found")
    logger.info("Updated catalog entry %s (%s)", entry_id, ", ".join(sorted(values)))
    return entry


async def archive_catalog_entry(db: AsyncSession, entry_id: int) -> CatalogEntry:
    current = await get_catalog_entry(db, entry_id)
    if current.status == EntryStatus.ARCHIVED:
        return current
    entry = await update_entry(db, entry_id, {"status": EntryStatus.ARCHIVED})
    if entry is None:
        raise NotFound(f"Catalog entry with id {entry_id} not found")
    logger.info("Archived catalog entry %s", entry_id)
    return entry


async def list_catalog_entries(
    db: AsyncSession, filters: CatalogFilters | Mapping | None = None
) -> CatalogListing:
    if not isinstance(filters, CatalogFilters):
        filters = parse_filters(CatalogFilters, filters)
    predicates = build_catalog_filters(filters)
    entries = await find_entries(
        db, predicates, offset=filters.offset, limit=filters.limit
    )
    total = await count_entries(db, predicates)
    return CatalogListing(
        entries=entries, total_count=total, page=filters.page, limit=filters.limit
    )


def _group_totals(rows) -> list[CatalogGroupTotal]:
    return [
        CatalogGroupTotal(key=key, count=int(count), estimated_total=to_money(total))
        for key, count, total in rows
    ]


async def summarize_catalog(db: AsyncSession) -> CatalogSummary:
    active = [CatalogEntryORM.status == EntryStatus.ACTIVE]
    return CatalogSummary(
        total_active_entries=await count_entries(db, active),
        by_spend_category=_group_totals(
            await estimates_by(db, active, CatalogEntryORM.spend_category)
        ),
        by_expense_type=_group_totals(
            await estimates_by(db, active, CatalogEntryORM.expense_type)
        ),
    )
