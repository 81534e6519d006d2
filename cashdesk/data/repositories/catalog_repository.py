# cashdesk/data/repositories/catalog_repository.py
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import relationship

from cashdesk.data.base import Base, commit
from cashdesk.domain.errors import DuplicateFailure, InternalFailure
from cashdesk.domain.models.catalog import (
    CatalogCategory,
    CatalogEntry,
    EntryStatus,
    ExpenseType,
)


def _utcnow():
    return datetime.now(timezone.utc)


class CatalogEntryORM(Base):
    __tablename__ = "catalog_entries"
    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    description = Column(String(500), nullable=True)
    spend_category = Column(SAEnum(CatalogCategory), nullable=False, index=True)
    expense_type = Column(SAEnum(ExpenseType), nullable=False, index=True)
    estimated_amount = Column(Numeric(12, 2), nullable=True)
    status = Column(
        SAEnum(EntryStatus), nullable=False, default=EntryStatus.ACTIVE, index=True
    )
    notes = Column(String(1000), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    tags = relationship(
        "CatalogTagORM",
        cascade="all, delete-orphan",
        order_by="CatalogTagORM.position",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("name", "user_id", name="uq_catalog_entry_name_creator"),
    )


class CatalogTagORM(Base):
    __tablename__ = "catalog_entry_tags"
    id = Column(Integer, primary_key=True, autoincrement=True)
    entry_id = Column(
        Integer,
        ForeignKey("catalog_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)
    tag = Column(String(50), nullable=False)


ENTRY_COLUMNS = (
    "name",
    "description",
    "spend_category",
    "expense_type",
    "estimated_amount",
    "status",
    "notes",
)


def entry_to_domain(entry_orm: CatalogEntryORM) -> CatalogEntry:
    return CatalogEntry(
        id=entry_orm.id,
        name=entry_orm.name,
        description=entry_orm.description,
        spend_category=entry_orm.spend_category,
        expense_type=entry_orm.expense_type,
        estimated_amount=entry_orm.estimated_amount,
        status=entry_orm.status,
        notes=entry_orm.notes,
        tags=[t.tag for t in entry_orm.tags],
        user_id=entry_orm.user_id,
        created_at=entry_orm.created_at,
        updated_at=entry_orm.updated_at,
    )


def _apply(entry_orm: CatalogEntryORM, values: dict) -> None:
    for name in ENTRY_COLUMNS:
        if name in values:
            setattr(entry_orm, name, values[name])
    if "tags" in values:
        entry_orm.tags = [
            CatalogTagORM(tag=tag, position=i) for i, tag in enumerate(values["tags"])
        ]


async def find_entry_by_name(db, name: str, user_id: int) -> CatalogEntry | None:
    result = await db.execute(
        select(CatalogEntryORM).where(
            CatalogEntryORM.name == name, CatalogEntryORM.user_id == user_id
        )
    )
    entry_orm = result.scalars().first()
    return entry_to_domain(entry_orm) if entry_orm else None


async def _commit_entry(db, name: str, user_id: int) -> None:
    try:
        await commit(db, reraise_integrity=True)
    except IntegrityError as e:
        existing = await find_entry_by_name(db, name, user_id)
        if existing is None:
            raise InternalFailure("The catalog entry violates a store constraint") from e
        raise DuplicateFailure(
            f"A catalog entry named '{name}' already exists", existing_id=existing.id
        ) from e


async def add_entry(db, values: dict, user_id: int) -> CatalogEntry:
    entry_orm = CatalogEntryORM(user_id=user_id)
    _apply(entry_orm, values)
    if "tags" not in values:
        entry_orm.tags = []
    db.add(entry_orm)
    await _commit_entry(db, entry_orm.name, user_id)
    return entry_to_domain(entry_orm)


async def _get_orm(db, entry_id: int) -> CatalogEntryORM | None:
    result = await db.execute(
        select(CatalogEntryORM).where(CatalogEntryORM.id == entry_id)
    )
    return result.scalars().first()


async def get_entry(db, entry_id: int) -> CatalogEntry | None:
    entry_orm = await _get_orm(db, entry_id)
    return entry_to_domain(entry_orm) if entry_orm else None


async def update_entry(db, entry_id: int, values: dict) -> CatalogEntry | None:
    entry_orm = await _get_orm(db, entry_id)
    if not entry_orm:
        return None
    _apply(entry_orm, values)
    name, user_id = entry_orm.name, entry_orm.user_id
    await _commit_entry(db, name, user_id)
    return entry_to_domain(entry_orm)


def text_match(text: str):
    """Case-insensitive substring match on name, description or any tag."""
    return or_(
        CatalogEntryORM.name.icontains(text, autoescape=True),
        CatalogEntryORM.description.icontains(text, autoescape=True),
        CatalogEntryORM.tags.any(CatalogTagORM.tag.icontains(text, autoescape=True)),
    )


def build_catalog_filters(filters) -> list:
    predicates = []
    if filters.spend_category:
        predicates.append(CatalogEntryORM.spend_category == filters.spend_category)
    if filters.expense_type:
        predicates.append(CatalogEntryORM.expense_type == filters.expense_type)
    if not filters.any_status:
        predicates.append(CatalogEntryORM.status == filters.status)
    if filters.tag:
        predicates.append(
            CatalogEntryORM.tags.any(
                func.lower(CatalogTagORM.tag) == filters.tag.lower()
            )
        )
    if filters.min_amount is not None:
        predicates.append(CatalogEntryORM.estimated_amount >= filters.min_amount)
    if filters.max_amount is not None:
        predicates.append(CatalogEntryORM.estimated_amount <= filters.max_amount)
    if filters.search:
        predicates.append(text_match(filters.search))
    return predicates


async def find_entries(
    db, predicates: list, offset: int = 0, limit: int | None = None
) -> list[CatalogEntry]:
    query = (
        select(CatalogEntryORM)
        .where(*predicates)
        .order_by(CatalogEntryORM.name.asc(), CatalogEntryORM.id.asc())
        .offset(offset)
    )
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return [entry_to_domain(e) for e in result.scalars().all()]


async def count_entries(db, predicates: list | None = None) -> int:
    result = await db.execute(
        select(func.count(CatalogEntryORM.id)).where(*(predicates or []))
    )
    return result.scalar() or 0


async def count_by_category(db, predicates: list) -> list:
    result = await db.execute(
        select(CatalogEntryORM.spend_category, func.count(CatalogEntryORM.id))
        .where(*predicates)
        .group_by(CatalogEntryORM.spend_category)
    )
    return result.all()


async def estimates_by(db, predicates: list, key_column) -> list:
    """(key, count, sum of estimated amounts) per distinct key, largest groups first."""
    result = await db.execute(
        select(
            key_column,
            func.count(CatalogEntryORM.id),
            func.coalesce(func.sum(CatalogEntryORM.estimated_amount), 0),
        )
        .where(*predicates)
        .group_by(key_column)
        .order_by(func.count(CatalogEntryORM.id).desc())
    )
    return result.all()
