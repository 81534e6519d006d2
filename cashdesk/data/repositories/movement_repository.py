# cashdesk/data/repositories/movement_repository.py
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, Date, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, Numeric, String, case, func, select

from cashdesk.data.base import Base, commit
from cashdesk.data.repositories.user_repository import UserORM
from cashdesk.domain.models.movement import (
    CostType,
    Direction,
    ExpenseCategory,
    ExpenseMovement,
    IncomeCategory,
    IncomeMovement,
    Movement,
    PaymentMethod,
)


def _utcnow():
    return datetime.now(timezone.utc)


class MovementORM(Base):
    __tablename__ = "movements"
    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    event_date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    direction = Column(SAEnum(Direction), nullable=False, index=True)
    description = Column(String(200), nullable=False)
    category = Column(SAEnum(ExpenseCategory), nullable=True, index=True)
    cost_type = Column(SAEnum(CostType), nullable=True, index=True)
    income_category = Column(SAEnum(IncomeCategory), nullable=True, index=True)
    payment_method = Column(SAEnum(PaymentMethod), nullable=False, index=True)
    voucher = Column(String(50), nullable=True)
    notes = Column(String(500), nullable=True)
    catalog_entry_id = Column(
        Integer, ForeignKey("catalog_entries.id"), nullable=True, index=True
    )
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="movement_amount_positive"),
        # Exactly one side of the classification is populated
        CheckConstraint(
            "(direction = 'EXPENSE' AND category IS NOT NULL "
            "AND cost_type IS NOT NULL AND income_category IS NULL) OR "
            "(direction = 'INCOME' AND income_category IS NOT NULL "
            "AND category IS NULL AND cost_type IS NULL)",
            name="movement_classification_matches_direction",
        ),
    )


def movement_to_domain(movement_orm: MovementORM, username: str | None = None) -> Movement:
    common = dict(
        id=movement_orm.id,
        event_date=movement_orm.event_date,
        amount=movement_orm.amount,
        description=movement_orm.description,
        payment_method=movement_orm.payment_method,
        voucher=movement_orm.voucher,
        notes=movement_orm.notes,
        catalog_entry_id=movement_orm.catalog_entry_id,
        user_id=movement_orm.user_id,
        owner_username=username,
        created_at=movement_orm.created_at,
        updated_at=movement_orm.updated_at,
    )
    if movement_orm.direction == Direction.INCOME:
        return IncomeMovement(income_category=movement_orm.income_category, **common)
    return ExpenseMovement(
        category=movement_orm.category, cost_type=movement_orm.cost_type, **common
    )


def _apply(movement_orm: MovementORM, movement: Movement) -> None:
    movement_orm.event_date = movement.event_date
    movement_orm.amount = movement.amount
    movement_orm.direction = movement.direction
    movement_orm.description = movement.description
    movement_orm.payment_method = movement.payment_method
    movement_orm.voucher = movement.voucher
    movement_orm.notes = movement.notes
    movement_orm.catalog_entry_id = movement.catalog_entry_id
    # The subclass decides which side exists; the other side is cleared
    movement_orm.category = getattr(movement, "category", None)
    movement_orm.cost_type = getattr(movement, "cost_type", None)
    movement_orm.income_category = getattr(movement, "income_category", None)


async def _username(db, user_id: int) -> str | None:
    result = await db.execute(select(UserORM.username).where(UserORM.id == user_id))
    return result.scalar()


async def add_movement(db, movement: Movement, user_id: int) -> Movement:
    movement_orm = MovementORM(user_id=user_id)
    _apply(movement_orm, movement)
    db.add(movement_orm)
    await commit(db)
    await db.refresh(movement_orm)
    return movement_to_domain(movement_orm, await _username(db, user_id))


async def _get_orm(db, movement_id: int, user_id: int) -> MovementORM | None:
    result = await db.execute(
        select(MovementORM).where(
            MovementORM.id == movement_id, MovementORM.user_id == user_id
        )
    )
    return result.scalars().first()


async def get_movement(db, movement_id: int, user_id: int) -> Movement | None:
    result = await db.execute(
        select(MovementORM, UserORM.username)
        .outerjoin(UserORM, UserORM.id == MovementORM.user_id)
        .where(MovementORM.id == movement_id, MovementORM.user_id == user_id)
    )
    row = result.first()
    if not row:
        return None
    return movement_to_domain(row[0], row[1])


async def save_movement(db, movement: Movement) -> Movement | None:
    movement_orm = await _get_orm(db, movement.id, movement.user_id)
    if not movement_orm:
        return None
    _apply(movement_orm, movement)
    await commit(db)
    await db.refresh(movement_orm)
    return movement_to_domain(movement_orm, await _username(db, movement.user_id))


async def delete_movement(db, movement_id: int, user_id: int) -> bool:
    movement_orm = await _get_orm(db, movement_id, user_id)
    if not movement_orm:
        return False
    await db.delete(movement_orm)
    await commit(db)
    return True


def build_movement_filters(user_id: int, filters) -> list:
    """
    SQLAlchemy predicates shared by the page, the count and every aggregate,
    so totals always describe the same set of movements as the listing.
    """
    predicates = [MovementORM.user_id == user_id]
    if filters.start_date:
        predicates.append(MovementORM.event_date >= filters.start_date)
    if filters.end_date:
        predicates.append(MovementORM.event_date <= filters.end_date)
    if filters.category:
        predicates.append(MovementORM.category == filters.category)
    if filters.cost_type:
        predicates.append(MovementORM.cost_type == filters.cost_type)
    if filters.income_category:
        predicates.append(MovementORM.income_category == filters.income_category)
    if filters.payment_method:
        predicates.append(MovementORM.payment_method == filters.payment_method)
    if filters.direction:
        predicates.append(MovementORM.direction == filters.direction)
    if filters.search:
        predicates.append(
            MovementORM.description.icontains(filters.search, autoescape=True)
        )
    return predicates


async def find_movements(
    db, predicates: list, offset: int = 0, limit: int = 10
) -> list[Movement]:
    result = await db.execute(
        select(MovementORM, UserORM.username)
        .outerjoin(UserORM, UserORM.id == MovementORM.user_id)
        .where(*predicates)
        .order_by(MovementORM.event_date.desc(), MovementORM.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return [movement_to_domain(m, username) for m, username in result.all()]


async def count_movements(db, predicates: list) -> int:
    result = await db.execute(
        select(func.count(MovementORM.id)).where(*predicates)
    )
    return result.scalar() or 0


async def sum_by_direction(db, predicates: list) -> list:
    result = await db.execute(
        select(MovementORM.direction, func.sum(MovementORM.amount))
        .where(*predicates)
        .group_by(MovementORM.direction)
    )
    return result.all()


def _direction_sum(direction: Direction):
    return func.sum(
        case((MovementORM.direction == direction, MovementORM.amount), else_=0)
    )


async def sum_by_key(db, predicates: list, key_column) -> list:
    """(key, income sum, expense sum, count) per distinct value of key_column."""
    result = await db.execute(
        select(
            key_column,
            _direction_sum(Direction.INCOME),
            _direction_sum(Direction.EXPENSE),
            func.count(MovementORM.id),
        )
        .where(*predicates)
        .group_by(key_column)
    )
    return result.all()

