import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from cashdesk.config import DATABASE_URL
from cashdesk.domain.errors import InternalFailure

logger = logging.getLogger(__name__)

Base = declarative_base()
engine = create_async_engine(DATABASE_URL)
SessionLocal = async_sessionmaker(engine, autoflush=False, expire_on_commit=False)


async def create_tables(bind=engine):
    # Import the ORM modules so every table is registered on Base.metadata
    from cashdesk.data.repositories import (  # noqa: F401
        catalog_repository,
        movement_repository,
        user_repository,
    )

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    async with SessionLocal() as db:
        yield db


async def commit(db, reraise_integrity: bool = False):
    """
    Commit the unit of work. Store faults roll back and surface as
    InternalFailure; unique-constraint collisions are re-raised when the
    caller knows how to report them.
    """
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if reraise_integrity:
            raise
        logger.exception("Integrity error while committing")
        raise InternalFailure("The record violates a store constraint") from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Store commit failed")
        raise InternalFailure("The store is unavailable") from e
