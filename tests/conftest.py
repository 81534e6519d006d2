import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./cashdesk-test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402

from cashdesk.data.base import create_tables  # noqa: E402
from cashdesk.data.repositories.user_repository import create_user  # noqa: E402


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cashdesk.db'}")
    await create_tables(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def user(db):
    return await create_user(db, "alice", "not-a-real-hash")


@pytest.fixture
async def other_user(db):
    return await create_user(db, "bob", "not-a-real-hash")
