from sqlalchemy import Column, DateTime, Integer, String, func, select

from cashdesk.data.base import Base


class UserORM(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


async def get_user_by_username(db, username: str):
    result = await db.execute(select(UserORM).where(UserORM.username == username))
    return result.scalars().first()


async def create_user(db, username: str, hashed_password: str):
    db_user = UserORM(username=username, hashed_password=hashed_password)
    db.add(db_user)
    await db.commit()
    await db.refresh(db_user)
    return db_user
