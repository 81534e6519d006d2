import logging
import os
import re
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from cashdesk.config import ACCESS_TOKEN_EXPIRE_MINUTES
from cashdesk.data.base import get_db
from cashdesk.data.repositories.user_repository import (
    create_user,
    get_user_by_username,
)

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    raise RuntimeError("SECRET_KEY environment variable is not set")

ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 8

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def validate_and_normalize_username(username: str) -> str:
    username = username.strip().lower()
    if not 3 <= len(username) < 32:
        raise ValueError("Username must be between 3 and 31 characters")
    if not re.fullmatch(r"[a-z0-9\-_.]+", username):
        raise ValueError(
            "Username must only contain letters, numbers, '-', '_' and '.'"
        )
    return username


async def authenticate_user(db: AsyncSession, username: str, password: str):
    username = validate_and_normalize_username(username)
    user = await get_user_by_username(db, username)
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user


def create_access_token(data: dict, expires_delta: timedelta | None = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


async def get_current_user(
    token: str = Depends(oauth2_scheme), db: AsyncSession = Depends(get_db)
):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        username: str = payload.get("sub")
        if username is None:
            raise credentials_exception
        username = validate_and_normalize_username(username)
    except (JWTError, ValueError):
        raise credentials_exception
    user = await get_user_by_username(db, username)
    if user is None:
        raise credentials_exception
    return user


async def register_user(db: AsyncSession, username: str, password: str):
    username = validate_and_normalize_username(username)
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    if await get_user_by_username(db, username):
        raise ValueError("Username already registered")
    user = await create_user(db, username, get_password_hash(password))
    logger.info("Registered user %s", user.id)
    return user
