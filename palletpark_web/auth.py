"""Authentication utilities for the web API."""

from __future__ import annotations

import datetime as dt
import logging
import os
from typing import Callable, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlmodel import Session, select

from palletpark.errors import ConflictError
from palletpark.states import UserRole

from .database import get_session
from .models import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

SECRET_KEY = os.getenv("PALLETPARK_SECRET_KEY", os.getenv("SECRET_KEY", "change-me"))
ALGORITHM = os.getenv("PALLETPARK_JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(
    os.getenv("PALLETPARK_ACCESS_TOKEN_EXPIRE_MINUTES", "60")
)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/users/login")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def authenticate_user(session: Session, username: str, password: str) -> Optional[User]:
    user = session.exec(select(User).where(User.username == username)).first()
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def create_user(
    session: Session,
    username: str,
    password: str,
    role: UserRole = UserRole.CUSTOMER,
) -> User:
    """Add a new user; the caller commits."""

    existing = session.exec(select(User).where(User.username == username)).first()
    if existing:
        raise ConflictError("Username already registered", username=username)
    user = User(
        username=username,
        hashed_password=get_password_hash(password),
        role=UserRole(role).value,
    )
    session.add(user)
    session.flush()
    return user


def ensure_admin_user(session: Session) -> Optional[User]:
    """Create the bootstrap admin named by the environment, if missing."""

    username = os.getenv("PALLETPARK_ADMIN_USERNAME")
    password = os.getenv("PALLETPARK_ADMIN_PASSWORD")
    if not username or not password:
        return None
    user = session.exec(select(User).where(User.username == username)).first()
    if user is not None:
        return user
    logger.info("Creating bootstrap admin account %s", username)
    return create_user(session, username, password, UserRole.ADMIN)


def create_access_token(data: dict, expires_delta: Optional[dt.timedelta] = None) -> str:
    to_encode = data.copy()
    expire = dt.datetime.now(dt.timezone.utc) + (
        expires_delta or dt.timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def user_id_from_token(token: str) -> Optional[int]:
    """Return the user id carried by ``token`` or ``None`` when invalid."""

    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        subject = payload.get("sub")
        if subject is None:
            return None
        return int(subject)
    except (JWTError, ValueError, TypeError):
        return None


async def get_current_user(
    session: Session = Depends(get_session), token: str = Depends(oauth2_scheme)
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    user_id = user_id_from_token(token)
    if user_id is None:
        raise credentials_exception

    user = session.exec(select(User).where(User.id == user_id)).first()
    if user is None:
        raise credentials_exception
    return user


def require_role(*roles: UserRole) -> Callable[..., User]:
    """Dependency factory admitting only users holding one of ``roles``."""

    allowed = {UserRole(role).value for role in roles}

    async def _dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions for this action",
            )
        return current_user

    return _dependency
