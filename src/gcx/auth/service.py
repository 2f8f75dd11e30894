"""
User accounts: registration, password authentication and lookups.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gcx.auth.password import hash_password, validate_password, verify_password
from gcx.db.models import User

logger = structlog.get_logger()


class EmailTakenError(ValueError):
    """Registration attempted with an email that already has an account."""


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower().strip()))
    return result.scalar_one_or_none()


async def list_users(db: AsyncSession) -> list[User]:
    """All users, newest first."""
    result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Registration / login
# ---------------------------------------------------------------------------


async def register_user(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    min_length: int = 6,
    max_length: int = 128,
) -> User:
    """
    Create a user with an argon2id password hash.

    Raises:
        PasswordPolicyError: If the password length is out of bounds.
        EmailTakenError: If the email is already registered.
    """
    validate_password(password, min_length, max_length)

    email = email.lower().strip()
    if await get_user_by_email(db, email) is not None:
        msg = "Email already registered"
        raise EmailTakenError(msg)

    user = User(
        name=name,
        email=email,
        password=hash_password(password),
        created_at=datetime.now(timezone.utc),
    )
    db.add(user)
    await db.flush()
    logger.info("user_created", user_id=user.id, email=email)
    return user


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User | None:
    """Return the user if the password matches, else None."""
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password):
        return None
    return user


async def delete_user(db: AsyncSession, user_id: int) -> bool:
    """Delete a user. Messages and submissions go with it (ON DELETE CASCADE).

    Returns False if there was no such user.
    """
    result = await db.execute(delete(User).where(User.id == user_id).returning(User.id))
    deleted = result.scalar_one_or_none() is not None
    if deleted:
        logger.info("user_deleted", user_id=user_id)
    return deleted
