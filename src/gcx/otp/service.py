"""
Passcode persistence.

All lookups compare expires_at against the database clock so that every
worker agrees on expiry.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gcx.db.models import OTP_TYPE_ADMIN, OTP_TYPE_USER, OneTimePasscode

logger = structlog.get_logger()


def generate_otp() -> str:
    """Return a random 6-digit numeric code (100000-999999)."""
    return str(100000 + secrets.randbelow(900000))


async def create_passcode(
    db: AsyncSession,
    email: str,
    otp_type: str,
    ttl_minutes: int,
    code: str | None = None,
) -> OneTimePasscode:
    """Store a new passcode. Earlier live codes for the same identity are retired first."""
    await retire_passcodes(db, email, otp_type)
    now = datetime.now(timezone.utc)
    record = OneTimePasscode(
        email=email,
        otp=code or generate_otp(),
        type=otp_type,
        created_at=now,
        expires_at=now + timedelta(minutes=ttl_minutes),
        verified=False,
        is_used=False,
    )
    db.add(record)
    await db.flush()
    logger.info("otp_created", otp_id=record.id, email=email, type=otp_type)
    return record


async def retire_passcodes(db: AsyncSession, email: str, otp_type: str = OTP_TYPE_USER) -> int:
    """Mark every live code for an identity as used and expire it now.

    Returns the number of codes retired. Rows are kept for audit.
    """
    now = func.now()
    result = await db.execute(
        update(OneTimePasscode)
        .where(
            OneTimePasscode.email == email,
            OneTimePasscode.type == otp_type,
            OneTimePasscode.expires_at > now,
        )
        .values(is_used=True, expires_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def mark_verified(db: AsyncSession, email: str, code: str, otp_type: str = OTP_TYPE_USER) -> bool:
    """Flag a live, unused code as verified. Returns False if nothing matched."""
    result = await db.execute(
        update(OneTimePasscode)
        .where(
            OneTimePasscode.email == email,
            OneTimePasscode.otp == code,
            OneTimePasscode.type == otp_type,
            OneTimePasscode.is_used.is_(False),
            OneTimePasscode.expires_at > func.now(),
        )
        .values(verified=True)
        .returning(OneTimePasscode.id)
        .execution_options(synchronize_session=False)
    )
    return result.first() is not None


async def find_verified_user_passcode(db: AsyncSession, email: str, code: str) -> OneTimePasscode | None:
    """Find a verified, unexpired user code. Read-only: the same code may be checked again."""
    result = await db.execute(
        select(OneTimePasscode)
        .where(
            OneTimePasscode.email == email,
            OneTimePasscode.otp == code,
            OneTimePasscode.type == OTP_TYPE_USER,
            OneTimePasscode.verified.is_(True),
            OneTimePasscode.expires_at > func.now(),
        )
        .order_by(OneTimePasscode.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def consume_admin_passcode(db: AsyncSession, code: str) -> bool:
    """Consume an admin code in one conditional UPDATE.

    The candidate row is picked with FOR UPDATE SKIP LOCKED and re-checked in
    the UPDATE itself, so of several concurrent callers presenting the same
    code exactly one gets a row back.
    """
    candidate = (
        select(OneTimePasscode.id)
        .where(
            OneTimePasscode.type == OTP_TYPE_ADMIN,
            OneTimePasscode.otp == code,
            OneTimePasscode.is_used.is_(False),
            OneTimePasscode.expires_at > func.now(),
        )
        .order_by(OneTimePasscode.created_at.desc())
        .limit(1)
        .with_for_update(skip_locked=True)
        .scalar_subquery()
    )
    result = await db.execute(
        update(OneTimePasscode)
        .where(OneTimePasscode.id == candidate, OneTimePasscode.is_used.is_(False))
        .values(is_used=True)
        .returning(OneTimePasscode.id)
        .execution_options(synchronize_session=False)
    )
    consumed_id = result.scalar_one_or_none()
    if consumed_id is None:
        return False
    logger.info("admin_otp_consumed", otp_id=consumed_id)
    return True


async def count_live_passcodes(db: AsyncSession) -> dict[str, int]:
    """Live (unexpired, unused) code counts per type."""
    result = await db.execute(
        select(OneTimePasscode.type, func.count())
        .where(OneTimePasscode.is_used.is_(False), OneTimePasscode.expires_at > func.now())
        .group_by(OneTimePasscode.type)
    )
    counts = {OTP_TYPE_USER: 0, OTP_TYPE_ADMIN: 0}
    for otp_type, n in result.all():
        counts[otp_type] = n
    return counts
