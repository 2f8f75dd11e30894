"""
Redemption claim lifecycle.

Status changes are checked for membership in the five-value enumeration
only. See gcx.submissions.status.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gcx.db.models import Submission, User
from gcx.submissions.status import SubmissionStatus, is_valid_status

logger = structlog.get_logger()


async def create_submission(
    db: AsyncSession,
    user_id: int,
    *,
    ticket_user_name: str,
    gc_code: str,
    gc_phone: str,
    ticket_number: str,
    upi_id: str,
    amount: Decimal,
    proof_video_url: str,
) -> Submission:
    """Insert a claim for user_id. Status always starts as pending."""
    now = datetime.now(timezone.utc)
    submission = Submission(
        user_id=user_id,
        ticket_user_name=ticket_user_name,
        gc_code=gc_code,
        gc_phone=gc_phone,
        ticket_number=ticket_number,
        upi_id=upi_id,
        amount=amount,
        proof_video_url=proof_video_url,
        status=SubmissionStatus.PENDING.value,
        created_at=now,
        updated_at=now,
    )
    db.add(submission)
    await db.flush()
    logger.info("submission_created", submission_id=submission.id, user_id=user_id, amount=str(amount))
    return submission


async def list_user_submissions(db: AsyncSession, user_id: int) -> list[Submission]:
    """A user's claims, most recent first."""
    result = await db.execute(
        select(Submission)
        .where(Submission.user_id == user_id)
        .order_by(Submission.created_at.desc(), Submission.id.desc())
    )
    return list(result.scalars().all())


async def list_all_submissions(
    db: AsyncSession,
    status: str | None = None,
) -> list[tuple[Submission, str]]:
    """Every claim with its owner's email, most recent first."""
    stmt = (
        select(Submission, User.email)
        .join(User, User.id == Submission.user_id)
        .order_by(Submission.created_at.desc(), Submission.id.desc())
    )
    if status is not None:
        stmt = stmt.where(Submission.status == status)
    result = await db.execute(stmt)
    return [(row[0], row[1]) for row in result.all()]


async def get_submission_with_email(db: AsyncSession, submission_id: int) -> tuple[Submission, str] | None:
    result = await db.execute(
        select(Submission, User.email)
        .join(User, User.id == Submission.user_id)
        .where(Submission.id == submission_id)
    )
    row = result.first()
    return (row[0], row[1]) if row else None


async def set_submission_status(db: AsyncSession, submission_id: int, status: str) -> Submission | None:
    """Write a new status and bump updated_at.

    A value outside the enumeration is a no-op: the row is returned as it is.
    Returns None if the submission does not exist.
    """
    if not is_valid_status(status):
        logger.warning("submission_status_ignored", submission_id=submission_id, status=status)
        result = await db.execute(select(Submission).where(Submission.id == submission_id))
        return result.scalar_one_or_none()

    result = await db.execute(
        update(Submission)
        .where(Submission.id == submission_id)
        .values(status=status, updated_at=datetime.now(timezone.utc))
        .returning(Submission)
        .execution_options(populate_existing=True)
    )
    submission = result.scalar_one_or_none()
    if submission is not None:
        logger.info("submission_status_updated", submission_id=submission_id, status=status)
    return submission
