"""Submission router — user-facing /api/v1/submissions/* endpoints.

Operator endpoints live in gcx.admin.router.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from gcx.auth.service import get_user_by_email
from gcx.database import get_session
from gcx.db.models import User
from gcx.errors import ForbiddenError, NotFoundError
from gcx.otp.guard import AuthContext, require_user_otp
from gcx.responses import ApiResponse, ok
from gcx.submissions.schemas import SubmissionCreateRequest, SubmissionResponse
from gcx.submissions.service import create_submission, list_user_submissions

router = APIRouter(prefix="/api/v1/submissions", tags=["Submissions"])


async def _caller(db: AsyncSession, auth: AuthContext) -> User:
    user = await get_user_by_email(db, auth.email or "")
    if user is None:
        raise NotFoundError("User not found")
    return user


@router.post("", response_model=ApiResponse[SubmissionResponse], status_code=201)
async def submit_claim(
    body: SubmissionCreateRequest,
    auth: AuthContext = Depends(require_user_otp),
    db: AsyncSession = Depends(get_session),
) -> ApiResponse[SubmissionResponse]:
    """File a redemption claim for the OTP-proven caller."""
    user = await _caller(db, auth)
    submission = await create_submission(db, user.id, **body.model_dump())
    await db.commit()
    return ok(SubmissionResponse.model_validate(submission).model_copy(update={"user_email": user.email}))


@router.get("/user/{user_id}", response_model=ApiResponse[list[SubmissionResponse]])
async def list_my_claims(
    user_id: int,
    auth: AuthContext = Depends(require_user_otp),
    db: AsyncSession = Depends(get_session),
) -> ApiResponse[list[SubmissionResponse]]:
    """A user's own claims, newest first. Other users' ids are forbidden."""
    user = await _caller(db, auth)
    if user.id != user_id:
        raise ForbiddenError("You can only view your own submissions")
    submissions = await list_user_submissions(db, user_id)
    return ok([SubmissionResponse.model_validate(s) for s in submissions])
