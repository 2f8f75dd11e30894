"""User router — /api/v1/users/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from gcx.auth.schemas import UserResponse
from gcx.auth.service import get_user_by_email
from gcx.database import get_session
from gcx.errors import NotFoundError
from gcx.otp.guard import AuthContext, require_user_otp
from gcx.responses import ApiResponse, ok

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_profile(
    auth: AuthContext = Depends(require_user_otp),
    db: AsyncSession = Depends(get_session),
) -> ApiResponse[UserResponse]:
    """Profile of the OTP-proven caller."""
    user = await get_user_by_email(db, auth.email or "")
    if user is None:
        raise NotFoundError("User not found")
    return ok(UserResponse.model_validate(user))
