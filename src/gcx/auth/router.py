"""Authentication router — all /api/v1/auth/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from gcx.auth.password import PasswordPolicyError
from gcx.auth.schemas import LoginRequest, LoginResponse, RegisterRequest, UserResponse
from gcx.auth.service import EmailTakenError, authenticate_user, register_user
from gcx.config import Settings
from gcx.database import get_session
from gcx.dependencies import get_app_settings, get_otp_backend
from gcx.errors import AppError, BadRequestError, UnauthorizedError
from gcx.otp.backends import OtpBackend
from gcx.responses import ApiResponse, ok

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


@router.post("/register", response_model=ApiResponse[UserResponse], status_code=201)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[UserResponse]:
    """Register with name + email + password."""
    try:
        user = await register_user(
            db,
            name=body.name,
            email=body.email,
            password=body.password,
            min_length=settings.password_min_length,
            max_length=settings.password_max_length,
        )
    except (PasswordPolicyError, EmailTakenError) as e:
        raise BadRequestError(str(e)) from e

    await db.commit()
    return ok(UserResponse.model_validate(user))


@router.post("/login", response_model=ApiResponse[LoginResponse])
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
    backend: OtpBackend = Depends(get_otp_backend),
) -> ApiResponse[LoginResponse]:
    """Check the password, then mail a passcode that the client verifies next."""
    user = await authenticate_user(db, body.email, body.password)
    if user is None:
        raise UnauthorizedError("Invalid email or password")

    profile = UserResponse.model_validate(user)
    otp_sent = True
    try:
        await backend.send_user_otp(db, user.email)
    except AppError:
        otp_sent = False
        logger.exception("login_otp_send_failed", user_id=user.id)

    return ok(LoginResponse(user=profile, otp_sent=otp_sent))
