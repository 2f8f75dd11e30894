"""OTP router — all /api/v1/otp/* endpoints."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from gcx.database import get_session
from gcx.dependencies import get_otp_backend
from gcx.otp.backends import OtpBackend
from gcx.otp.guard import AuthContext, require_user_otp
from gcx.otp.schemas import SendOtpRequest, VerifyAdminOtpRequest, VerifyOtpRequest
from gcx.responses import ApiResponse, ok

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/otp", tags=["OTP"])


@router.post("/send", response_model=ApiResponse[dict[str, Any]])
async def send_otp(
    body: SendOtpRequest,
    db: AsyncSession = Depends(get_session),
    backend: OtpBackend = Depends(get_otp_backend),
) -> ApiResponse[dict[str, Any]]:
    """Send a passcode to a user's email."""
    result = await backend.send_user_otp(db, body.email)
    logger.info("otp_sent", email=body.email, backend=backend.name)
    return ok(result)


@router.post("/verify", response_model=ApiResponse[dict[str, Any]])
async def verify_otp(
    body: VerifyOtpRequest,
    db: AsyncSession = Depends(get_session),
    backend: OtpBackend = Depends(get_otp_backend),
) -> ApiResponse[dict[str, Any]]:
    """Verify a user's passcode. A verified code then authorizes user routes until it expires."""
    return ok(await backend.verify_user_otp(db, body.email, body.otp))


@router.post("/admin/send", response_model=ApiResponse[dict[str, Any]])
async def send_admin_otp(
    db: AsyncSession = Depends(get_session),
    backend: OtpBackend = Depends(get_otp_backend),
) -> ApiResponse[dict[str, Any]]:
    """Send a passcode to the operator address."""
    result = await backend.send_admin_otp(db)
    logger.info("admin_otp_sent", backend=backend.name)
    return ok(result)


@router.post("/admin/verify", response_model=ApiResponse[dict[str, Any]])
async def verify_admin_otp(
    body: VerifyAdminOtpRequest,
    db: AsyncSession = Depends(get_session),
    backend: OtpBackend = Depends(get_otp_backend),
) -> ApiResponse[dict[str, Any]]:
    """Check an operator passcode without consuming it."""
    return ok(await backend.verify_admin_otp(db, body.otp))


@router.get("/status", response_model=ApiResponse[dict[str, Any]])
async def otp_status(
    db: AsyncSession = Depends(get_session),
    backend: OtpBackend = Depends(get_otp_backend),
) -> ApiResponse[dict[str, Any]]:
    return ok(await backend.otp_status(db))


@router.get("/health", response_model=ApiResponse[dict[str, Any]])
async def otp_health(
    backend: OtpBackend = Depends(get_otp_backend),
) -> ApiResponse[dict[str, Any]]:
    return ok(await backend.health())


@router.post("/logout", response_model=ApiResponse[dict[str, Any]])
async def logout(
    auth: AuthContext = Depends(require_user_otp),
    db: AsyncSession = Depends(get_session),
    backend: OtpBackend = Depends(get_otp_backend),
) -> ApiResponse[dict[str, Any]]:
    """Retire the caller's passcodes."""
    retired = await backend.logout(db, auth.email or "")
    return ok({"retired": retired})
