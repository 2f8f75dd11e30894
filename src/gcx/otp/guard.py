"""
OTP authorization guards.

Protected routes depend on one of these instead of reading headers
themselves. The AuthContext they return is the only identity a handler
may use.

User variant: X-User-Email + X-OTP. Repeatable, never mutates the code.
Admin variant: X-Admin-OTP. One-shot, the code is consumed on success.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from gcx.config import Settings
from gcx.database import get_session
from gcx.dependencies import get_app_settings, get_verifier
from gcx.errors import BadRequestError, UnauthorizedError
from gcx.otp.verifier import PasscodeVerifier

logger = structlog.get_logger()

ROLE_USER = "user"
ROLE_ADMIN = "admin"


@dataclass(frozen=True)
class AuthContext:
    """Proof that the caller passed an OTP check."""

    role: str
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


async def require_user_otp(
    x_user_email: str | None = Header(None),
    x_otp: str | None = Header(None),
    db: AsyncSession = Depends(get_session),
    verifier: PasscodeVerifier = Depends(get_verifier),
) -> AuthContext:
    """Require a verified, unexpired user passcode for the given email."""
    if not x_user_email or not x_otp:
        raise BadRequestError("Email and OTP are required")

    email = x_user_email.strip().lower()
    if not await verifier.verify_user(db, email, x_otp.strip()):
        logger.info("user_otp_rejected", email=email, verifier=verifier.name)
        raise UnauthorizedError("Invalid or expired OTP")

    structlog.contextvars.bind_contextvars(auth_email=email)
    return AuthContext(role=ROLE_USER, email=email)


async def require_admin_otp(
    x_admin_otp: str | None = Header(None),
    db: AsyncSession = Depends(get_session),
    verifier: PasscodeVerifier = Depends(get_verifier),
) -> AuthContext:
    """Require an unused admin passcode and consume it."""
    if not x_admin_otp:
        raise BadRequestError("Admin OTP is required")

    if not await verifier.verify_admin(db, x_admin_otp.strip()):
        logger.info("admin_otp_rejected", verifier=verifier.name)
        raise UnauthorizedError("Invalid or expired admin OTP")

    structlog.contextvars.bind_contextvars(auth_role=ROLE_ADMIN)
    return AuthContext(role=ROLE_ADMIN)


async def operator_access(
    x_admin_otp: str | None = Header(None),
    db: AsyncSession = Depends(get_session),
    verifier: PasscodeVerifier = Depends(get_verifier),
    settings: Settings = Depends(get_app_settings),
) -> AuthContext | None:
    """Gate for ungated-by-default operator routes (reads, replies).

    Open unless GCX_ADMIN_GATE_ALL is set, in which case it behaves exactly
    like require_admin_otp.
    """
    if not settings.admin_gate_all:
        return None
    return await require_admin_otp(x_admin_otp=x_admin_otp, db=db, verifier=verifier)
