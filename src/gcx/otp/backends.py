"""
OTP issuance backends behind the /api/v1/otp endpoints.

ProviderOtpBackend forwards every operation to the remote OTP provider, which
generates, mails and records the codes itself. LocalOtpBackend does the same
work in-process: it writes the otps rows and mails the code through the
email service.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from gcx.db.models import ADMIN_OTP_EMAIL, OTP_TYPE_ADMIN, OTP_TYPE_USER
from gcx.email.service import EmailService
from gcx.errors import InternalError, OtpProviderError, UnauthorizedError
from gcx.otp.provider import OtpProviderClient
from gcx.otp.service import count_live_passcodes, create_passcode, mark_verified, retire_passcodes

logger = structlog.get_logger()


class OtpBackend(ABC):
    """Issue and verify passcodes for users and for the operator."""

    name: str = "abstract"

    @abstractmethod
    async def send_user_otp(self, db: AsyncSession, email: str) -> dict[str, Any]: ...

    @abstractmethod
    async def verify_user_otp(self, db: AsyncSession, email: str, otp: str) -> dict[str, Any]: ...

    @abstractmethod
    async def send_admin_otp(self, db: AsyncSession) -> dict[str, Any]: ...

    @abstractmethod
    async def verify_admin_otp(self, db: AsyncSession, otp: str) -> dict[str, Any]: ...

    @abstractmethod
    async def otp_status(self, db: AsyncSession) -> dict[str, Any]: ...

    @abstractmethod
    async def health(self) -> dict[str, Any]: ...

    async def logout(self, db: AsyncSession, email: str) -> int:
        """Retire the caller's user codes so they stop authorizing requests."""
        retired = await retire_passcodes(db, email, OTP_TYPE_USER)
        await db.commit()
        logger.info("otp_logout", email=email, retired=retired)
        return retired


class ProviderOtpBackend(OtpBackend):
    name = "provider"

    def __init__(self, client: OtpProviderClient) -> None:
        self.client = client

    async def send_user_otp(self, db: AsyncSession, email: str) -> dict[str, Any]:
        return await self.client.send_user_otp(email)

    async def verify_user_otp(self, db: AsyncSession, email: str, otp: str) -> dict[str, Any]:
        try:
            return await self.client.verify_user_otp(email, otp)
        except OtpProviderError as e:
            if e.is_rejection:
                raise UnauthorizedError(e.message) from e
            raise

    async def send_admin_otp(self, db: AsyncSession) -> dict[str, Any]:
        return await self.client.send_admin_otp()

    async def verify_admin_otp(self, db: AsyncSession, otp: str) -> dict[str, Any]:
        try:
            return await self.client.verify_admin_otp(otp)
        except OtpProviderError as e:
            if e.is_rejection:
                raise UnauthorizedError(e.message) from e
            raise

    async def otp_status(self, db: AsyncSession) -> dict[str, Any]:
        return await self.client.otp_status()

    async def health(self) -> dict[str, Any]:
        return await self.client.health()


class LocalOtpBackend(OtpBackend):
    name = "local"

    def __init__(self, email_service: EmailService, ttl_minutes: int, admin_email: str) -> None:
        self.email_service = email_service
        self.ttl_minutes = ttl_minutes
        self.admin_email = admin_email

    async def _issue(self, db: AsyncSession, identity: str, otp_type: str, deliver_to: str) -> dict[str, Any]:
        record = await create_passcode(db, identity, otp_type, self.ttl_minutes)
        await db.commit()
        if not await self.email_service.send_otp(deliver_to, record.otp, self.ttl_minutes):
            msg = "Failed to send admin OTP" if otp_type == OTP_TYPE_ADMIN else "Failed to send OTP"
            raise InternalError(msg)
        return {
            "success": True,
            "message": "OTP sent successfully",
            "expires_in": self.ttl_minutes * 60,
        }

    async def _verify(self, db: AsyncSession, identity: str, otp: str, otp_type: str) -> dict[str, Any]:
        verified = await mark_verified(db, identity, otp, otp_type)
        if not verified:
            await db.rollback()
            raise UnauthorizedError("Invalid or expired OTP")
        await db.commit()
        return {"success": True, "verified": True, "message": "OTP verified successfully"}

    async def send_user_otp(self, db: AsyncSession, email: str) -> dict[str, Any]:
        return await self._issue(db, email, OTP_TYPE_USER, email)

    async def verify_user_otp(self, db: AsyncSession, email: str, otp: str) -> dict[str, Any]:
        return await self._verify(db, email, otp, OTP_TYPE_USER)

    async def send_admin_otp(self, db: AsyncSession) -> dict[str, Any]:
        return await self._issue(db, ADMIN_OTP_EMAIL, OTP_TYPE_ADMIN, self.admin_email)

    async def verify_admin_otp(self, db: AsyncSession, otp: str) -> dict[str, Any]:
        return await self._verify(db, ADMIN_OTP_EMAIL, otp, OTP_TYPE_ADMIN)

    async def otp_status(self, db: AsyncSession) -> dict[str, Any]:
        counts = await count_live_passcodes(db)
        return {
            "success": True,
            "active_user_otps": counts[OTP_TYPE_USER],
            "active_admin_otps": counts[OTP_TYPE_ADMIN],
            "ttl_minutes": self.ttl_minutes,
        }

    async def health(self) -> dict[str, Any]:
        return {"status": "ok", "backend": self.name}


def create_backend(
    kind: str,
    client: OtpProviderClient | None,
    email_service: EmailService | None,
    ttl_minutes: int,
    admin_email: str,
) -> OtpBackend:
    """Build the OTP backend named by configuration."""
    kind = kind.lower()
    if kind == "provider":
        if client is None:
            msg = "Provider OTP backend requires an OTP provider client"
            raise ValueError(msg)
        return ProviderOtpBackend(client)
    if kind == "local":
        if email_service is None:
            msg = "Local OTP backend requires an email service"
            raise ValueError(msg)
        return LocalOtpBackend(email_service, ttl_minutes, admin_email)
    msg = f"Unsupported OTP backend: {kind}"
    raise ValueError(msg)
