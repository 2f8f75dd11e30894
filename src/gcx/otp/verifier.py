"""
Passcode verification backends used by the authorization guards.

StorePasscodeVerifier reads the otps table directly. ProviderPasscodeVerifier
asks the OTP provider instead. The guards only see the PasscodeVerifier
interface; which one is wired in is decided by GCX_OTP_VERIFIER.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from gcx.errors import OtpProviderError
from gcx.otp.provider import OtpProviderClient
from gcx.otp.service import consume_admin_passcode, find_verified_user_passcode

logger = structlog.get_logger()


class PasscodeVerifier(ABC):
    """Answers "has this caller recently proven a passcode?"."""

    name: str = "abstract"

    @abstractmethod
    async def verify_user(self, db: AsyncSession, email: str, code: str) -> bool:
        """True if (email, code) is a verified, unexpired user code. Must not consume it."""

    @abstractmethod
    async def verify_admin(self, db: AsyncSession, code: str) -> bool:
        """True at most once per admin code: a success consumes it."""


class StorePasscodeVerifier(PasscodeVerifier):
    """Direct lookups against the otps table."""

    name = "store"

    async def verify_user(self, db: AsyncSession, email: str, code: str) -> bool:
        return await find_verified_user_passcode(db, email, code) is not None

    async def verify_admin(self, db: AsyncSession, code: str) -> bool:
        consumed = await consume_admin_passcode(db, code)
        if consumed:
            # Persist consumption before the protected handler runs.
            await db.commit()
        return consumed


def _accepted(data: dict[str, Any]) -> bool:
    return data.get("success", True) is not False and data.get("verified", True) is not False


class ProviderPasscodeVerifier(PasscodeVerifier):
    """Delegates to the provider's verify endpoints.

    A 4xx from the provider is a rejection. Anything else that fails
    (timeouts, 5xx, garbage bodies) propagates as OtpProviderError.
    """

    name = "provider"

    def __init__(self, client: OtpProviderClient) -> None:
        self.client = client

    async def verify_user(self, db: AsyncSession, email: str, code: str) -> bool:
        try:
            data = await self.client.verify_user_otp(email, code)
        except OtpProviderError as e:
            if e.is_rejection:
                logger.info("otp_provider_rejected", variant="user", email=email)
                return False
            raise
        return _accepted(data)

    async def verify_admin(self, db: AsyncSession, code: str) -> bool:
        try:
            data = await self.client.verify_admin_otp(code)
        except OtpProviderError as e:
            if e.is_rejection:
                logger.info("otp_provider_rejected", variant="admin")
                return False
            raise
        return _accepted(data)


def create_verifier(kind: str, client: OtpProviderClient | None) -> PasscodeVerifier:
    """Build the verifier named by configuration."""
    kind = kind.lower()
    if kind == "store":
        return StorePasscodeVerifier()
    if kind == "provider":
        if client is None:
            msg = "Provider verifier requires an OTP provider client"
            raise ValueError(msg)
        return ProviderPasscodeVerifier(client)
    msg = f"Unsupported OTP verifier: {kind}"
    raise ValueError(msg)
