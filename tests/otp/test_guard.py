"""Tests for the OTP authorization guards, called directly."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
import structlog

from gcx.errors import BadRequestError, UnauthorizedError
from gcx.otp.guard import ROLE_ADMIN, ROLE_USER, operator_access, require_admin_otp, require_user_otp
from tests.conftest import make_settings, make_verifier


@pytest.fixture(autouse=True)
def _clear_log_context() -> None:
    structlog.contextvars.clear_contextvars()


class TestUserGuard:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(("email", "otp"), [(None, "123456"), ("a@b.co", None), ("", ""), (None, None)])
    async def test_missing_headers(self, email: str | None, otp: str | None) -> None:
        verifier = make_verifier()
        with pytest.raises(BadRequestError, match="Email and OTP are required"):
            await require_user_otp(x_user_email=email, x_otp=otp, db=AsyncMock(), verifier=verifier)
        verifier.verify_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rejected(self) -> None:
        verifier = make_verifier(user_ok=False)
        with pytest.raises(UnauthorizedError, match="Invalid or expired OTP"):
            await require_user_otp(x_user_email="a@b.co", x_otp="123456", db=AsyncMock(), verifier=verifier)

    @pytest.mark.asyncio
    async def test_accepted_normalizes_email(self) -> None:
        verifier = make_verifier()
        db = AsyncMock()
        auth = await require_user_otp(x_user_email=" Seller@Example.COM ", x_otp=" 123456 ", db=db, verifier=verifier)

        assert auth.role == ROLE_USER
        assert auth.email == "seller@example.com"
        assert auth.is_admin is False
        verifier.verify_user.assert_awaited_once_with(db, "seller@example.com", "123456")
        assert structlog.contextvars.get_contextvars()["auth_email"] == "seller@example.com"

    @pytest.mark.asyncio
    async def test_repeatable(self) -> None:
        """The same user code authorizes any number of requests."""
        verifier = make_verifier()
        for _ in range(3):
            await require_user_otp(x_user_email="a@b.co", x_otp="123456", db=AsyncMock(), verifier=verifier)
        assert verifier.verify_user.await_count == 3


class TestAdminGuard:
    @pytest.mark.asyncio
    async def test_missing_header(self) -> None:
        with pytest.raises(BadRequestError, match="Admin OTP is required"):
            await require_admin_otp(x_admin_otp=None, db=AsyncMock(), verifier=make_verifier())

    @pytest.mark.asyncio
    async def test_rejected(self) -> None:
        with pytest.raises(UnauthorizedError, match="Invalid or expired admin OTP"):
            await require_admin_otp(x_admin_otp="654321", db=AsyncMock(), verifier=make_verifier(admin_ok=False))

    @pytest.mark.asyncio
    async def test_accepted(self) -> None:
        auth = await require_admin_otp(x_admin_otp="654321", db=AsyncMock(), verifier=make_verifier())
        assert auth.role == ROLE_ADMIN
        assert auth.is_admin is True
        assert auth.email is None


class TestOperatorAccess:
    @pytest.mark.asyncio
    async def test_open_by_default(self) -> None:
        verifier = make_verifier(admin_ok=False)
        result = await operator_access(x_admin_otp=None, db=AsyncMock(), verifier=verifier, settings=make_settings())
        assert result is None
        verifier.verify_admin.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_gated_requires_code(self) -> None:
        settings = make_settings(admin_gate_all=True)
        with pytest.raises(BadRequestError, match="Admin OTP is required"):
            await operator_access(x_admin_otp=None, db=AsyncMock(), verifier=make_verifier(), settings=settings)

    @pytest.mark.asyncio
    async def test_gated_consumes_code(self) -> None:
        settings = make_settings(admin_gate_all=True)
        verifier = make_verifier()
        auth = await operator_access(x_admin_otp="654321", db=AsyncMock(), verifier=verifier, settings=settings)
        assert auth is not None and auth.is_admin
        verifier.verify_admin.assert_awaited_once()
