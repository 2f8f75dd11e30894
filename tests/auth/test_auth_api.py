"""Registration, login and profile endpoint tests (service layer mocked)."""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from gcx.auth.service import EmailTakenError
from gcx.errors import OtpProviderError
from tests.conftest import USER_HEADERS


def _user(**overrides: object) -> SimpleNamespace:
    values = {
        "id": 7,
        "name": "Asha",
        "email": "seller@example.com",
        "password": "$argon2id$...",
        "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestRegister:
    @pytest.mark.asyncio
    async def test_created(
        self, client: AsyncClient, fake_session: AsyncMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        register = AsyncMock(return_value=_user())
        monkeypatch.setattr("gcx.auth.router.register_user", register)

        response = await client.post(
            "/api/v1/auth/register",
            json={"name": " Asha ", "email": "Seller@Example.com", "password": "s3cret!"},
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["email"] == "seller@example.com"
        assert "password" not in data
        assert register.await_args.kwargs["name"] == "Asha"
        assert register.await_args.kwargs["email"] == "seller@example.com"
        fake_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_email_taken(
        self, client: AsyncClient, fake_session: AsyncMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(
            "gcx.auth.router.register_user", AsyncMock(side_effect=EmailTakenError("Email already registered"))
        )
        response = await client.post(
            "/api/v1/auth/register", json={"name": "A", "email": "a@b.co", "password": "s3cret!"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Email already registered"
        fake_session.commit.assert_not_awaited()


class TestLogin:
    @pytest.mark.asyncio
    async def test_bad_credentials(
        self, client: AsyncClient, fake_backend: AsyncMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("gcx.auth.router.authenticate_user", AsyncMock(return_value=None))
        response = await client.post("/api/v1/auth/login", json={"email": "a@b.co", "password": "nope"})
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"
        fake_backend.send_user_otp.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sends_otp(
        self, client: AsyncClient, fake_backend: AsyncMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("gcx.auth.router.authenticate_user", AsyncMock(return_value=_user()))
        response = await client.post("/api/v1/auth/login", json={"email": "seller@example.com", "password": "s3cret!"})
        assert response.status_code == 200
        assert response.json()["data"]["otp_sent"] is True
        assert fake_backend.send_user_otp.await_args.args[1] == "seller@example.com"

    @pytest.mark.asyncio
    async def test_otp_failure_still_logs_in(
        self, client: AsyncClient, fake_backend: AsyncMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("gcx.auth.router.authenticate_user", AsyncMock(return_value=_user()))
        fake_backend.send_user_otp.side_effect = OtpProviderError("Failed to send OTP")
        response = await client.post("/api/v1/auth/login", json={"email": "seller@example.com", "password": "s3cret!"})
        assert response.status_code == 200
        assert response.json()["data"]["otp_sent"] is False


class TestProfile:
    @pytest.mark.asyncio
    async def test_me(self, client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
        lookup = AsyncMock(return_value=_user())
        monkeypatch.setattr("gcx.users.router.get_user_by_email", lookup)
        response = await client.get("/api/v1/users/me", headers=USER_HEADERS)
        assert response.status_code == 200
        assert response.json()["data"]["id"] == 7
        assert lookup.await_args.args[1] == "seller@example.com"

    @pytest.mark.asyncio
    async def test_me_requires_headers(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/users/me")
        assert response.status_code == 400
        assert response.json()["error"] == "Email and OTP are required"

    @pytest.mark.asyncio
    async def test_me_rejected_code(self, client: AsyncClient, fake_verifier: AsyncMock) -> None:
        fake_verifier.verify_user.return_value = False
        response = await client.get("/api/v1/users/me", headers=USER_HEADERS)
        assert response.status_code == 401
