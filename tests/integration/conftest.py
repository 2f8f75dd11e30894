"""Fixtures for tests that need PostgreSQL.

Point GCX_TEST_DATABASE_URL at a scratch database. When it cannot be reached
every test in this package is skipped.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

import gcx.db.models  # noqa: F401
from gcx.database import close_db, get_engine, get_session, init_db
from gcx.db.base import Base
from gcx.main import create_app
from gcx.otp.backends import LocalOtpBackend
from gcx.otp.verifier import StorePasscodeVerifier
from tests.conftest import TEST_DATABASE_URL, make_settings

OPERATOR_EMAIL = "ops@example.com"
PASSWORD = "s3cret-pass"


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh schema and empty tables, or skip."""
    await init_db(TEST_DATABASE_URL)
    try:
        async with get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            await conn.execute(text("TRUNCATE TABLE messages, submissions, otps, users RESTART IDENTITY CASCADE"))
    except Exception as exc:  # noqa: BLE001
        await close_db()
        pytest.skip(f"PostgreSQL not available: {exc}")
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for test assertions."""
    async for session in get_session():
        yield session
        break


@pytest.fixture
def mailer() -> MagicMock:
    """Stands in for the email service; the last code sent is in send_otp.await_args."""
    service = MagicMock()
    service.send_otp = AsyncMock(return_value=True)
    return service


@pytest.fixture
def pg_app(database: None, mailer: MagicMock) -> FastAPI:
    app = create_app(make_settings(otp_backend="local", otp_verifier="store", admin_email=OPERATOR_EMAIL))
    app.state.otp_backend = LocalOtpBackend(mailer, ttl_minutes=60, admin_email=OPERATOR_EMAIL)
    app.state.verifier = StorePasscodeVerifier()
    return app


@pytest_asyncio.fixture
async def pg_client(pg_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=pg_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def sign_in(
    client: AsyncClient, mailer: MagicMock, email: str, name: str = "Seller"
) -> tuple[int, dict[str, str]]:
    """Register, log in, verify the mailed code. Returns (user_id, user headers)."""
    response = await client.post("/api/v1/auth/register", json={"name": name, "email": email, "password": PASSWORD})
    assert response.status_code == 201, response.text
    user_id = response.json()["data"]["id"]

    response = await client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
    assert response.json()["data"]["otp_sent"] is True
    code = mailer.send_otp.await_args.args[1]

    response = await client.post("/api/v1/otp/verify", json={"email": email, "otp": code})
    assert response.status_code == 200, response.text
    return user_id, {"X-User-Email": email, "X-OTP": code}


async def admin_code(client: AsyncClient, mailer: MagicMock) -> str:
    """Request a fresh operator code and return it."""
    response = await client.post("/api/v1/otp/admin/send")
    assert response.status_code == 200, response.text
    assert mailer.send_otp.await_args.args[0] == OPERATOR_EMAIL
    return mailer.send_otp.await_args.args[1]
