"""Middleware tests — request ID, activity events, CORS, error envelope."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from tests.conftest import USER_HEADERS


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    """Request ID is auto-generated when not provided."""
    response = await client.get("/health")
    assert len(response.headers["x-request-id"]) == 36  # UUID format


@pytest.mark.asyncio
async def test_request_id_preserved(client: AsyncClient) -> None:
    """Custom request ID is echoed back in response."""
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


@pytest.mark.asyncio
async def test_cors_preflight_allows_otp_headers(client: AsyncClient) -> None:
    response = await client.options(
        "/api/v1/users/me",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": "X-User-Email, X-OTP",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


class TestActivityEvents:
    @pytest.mark.asyncio
    async def test_request_and_response_events(self, client: AsyncClient, app: FastAPI) -> None:
        await client.get("/version", headers={"X-Request-Id": "rid-1"})

        history = app.state.broadcaster.history()
        response_event, request_event = history[0], history[1]
        assert request_event["type"] == "request"
        assert request_event["details"] == {"method": "GET", "path": "/version", "request_id": "rid-1"}
        assert response_event["type"] == "response"
        assert response_event["details"]["status"] == 200
        assert response_event["details"]["duration_ms"] >= 0

    @pytest.mark.asyncio
    async def test_probes_are_not_mirrored(self, client: AsyncClient, app: FastAPI) -> None:
        await client.get("/health")
        assert app.state.broadcaster.buffered_count == 0

    @pytest.mark.asyncio
    async def test_unhandled_failure_still_gets_response_event(
        self, app: FastAPI, fake_session: AsyncMock
    ) -> None:
        fake_session.execute.side_effect = RuntimeError("boom")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/api/v1/users/me", headers=USER_HEADERS)

        assert response.status_code == 500
        history = app.state.broadcaster.history()
        assert [e["type"] for e in history].count("request") == 1
        responses = [e for e in history if e["type"] == "response"]
        assert len(responses) == 1
        assert responses[0]["details"]["status"] == 500
        assert responses[0]["details"]["path"] == "/api/v1/users/me"


class TestErrorEnvelope:
    @pytest.mark.asyncio
    async def test_404_returns_envelope(self, client: AsyncClient) -> None:
        response = await client.get("/nonexistent-path")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Not Found", "code": "not_found"}

    @pytest.mark.asyncio
    async def test_validation_error_is_400(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/otp/verify", json={"email": "a@b.co", "otp": "12ab"})
        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["code"] == "bad_request"
        assert data["error"].startswith("otp:")
        assert data["details"][0]["loc"] == ["body", "otp"]

    @pytest.mark.asyncio
    async def test_database_error_is_hidden(self, client: AsyncClient, app: FastAPI) -> None:
        @app.get("/_db_boom")
        async def _db_boom() -> None:
            raise OperationalError("SELECT 1", {}, ConnectionRefusedError("password=hunter2"))

        response = await client.get("/_db_boom")
        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal server error", "code": "internal_error"}
        assert "hunter2" not in response.text
        assert any(e["type"] == "error" for e in app.state.broadcaster.history())

    @pytest.mark.asyncio
    async def test_unhandled_exception_is_500(self, app: FastAPI) -> None:
        @app.get("/_boom")
        async def _boom() -> None:
            raise RuntimeError("kaboom")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/_boom")

        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"
        errors = [e for e in app.state.broadcaster.history() if e["type"] == "error"]
        assert errors and errors[0]["details"]["path"] == "/_boom"
