"""User and operator conversations against PostgreSQL."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from httpx import AsyncClient

from tests.integration.conftest import admin_code, sign_in


@pytest.mark.asyncio
async def test_user_sees_own_thread_oldest_first(pg_client: AsyncClient, mailer: MagicMock) -> None:
    user_id, headers = await sign_in(pg_client, mailer, "asha@example.com")

    await pg_client.post(f"/api/v1/messages/{user_id}", json={"content": "first"}, headers=headers)
    reply = await pg_client.post(f"/api/v1/admin/users/{user_id}/messages", json={"content": "second"})
    assert reply.status_code == 201
    assert reply.json()["data"]["sender"] == "admin"
    await pg_client.post(f"/api/v1/messages/{user_id}", json={"content": "third"}, headers=headers)

    thread = (await pg_client.get(f"/api/v1/messages/{user_id}", headers=headers)).json()["data"]
    assert [m["content"] for m in thread] == ["first", "second", "third"]
    assert [m["sender"] for m in thread] == ["user", "admin", "user"]

    operator_view = (await pg_client.get(f"/api/v1/admin/users/{user_id}/messages")).json()["data"]
    assert [m["content"] for m in operator_view] == ["third", "second", "first"]


@pytest.mark.asyncio
async def test_cross_user_access_forbidden(pg_client: AsyncClient, mailer: MagicMock) -> None:
    user_a, headers_a = await sign_in(pg_client, mailer, "a@example.com", "A")
    user_b, headers_b = await sign_in(pg_client, mailer, "b@example.com", "B")
    await pg_client.post(f"/api/v1/messages/{user_b}", json={"content": "private"}, headers=headers_b)

    response = await pg_client.get(f"/api/v1/messages/{user_b}", headers=headers_a)
    assert response.status_code == 403

    response = await pg_client.post(f"/api/v1/messages/{user_b}", json={"content": "spoof"}, headers=headers_a)
    assert response.status_code == 403

    response = await pg_client.get(f"/api/v1/submissions/user/{user_b}", headers=headers_a)
    assert response.status_code == 403

    own = (await pg_client.get(f"/api/v1/messages/{user_a}", headers=headers_a)).json()["data"]
    assert own == []


@pytest.mark.asyncio
async def test_operator_inbox_newest_first(pg_client: AsyncClient, mailer: MagicMock) -> None:
    user_a, headers_a = await sign_in(pg_client, mailer, "a@example.com", "A")
    user_b, headers_b = await sign_in(pg_client, mailer, "b@example.com", "B")
    await pg_client.post(f"/api/v1/messages/{user_a}", json={"content": "from a"}, headers=headers_a)
    await pg_client.post(f"/api/v1/messages/{user_b}", json={"content": "from b"}, headers=headers_b)

    inbox = (await pg_client.get("/api/v1/admin/messages")).json()["data"]
    assert [(m["content"], m["user_email"]) for m in inbox] == [
        ("from b", "b@example.com"),
        ("from a", "a@example.com"),
    ]


@pytest.mark.asyncio
async def test_reply_to_missing_user(pg_client: AsyncClient) -> None:
    response = await pg_client.post("/api/v1/admin/users/424242/messages", json={"content": "hello?"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_message(pg_client: AsyncClient, mailer: MagicMock) -> None:
    user_id, headers = await sign_in(pg_client, mailer, "asha@example.com")
    message = (
        await pg_client.post(f"/api/v1/messages/{user_id}", json={"content": "oops"}, headers=headers)
    ).json()["data"]

    code = await admin_code(pg_client, mailer)
    response = await pg_client.delete(f"/api/v1/admin/messages/{message['id']}", headers={"X-Admin-OTP": code})
    assert response.status_code == 200

    assert (await pg_client.get(f"/api/v1/messages/{user_id}", headers=headers)).json()["data"] == []
