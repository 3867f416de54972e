"""Tests for application middleware (body size limit, security headers)."""

import pytest
from httpx import AsyncClient

from vault.middleware import DEFAULT_MAX_BODY_BYTES


@pytest.mark.asyncio
async def test_security_headers_present(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.headers["strict-transport-security"] == "max-age=63072000; includeSubDomains"
    assert resp.headers["x-content-type-options"] == "nosniff"
    assert resp.headers["x-frame-options"] == "DENY"
    assert resp.headers["referrer-policy"] == "no-referrer"
    assert resp.headers["cache-control"] == "no-store"


@pytest.mark.asyncio
async def test_security_headers_on_error_response(client: AsyncClient) -> None:
    resp = await client.get("/accounts/me")
    assert resp.status_code == 401
    assert resp.headers["x-content-type-options"] == "nosniff"
    assert resp.headers["cache-control"] == "no-store"


@pytest.mark.asyncio
async def test_body_size_limit_exceeded(client: AsyncClient) -> None:
    resp = await client.post(
        "/accounts",
        content=b"x",
        headers={"Content-Length": str(DEFAULT_MAX_BODY_BYTES + 1), "Content-Type": "application/json"},
    )
    assert resp.status_code == 413


@pytest.mark.asyncio
async def test_body_size_limit_invalid_content_length(client: AsyncClient) -> None:
    resp = await client.put(
        "/accounts/password/reset?token=t",
        content=b"{}",
        headers={"Content-Length": "lots", "Content-Type": "application/json"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_body_size_limit_within_range(client: AsyncClient) -> None:
    resp = await client.post(
        "/accounts",
        json={"email": "a@x.com", "nickname": "alice", "password": "correct-horse"},
    )
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_body_size_limit_get_not_checked(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
