"""Tests for rate limiting (vault/auth/rate_limit.py).

Redis is replaced with a mock whose ``eval`` returns the script's reply.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi import HTTPException
from starlette.requests import Request
from starlette.responses import Response

from vault.auth.rate_limit import _get_rate_config, check_rate_limit
from vault.config import settings


def _request(method: str, path: str, headers: dict[str, str] | None = None) -> Request:
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": ("10.1.2.3", 5555),
        "server": ("test", 80),
        "scheme": "http",
    }
    return Request(scope)


@pytest.mark.parametrize(
    "method,path",
    [
        ("POST", "/accounts"),
        ("POST", "/accounts/"),
        ("PUT", "/accounts/verification"),
        ("POST", "/accounts/password/reset"),
        ("PUT", "/accounts/password/reset"),
        ("POST", "/sessions"),
    ],
)
def test_auth_endpoints_use_auth_bucket(method: str, path: str) -> None:
    assert _get_rate_config(method, path) == (
        settings.rate_limit_auth_capacity,
        settings.rate_limit_auth_refill_per_min,
        "auth",
    )


@pytest.mark.parametrize(
    "method,path",
    [("GET", "/accounts/me"), ("GET", "/sessions"), ("DELETE", "/sessions"), ("GET", "/health")],
)
def test_other_endpoints_use_read_bucket(method: str, path: str) -> None:
    assert _get_rate_config(method, path)[2] == "read"


@pytest.mark.asyncio
async def test_allowed_sets_headers() -> None:
    redis = AsyncMock()
    redis.eval.return_value = [1, 7, 0]
    response = Response()

    await check_rate_limit(_request("POST", "/sessions"), response, redis)

    assert response.headers["X-RateLimit-Limit"] == str(settings.rate_limit_auth_capacity)
    assert response.headers["X-RateLimit-Remaining"] == "7"
    key = redis.eval.call_args.args[2]
    assert key == "ratelimit:ip:10.1.2.3:auth"


@pytest.mark.asyncio
async def test_forwarded_ip_is_bucketed_behind_trusted_proxy() -> None:
    object.__setattr__(settings, "trusted_proxies", ["10.1.2.3", "10.0.0.1"])
    redis = AsyncMock()
    redis.eval.return_value = [1, 100, 0]

    await check_rate_limit(
        _request("GET", "/sessions", {"X-Forwarded-For": "203.0.113.9, 10.0.0.1"}),
        Response(),
        redis,
    )

    assert redis.eval.call_args.args[2] == "ratelimit:ip:203.0.113.9:read"


@pytest.mark.asyncio
async def test_forwarded_for_ignored_from_untrusted_peer() -> None:
    redis = AsyncMock()
    redis.eval.return_value = [1, 100, 0]

    await check_rate_limit(
        _request("GET", "/sessions", {"X-Forwarded-For": "203.0.113.9"}),
        Response(),
        redis,
    )

    assert redis.eval.call_args.args[2] == "ratelimit:ip:10.1.2.3:read"


@pytest.mark.asyncio
async def test_exceeded_returns_429_with_retry_after() -> None:
    redis = AsyncMock()
    redis.eval.return_value = [0, 0, 12]

    with pytest.raises(HTTPException) as exc_info:
        await check_rate_limit(_request("POST", "/accounts"), Response(), redis)

    assert exc_info.value.status_code == 429
    assert exc_info.value.detail == "Rate limit exceeded"
    assert exc_info.value.headers == {"Retry-After": "12"}
