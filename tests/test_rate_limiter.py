"""In-memory path of the webhook rate limiter."""

import asyncio

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from onboarding_crm import rate_limiter


@pytest.fixture(autouse=True)
def fresh_cache():
    rate_limiter.memory_cache.clear()
    yield
    rate_limiter.memory_cache.clear()


def make_request(ip="10.0.0.1"):
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/webhooks/test",
        "headers": [(b"x-forwarded-for", ip.encode())],
        "client": ("127.0.0.1", 1234),
        "query_string": b"",
    }
    return Request(scope)


class TestCheckRateLimit:
    def test_window_limit(self):
        results = [rate_limiter.check_rate_limit("test:key", 2, 60)[0] for _ in range(3)]
        assert results == [True, True, False]

    def test_keys_are_independent(self):
        rate_limiter.check_rate_limit("test:a", 1, 60)
        assert rate_limiter.check_rate_limit("test:b", 1, 60)[0] is True


class TestDependency:
    def test_exceeded_raises_429(self, monkeypatch):
        monkeypatch.setattr(rate_limiter, "RATE_LIMIT_ENABLED", True)
        limiter = rate_limiter.create_rate_limiter(limit=1, window_seconds=60, key_prefix="t", use_ip=True)

        asyncio.run(limiter(make_request()))
        with pytest.raises(HTTPException) as exc:
            asyncio.run(limiter(make_request()))
        assert exc.value.status_code == 429
        assert exc.value.headers["Retry-After"]

        # Another forwarded IP has its own window
        asyncio.run(limiter(make_request("10.0.0.2")))

    def test_disabled_never_limits(self):
        limiter = rate_limiter.create_rate_limiter(limit=0, window_seconds=60, key_prefix="off")
        for _ in range(3):
            asyncio.run(limiter(make_request()))
