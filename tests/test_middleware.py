"""Tests for HTTP middleware — security headers, request IDs, rate limiting.

Learn: Redis isn't running in tests, so the rate limiter steps aside
unless a FakeRedis is patched into tasktrack.cache._redis.
"""

import pytest

from tasktrack.client import auth_headers


@pytest.mark.asyncio
async def test_security_headers(client):
    r = await client.get("/api/health")
    assert r.status_code == 200
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert r.headers["Cache-Control"] == "no-store"


@pytest.mark.asyncio
async def test_no_hsts_on_http(client):
    r = await client.get("/api/health")
    assert "Strict-Transport-Security" not in r.headers


@pytest.mark.asyncio
async def test_request_id_generated(client):
    r1 = await client.get("/api/test")
    r2 = await client.get("/api/test")
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    r = await client.get("/api/test", headers={"X-Request-ID": "trace-12345"})
    assert r.headers["X-Request-ID"] == "trace-12345"


@pytest.mark.asyncio
async def test_error_responses_get_headers_too(client):
    r = await client.get("/api/todos", headers=auth_headers("bogus"))
    assert r.status_code == 401
    assert "X-Request-ID" in r.headers
    assert r.headers["X-Content-Type-Options"] == "nosniff"


@pytest.mark.asyncio
async def test_rate_limit_skipped_without_redis(client):
    for _ in range(15):
        r = await client.post("/api/login", json={"email": "x@example.com", "password": "nope"})
        assert r.status_code == 401
    assert "X-RateLimit-Limit" not in r.headers


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the rate limiter."""

    def __init__(self, fail: bool = False):
        self.counts: dict[str, int] = {}
        self.expiries: dict[str, int] = {}
        self.fail = fail

    async def ping(self):
        return True

    async def incr(self, key: str) -> int:
        if self.fail:
            raise ConnectionError("redis went away")
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    async def expire(self, key: str, seconds: int):
        self.expiries[key] = seconds
        return True


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr("tasktrack.cache._redis", fake)
    return fake


async def _bad_login(client):
    return await client.post("/api/login", json={"email": "x@example.com", "password": "nope"})


@pytest.mark.asyncio
async def test_rate_limit_auth_budget(client, fake_redis):
    for i in range(10):
        r = await _bad_login(client)
        assert r.status_code == 401
        assert r.headers["X-RateLimit-Limit"] == "10"
        assert r.headers["X-RateLimit-Remaining"] == str(9 - i)

    r = await _bad_login(client)
    assert r.status_code == 429
    assert r.headers["Retry-After"] == "60"
    assert r.json()["error"] == "RateLimited"


@pytest.mark.asyncio
async def test_rate_limit_key_expires(client, fake_redis):
    await _bad_login(client)
    await _bad_login(client)
    [key] = fake_redis.counts
    assert key.startswith("tasktrack:rl:")
    assert ":auth:" in key
    assert fake_redis.expiries == {key: 120}


@pytest.mark.asyncio
async def test_register_shares_auth_budget(client, fake_redis):
    for _ in range(10):
        await _bad_login(client)
    r = await client.post(
        "/api/register",
        json={"username": "late", "email": "late@example.com", "password": "password_123"},
    )
    assert r.status_code == 429


@pytest.mark.asyncio
async def test_api_routes_use_default_budget(client, fake_redis):
    for _ in range(11):
        await _bad_login(client)

    r = await client.get("/api/todos", headers=auth_headers("bogus"))
    assert r.status_code == 401
    assert r.headers["X-RateLimit-Limit"] == "100"
    assert r.headers["X-RateLimit-Remaining"] == "99"


@pytest.mark.asyncio
async def test_rate_limited_response_keeps_headers(client, fake_redis):
    for _ in range(10):
        await _bad_login(client)

    r = await client.post(
        "/api/login",
        json={"email": "x@example.com", "password": "nope"},
        headers={"X-Request-ID": "trace-429"},
    )
    assert r.status_code == 429
    assert r.headers["X-Request-ID"] == "trace-429"
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["Cache-Control"] == "no-store"


@pytest.mark.asyncio
async def test_rate_limit_redis_error_lets_request_through(client, monkeypatch):
    monkeypatch.setattr("tasktrack.cache._redis", FakeRedis(fail=True))
    for _ in range(12):
        r = await _bad_login(client)
        assert r.status_code == 401
    assert "X-RateLimit-Limit" not in r.headers
