"""
Tests for the in-memory rate limiter and its middleware.
"""
from fastapi.testclient import TestClient

from core.config import AppSettings
from core.rate_limit import RateLimiter
from core.storage import Storage
from main import create_app


class TestRateLimiter:
    def test_allows_up_to_limit(self):
        limiter = RateLimiter(max_requests=2, window_seconds=60)
        assert limiter.is_allowed("a", now=100.0) == (True, None)
        assert limiter.is_allowed("a", now=101.0) == (True, None)

        allowed, reset = limiter.is_allowed("a", now=102.0)
        assert allowed is False
        assert reset == 58

    def test_keys_are_independent(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        assert limiter.is_allowed("a", now=0.0)[0] is True
        assert limiter.is_allowed("b", now=0.0)[0] is True
        assert limiter.is_allowed("a", now=1.0)[0] is False

    def test_window_slides(self):
        limiter = RateLimiter(max_requests=1, window_seconds=10)
        assert limiter.is_allowed("a", now=0.0)[0] is True
        assert limiter.is_allowed("a", now=5.0)[0] is False
        assert limiter.is_allowed("a", now=11.0)[0] is True

    def test_remaining(self):
        limiter = RateLimiter(max_requests=3, window_seconds=10)
        limiter.is_allowed("a", now=0.0)
        assert limiter.remaining("a") == 2
        assert limiter.remaining("b") == 3
        assert "b" not in limiter.requests

    def test_expired_clients_are_dropped(self):
        limiter = RateLimiter(max_requests=5, window_seconds=10)
        limiter.is_allowed("a", now=0.0)
        limiter.is_allowed("b", now=1.0)

        assert limiter.is_allowed("c", now=20.0) == (True, None)
        assert set(limiter.requests) == {"c"}
        assert limiter.remaining("a") == 5
        assert "a" not in limiter.requests


class TestRateLimitMiddleware:
    def _client(self, max_requests: int) -> TestClient:
        settings = AppSettings(
            seed_data=False,
            rate_limit_max_requests=max_requests,
            rate_limit_window_seconds=60,
        )
        return TestClient(create_app(settings=settings, storage=Storage.seeded()))

    def test_rejects_after_limit(self):
        client = self._client(max_requests=2)
        assert client.get("/students").status_code == 200
        assert client.get("/courses").status_code == 200

        resp = client.get("/students")
        assert resp.status_code == 429
        assert resp.json()["error"].startswith("Rate limit exceeded")
        assert resp.headers["X-RateLimit-Remaining"] == "0"

    def test_health_is_exempt(self):
        client = self._client(max_requests=1)
        for _ in range(3):
            assert client.get("/health").status_code == 200
        assert client.get("/students").status_code == 200
