"""Tests for the sliding-window rate limiter."""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.middleware.rate_limit import RateLimitMiddleware, SlidingWindow


def test_window_refills_after_period():
    window = SlidingWindow(limit=2, period=10)

    assert window.acquire("c", 0.0) == (True, 0)
    assert window.acquire("c", 1.0) == (True, 0)
    allowed, retry_after = window.acquire("c", 2.0)
    assert not allowed
    assert retry_after == 9
    assert window.acquire("other", 2.0) == (True, 0)
    assert window.acquire("c", 10.5) == (True, 0)


def app_with_limits(requests, analysis_requests):
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, requests=requests, period=60, analysis_requests=analysis_requests)

    @app.post("/api/analyze/text")
    async def analyze():
        return {"ok": True}

    @app.get("/api/sessions")
    async def sessions():
        return []

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return TestClient(app)


def test_analysis_budget_is_separate():
    client = app_with_limits(requests=5, analysis_requests=1)

    assert client.post("/api/analyze/text").status_code == 200
    limited = client.post("/api/analyze/text")
    assert limited.status_code == 429
    assert limited.json()["error_type"] == "RateLimitExceededError"
    assert int(limited.headers["Retry-After"]) > 0
    assert client.get("/api/sessions").status_code == 200


def test_health_is_exempt():
    client = app_with_limits(requests=1, analysis_requests=1)

    assert all(client.get("/health").status_code == 200 for _ in range(3))


def test_forwarded_clients_are_counted_separately():
    client = app_with_limits(requests=1, analysis_requests=1)

    assert client.get("/api/sessions", headers={"X-Forwarded-For": "10.0.0.1"}).status_code == 200
    assert client.get("/api/sessions", headers={"X-Forwarded-For": "10.0.0.2"}).status_code == 200
    assert client.get("/api/sessions", headers={"X-Forwarded-For": "10.0.0.1"}).status_code == 429
