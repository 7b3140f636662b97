"""
MarkNotes Backend - Middleware Tests
======================================

What we test:
    ✅ Request IDs: echoed when supplied, generated otherwise
    ✅ Security headers on every response
    ✅ Rate limiting: 429 + Retry-After, window expiry, excluded paths
    ✅ Rate limiting wired from settings in create_app()
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from marknotes.main import create_app
from marknotes.middleware.rate_limit import RateLimitMiddleware
from marknotes.middleware.security_headers import SECURITY_HEADERS


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _limited_app(clock: FakeClock, max_requests: int = 2) -> FastAPI:
    app = FastAPI()

    @app.get("/ping")
    async def ping():
        return {"pong": True}

    @app.get("/api/health")
    async def health():
        return {"status": "OK"}

    app.add_middleware(
        RateLimitMiddleware, max_requests=max_requests, window_seconds=60, clock=clock
    )
    return app


class TestRequestId:

    @pytest.mark.asyncio
    async def test_supplied_id_echoed(self, test_client):
        response = await test_client.get("/api/notes", headers={"X-Request-ID": "trace-42"})
        assert response.headers["X-Request-ID"] == "trace-42"

    @pytest.mark.asyncio
    async def test_generated_id(self, test_client):
        response = await test_client.get("/api/notes")
        assert len(response.headers["X-Request-ID"]) == 8


class TestSecurityHeaders:

    @pytest.mark.asyncio
    async def test_headers_present(self, test_client):
        response = await test_client.get("/api/health")
        for name, value in SECURITY_HEADERS.items():
            assert response.headers[name] == value

    @pytest.mark.asyncio
    async def test_headers_on_errors_too(self, test_client):
        response = await test_client.get("/api/nowhere")
        assert response.status_code == 404
        assert response.headers["X-Content-Type-Options"] == "nosniff"


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_limit_then_window_expiry(self):
        clock = FakeClock()
        app = _limited_app(clock)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            assert (await client.get("/ping")).status_code == 200
            assert (await client.get("/ping")).status_code == 200

            blocked = await client.get("/ping")
            assert blocked.status_code == 429
            assert blocked.json() == {
                "success": False,
                "error": "Too many requests from this IP, please try again later.",
            }
            assert blocked.headers["Retry-After"] == "61"

            clock.now += 61
            assert (await client.get("/ping")).status_code == 200

    @pytest.mark.asyncio
    async def test_health_not_limited(self):
        app = _limited_app(FakeClock(), max_requests=1)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            for _ in range(5):
                assert (await client.get("/api/health")).status_code == 200
            assert (await client.get("/ping")).status_code == 200
            assert (await client.get("/ping")).status_code == 429

    @pytest.mark.asyncio
    async def test_enabled_from_settings(self, test_settings):
        settings = test_settings.model_copy(
            update={"rate_limit_enabled": True, "rate_limit_requests": 10}
        )
        app = create_app(settings)
        await app.state.database.connect()
        await app.state.database.create_all()
        try:
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                statuses = [(await client.get("/api/notes")).status_code for _ in range(11)]
        finally:
            await app.state.database.dispose()

        assert statuses[:10] == [200] * 10
        assert statuses[10] == 429
