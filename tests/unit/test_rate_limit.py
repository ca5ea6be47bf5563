"""Tests for slowapi rate limiting on the credential endpoints."""

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request as StarletteRequest

from taskdesk.middleware.rate_limit import (
    create_limiter,
    get_request_identifier,
    rate_limit_exceeded_handler,
    setup_rate_limiting,
)


def build_app(limit: str = "2/minute") -> FastAPI:
    """Small app with one limited and one unlimited route."""
    limiter = create_limiter(enabled=True)
    app = FastAPI()
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    @app.post("/login")
    @limiter.limit(limit)
    async def login(request: Request):
        return {"status": "success"}

    @app.get("/open")
    async def open_route():
        return {"status": "success"}

    return app


def make_request(client_host: str, headers=None) -> StarletteRequest:
    raw_headers = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in (headers or {}).items()
    ]
    return StarletteRequest({
        "type": "http",
        "method": "POST",
        "path": "/login",
        "headers": raw_headers,
        "client": (client_host, 50000),
    })


def test_create_limiter_respects_enabled_flag():
    assert create_limiter(enabled=True).enabled is True
    assert create_limiter(enabled=False).enabled is False


def test_setup_rate_limiting():
    """Limiter is attached to app state and the 429 handler is registered."""
    app = FastAPI()
    limiter = setup_rate_limiting(app)

    assert app.state.limiter is limiter
    assert RateLimitExceeded in app.exception_handlers


def test_limit_exceeded_returns_json_429():
    client = TestClient(build_app())

    codes = [client.post("/login").status_code for _ in range(4)]

    assert codes == [200, 200, 429, 429]

    response = client.post("/login")
    assert response.status_code == 429
    assert response.json() == {
        "status": "failed",
        "message": "Too many requests, please try again later",
    }


def test_unlimited_routes_are_not_throttled():
    client = TestClient(build_app())

    for _ in range(3):
        client.post("/login")

    assert all(client.get("/open").status_code == 200 for _ in range(10))


def test_forwarded_header_does_not_reset_the_limit():
    """Rotating X-Forwarded-For still counts against the same client."""
    client = TestClient(build_app())

    codes = [
        client.post("/login", headers={"X-Forwarded-For": f"10.0.0.{i}"}).status_code
        for i in range(6)
    ]

    assert codes[:2] == [200, 200]
    assert set(codes[2:]) == {429}


def test_identifier_is_the_connected_address():
    request = make_request("203.0.113.7", {"X-Forwarded-For": "10.0.0.1, 10.0.0.2"})

    assert get_request_identifier(request) == "203.0.113.7"
