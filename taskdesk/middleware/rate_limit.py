"""
Slowapi-based rate limiting for the credential endpoints.

Signup and login are limited per client address; every other route is
unlimited. Storage is in-memory, so limits are per process.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from config import settings

logger = logging.getLogger(__name__)


def get_request_identifier(request: Request) -> str:
    """
    Get unique identifier for rate limiting: the connected client's address.

    Client-supplied headers such as X-Forwarded-For are ignored. Behind a
    reverse proxy, run uvicorn with ``--proxy-headers`` and
    ``--forwarded-allow-ips`` so the trusted proxy's header becomes the
    client address before this runs.
    """
    return get_remote_address(request)


def create_limiter(enabled: bool = None) -> Limiter:
    """
    Create and configure slowapi Limiter.

    Args:
        enabled: Override for RATE_LIMIT_ENABLED

    Returns:
        Configured Limiter instance
    """
    if enabled is None:
        enabled = settings.rate_limit_enabled

    limiter = Limiter(
        key_func=get_request_identifier,
        enabled=enabled,
        headers_enabled=False,
    )
    if not enabled:
        logger.warning("Rate limiting disabled")
    return limiter


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(f"Rate limit exceeded for {get_request_identifier(request)} on {request.url.path}")
    return JSONResponse(
        status_code=429,
        content={"status": "failed", "message": "Too many requests, please try again later"},
    )


# Shared instance; route decorators bind to it at import time
limiter = create_limiter()


def setup_rate_limiting(app: FastAPI) -> Limiter:
    """
    Setup slowapi rate limiting on FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    logger.info(f"Rate limiting on auth endpoints: {settings.auth_rate_limit}")
    return limiter
