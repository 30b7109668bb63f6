"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer. The limiter
instance itself is created by the application factory and lives on
``app.state``; routes only depend on ``enforce_rate_limit``.

Rate limiting strategy:
- Window limit per client address.
- The address is used for counting only; it is never logged or stored.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request, Response, status

from sealbox.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from sealbox.core.config import AppSettings

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests. Please try again later."


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running application."""
    return request.app.state.rate_limiter


def _build_rate_limit_key(request: Request) -> str:
    """Build the limiter key for the current request.

    Args:
        request: FastAPI request.

    Returns:
        str: Namespaced limiter key derived from the transport address.
    """

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


def _build_headers(result: RateLimitResult) -> dict[str, str]:
    headers = {
        "RateLimit-Limit": str(result.limit),
        "RateLimit-Remaining": str(result.remaining),
        "RateLimit-Reset": str(result.reset_after_seconds),
    }
    if result.retry_after_seconds is not None:
        headers["Retry-After"] = str(result.retry_after_seconds)
    return headers


async def enforce_rate_limit(request: Request, response: Response) -> None:
    """FastAPI dependency enforcing rate limits.

    When enabled, consumes 1 unit from the requester's budget. If the requester
    exceeds the configured rate, raises HTTP 429 before the handler runs.

    Args:
        request: FastAPI request.
        response: Sub-response used to attach rate limit headers on success.

    Raises:
        HTTPException: 429 Too Many Requests when rate limit is exceeded.
    """

    app_settings: AppSettings = request.app.state.settings.app
    if not app_settings.rate_limit_enabled:
        return

    limiter = get_rate_limiter(request)
    result = limiter.consume(_build_rate_limit_key(request))

    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={"limit": result.limit, "remaining": result.remaining},
        )
        if app_settings.rate_limit_include_headers:
            response.headers.update(_build_headers(result))
        return

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "limit": result.limit,
            "window_s": app_settings.rate_limit_window_seconds,
            "retry_after_s": result.retry_after_seconds,
        },
    )

    headers = _build_headers(result) if app_settings.rate_limit_include_headers else None
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=RATE_LIMIT_MESSAGE,
        headers=headers,
    )
