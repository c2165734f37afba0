"""Rate limiting middleware for the FastAPI application.

This module wires the sliding-window limiter into the HTTP layer.

Design goals:
- Minimal coupling: the middleware depends on AbstractRateLimiter only.
- Swap-friendly: the store behind the limiter comes from create_store().
- Fail-open: store outages never turn into failed requests.

Rate limiting strategy:
- Global sliding-window limit per client address.
- Paths listed in APP_RATE_LIMIT_EXEMPT_PATHS are never limited.
"""

from __future__ import annotations

import logging

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision
from app.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter
from app.adapters.store.factory import create_store
from app.core.config import parse_csv, settings
from app.core.logging import hash_identifier

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"

_limiter: AbstractRateLimiter | None = None
_limiter_config: tuple[int, int, bool, str, str | None] | None = None


def _current_config() -> tuple[int, int, bool, str, str | None]:
    return (
        settings.app.rate_limit_window_ms,
        settings.app.rate_limit_max_requests,
        settings.app.rate_limit_enabled,
        settings.app.rate_limit_store,
        settings.redis.url,
    )


async def _close_store(limiter: AbstractRateLimiter | None) -> None:
    store = getattr(limiter, "store", None)
    if store is not None:
        await store.close()


async def get_rate_limiter() -> AbstractRateLimiter:
    """Return a process-wide rate limiter instance.

    The instance is cached in-module so the store connection pool is shared
    across requests. If configuration changes (primarily in tests), the
    limiter is rebuilt and the replaced store is closed.

    Returns:
        AbstractRateLimiter: Configured limiter instance.
    """

    global _limiter, _limiter_config

    config = _current_config()

    if _limiter is None or _limiter_config != config:
        previous = _limiter
        _limiter = SlidingWindowRateLimiter(
            create_store(),
            window_ms=settings.app.rate_limit_window_ms,
            max_requests=settings.app.rate_limit_max_requests,
        )
        _limiter_config = config
        await _close_store(previous)

    return _limiter


def set_rate_limiter(limiter: AbstractRateLimiter) -> None:
    """Install a specific limiter (e.g., one backed by an in-memory store)."""

    global _limiter, _limiter_config

    _limiter = limiter
    _limiter_config = _current_config()


async def reset_rate_limiter() -> None:
    """Close the current limiter's store and drop the cached instance."""

    global _limiter, _limiter_config

    limiter, _limiter, _limiter_config = _limiter, None, None
    await _close_store(limiter)


def build_client_id(request: Request) -> str:
    """Build the limiter key for the current request.

    Args:
        request: FastAPI request.

    Returns:
        str: Namespaced limiter key, "ip:unknown" when no address is known.
    """

    if settings.app.trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return f"ip:{first_hop}"

    client_host = request.client.host if request.client else UNKNOWN_CLIENT
    return f"ip:{client_host or UNKNOWN_CLIENT}"


def format_retry_message(minutes: int) -> str:
    """Render the user-facing 429 message.

    Examples:
        >>> format_retry_message(1)
        'Rate limit exceeded. You can retry in 1 minute.'
        >>> format_retry_message(3)
        'Rate limit exceeded. You can retry in 3 minutes.'
    """
    unit = "minutes" if minutes > 1 else "minute"
    return f"Rate limit exceeded. You can retry in {minutes} {unit}."


def _build_rejection(decision: RateLimitDecision) -> JSONResponse:
    minutes = decision.retry_after_minutes or 1

    headers: dict[str, str] = {}
    if settings.app.rate_limit_include_headers:
        headers["Retry-After"] = str(decision.retry_after_seconds or minutes * 60)
        headers["X-RateLimit-Limit"] = str(decision.limit)
        headers["X-RateLimit-Remaining"] = str(decision.remaining)

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"error": format_retry_message(minutes)},
        headers=headers or None,
    )


async def rate_limit_middleware(request: Request, call_next) -> Response:
    """HTTP middleware enforcing the sliding-window rate limit.

    Consults the limiter once per request. Admitted requests continue down
    the stack; rejected ones are answered with HTTP 429 and a JSON body
    ``{"error": "Rate limit exceeded. You can retry in N minute(s)."}``.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: Downstream response, or the 429 rejection.
    """

    if not settings.app.rate_limit_enabled:
        return await call_next(request)

    if request.url.path in parse_csv(settings.app.rate_limit_exempt_paths):
        return await call_next(request)

    limiter = await get_rate_limiter()
    client_id = build_client_id(request)
    key_hash = hash_identifier(client_id)

    decision = await limiter.admit(client_id)
    if decision.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "key_hash": key_hash,
                "limit": decision.limit,
                "remaining": decision.remaining,
                "degraded": decision.degraded,
                "window_ms": settings.app.rate_limit_window_ms,
            },
        )
        return await call_next(request)

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": key_hash,
            "limit": decision.limit,
            "total": decision.total,
            "window_ms": settings.app.rate_limit_window_ms,
            "retry_after_ms": decision.retry_after_ms,
            "path": request.url.path,
        },
    )
    return _build_rejection(decision)
