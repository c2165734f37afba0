"""Factory pattern for creating the shared key-value store."""

import logging

from app.adapters.store.base import AbstractKeyValueStore
from app.adapters.store.in_memory import InMemoryKeyValueStore
from app.adapters.store.redis_store import RedisKeyValueStore
from app.core.config import settings
from app.core.errors import ValidationAppError

logger = logging.getLogger(__name__)


def create_store() -> AbstractKeyValueStore | None:
    """Factory function to instantiate the store backing the rate limiter.

    Reads configuration from app.core.config.settings (Pydantic Settings).
    Returns None when rate limiting is disabled, when running under the
    testing environment, or when the redis backend has no REDIS_URL. A
    limiter without a store admits every request.

    Returns:
        AbstractKeyValueStore | None: Configured store, or None when disabled.

    Raises:
        ValidationAppError: If the configured backend is unknown.
    """
    if not settings.app.rate_limit_enabled or settings.is_testing:
        logger.info(
            "store.disabled",
            extra={
                "rate_limit_enabled": settings.app.rate_limit_enabled,
                "app_env": settings.app_env,
            },
        )
        return None

    backend = settings.app.rate_limit_store.lower()

    if backend == "memory":
        return InMemoryKeyValueStore()

    if backend == "redis":
        if not settings.redis.url:
            logger.warning(
                "store.disabled",
                extra={"reason": "missing_redis_url", "app_env": settings.app_env},
            )
            return None
        return RedisKeyValueStore(
            settings.redis.url,
            socket_timeout_seconds=settings.redis.socket_timeout_seconds,
            connect_timeout_seconds=settings.redis.connect_timeout_seconds,
        )

    raise ValidationAppError(
        code="store_unknown_backend",
        message=(
            f"Unknown rate limit store: '{backend}'. Supported stores: redis, memory"
        ),
    )
