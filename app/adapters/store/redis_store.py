"""Redis-backed key-value store.

Uses the asyncio client from redis-py so store round trips do not block the
event loop. The connection is opened lazily by the first command.
"""

from __future__ import annotations

import logging

import redis.asyncio as redis_asyncio
from redis.exceptions import RedisError

from app.adapters.store.base import AbstractKeyValueStore
from app.core.errors import StoreAppError

logger = logging.getLogger(__name__)


class RedisKeyValueStore(AbstractKeyValueStore):
    """Store request logs as plain string values in Redis."""

    def __init__(
        self,
        url: str | None = None,
        *,
        socket_timeout_seconds: float = 2.0,
        connect_timeout_seconds: float = 2.0,
        client: redis_asyncio.Redis | None = None,
    ) -> None:
        """Initialize the Redis store.

        Args:
            url: Redis connection URL (redis:// or rediss://).
            socket_timeout_seconds: Timeout for individual commands.
            connect_timeout_seconds: Timeout for establishing a connection.
            client: Pre-built client (tests); takes precedence over url.

        Raises:
            ValueError: If neither url nor client is provided.
        """
        if client is None and not url:
            raise ValueError("url or client must be provided")

        self._client = client or redis_asyncio.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout_seconds,
            socket_connect_timeout=connect_timeout_seconds,
        )

    async def get(self, key: str) -> str | None:
        try:
            value = await self._client.get(key)
            if isinstance(value, bytes):
                value = value.decode()
        except UnicodeDecodeError as exc:
            # Not UTF-8, so it cannot be a request log; callers see no value
            logger.warning(
                "store.redis.undecodable_value",
                extra={"error_msg": str(exc)[:200]},
            )
            return None
        except RedisError as exc:
            raise self._wrap_error(exc, operation="get") from exc

        return value

    async def set(self, key: str, value: str) -> None:
        try:
            await self._client.set(key, value)
        except RedisError as exc:
            raise self._wrap_error(exc, operation="set") from exc

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as exc:
            logger.warning(
                "store.redis.ping_failed",
                extra={"error_type": type(exc).__name__},
            )
            return False

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _wrap_error(exc: RedisError, *, operation: str) -> StoreAppError:
        logger.error(
            "store.redis.error",
            extra={
                "operation": operation,
                "error_type": type(exc).__name__,
                "error_msg": str(exc),
            },
        )
        return StoreAppError(
            code="store_unavailable",
            message=f"Redis {operation} failed: {type(exc).__name__}",
            details={"backend": "redis", "operation": operation},
        )
