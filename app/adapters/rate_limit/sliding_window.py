"""Sliding-window rate limiter backed by a shared key-value store.

Each client owns a request log: a list of buckets, each holding the number of
requests seen since the bucket was opened. Requests arriving within
``log_coalesce_ms`` of the last bucket are merged into it, which bounds the
size of the stored value.

Notes:
- The read-modify-write against the store is not atomic. Concurrent requests
  from one client may both be admitted and the later write wins.
- Store failures fail open: the request is admitted and the error logged.
  Unexpected errors raised by a store are treated the same way.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision
from app.adapters.store.base import AbstractKeyValueStore
from app.core.errors import StoreAppError
from app.core.logging import hash_identifier
from app.schemas.request_log import (
    CorruptRequestLogError,
    LogBucket,
    dump_request_log,
    load_request_log,
)

logger = logging.getLogger(__name__)

LOG_COALESCE_MS = 60 * 1000


class SlidingWindowRateLimiter(AbstractRateLimiter):
    """Limit requests per client within a trailing window of ``window_ms``.

    A limiter created without a store admits every request. This is the mode
    used under the testing environment, where no Redis is available.
    """

    def __init__(
        self,
        store: AbstractKeyValueStore | None,
        *,
        window_ms: int,
        max_requests: int,
        log_coalesce_ms: int = LOG_COALESCE_MS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the sliding-window limiter.

        Args:
            store: Shared store holding request logs, or None to disable limiting.
            window_ms: Size of the sliding evaluation window in milliseconds.
            max_requests: Requests allowed per client within the window.
            log_coalesce_ms: Interval during which requests share one bucket.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If any size or limit is invalid.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if log_coalesce_ms < 1:
            raise ValueError("log_coalesce_ms must be >= 1")

        self._store = store
        self._window_ms = window_ms
        self._max_requests = max_requests
        self._log_coalesce_ms = log_coalesce_ms
        self._clock = clock

    @property
    def store(self) -> AbstractKeyValueStore | None:
        return self._store

    @property
    def enabled(self) -> bool:
        return self._store is not None

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _admit_without_store(self) -> RateLimitDecision:
        return RateLimitDecision(
            allowed=True,
            limit=self._max_requests,
            total=0,
            remaining=self._max_requests,
            degraded=True,
        )

    async def _start_log(self, client_id: str, now: int) -> RateLimitDecision:
        buckets = [LogBucket(bucket_timestamp=now, request_count=1)]
        await self._store.set(client_id, dump_request_log(buckets))
        return RateLimitDecision(
            allowed=True,
            limit=self._max_requests,
            total=1,
            remaining=max(0, self._max_requests - 1),
        )

    def _record_request(self, buckets: list[LogBucket], now: int) -> None:
        """Count one request into the latest bucket or open a new one."""
        last = buckets[-1]
        if now - last.bucket_timestamp < self._log_coalesce_ms:
            last.request_count += 1
        else:
            buckets.append(LogBucket(bucket_timestamp=now, request_count=1))

    async def _evaluate(self, client_id: str) -> RateLimitDecision:
        now = self._now_ms()

        raw = await self._store.get(client_id)
        if not raw:
            return await self._start_log(client_id, now)

        try:
            buckets = load_request_log(raw)
        except CorruptRequestLogError as exc:
            logger.warning(
                "rate_limit.corrupt_log",
                extra={
                    "key_hash": hash_identifier(client_id),
                    "error_msg": str(exc)[:200],
                },
            )
            return await self._start_log(client_id, now)

        window_start = now - self._window_ms
        recent = [b for b in buckets if b.bucket_timestamp > window_start]
        total = sum(b.request_count for b in recent)

        if total >= self._max_requests:
            time_passed = now - recent[0].bucket_timestamp
            return RateLimitDecision(
                allowed=False,
                limit=self._max_requests,
                total=total,
                remaining=0,
                retry_after_ms=self._window_ms - time_passed,
            )

        self._record_request(buckets, now)
        await self._store.set(client_id, dump_request_log(buckets))

        return RateLimitDecision(
            allowed=True,
            limit=self._max_requests,
            total=total + 1,
            remaining=max(0, self._max_requests - total - 1),
        )

    async def admit(self, client_id: str) -> RateLimitDecision:
        """Admit or reject one request from client_id.

        Reads the client's log, counts requests in the trailing window and,
        when under the limit, records this request and writes the log back.
        Rejected requests leave the stored log untouched.

        Args:
            client_id: Store key identifying the client. Any string is accepted.

        Returns:
            RateLimitDecision with the allowance decision and retry hint.
        """
        if self._store is None:
            return self._admit_without_store()

        try:
            return await self._evaluate(client_id)
        except StoreAppError as exc:
            logger.error(
                "rate_limit.store_error",
                extra={
                    "error_code": exc.code,
                    "error_message": exc.message,
                    "fail_open": True,
                },
            )
            return self._admit_without_store()
        except Exception as exc:
            logger.error(
                "rate_limit.store_error",
                extra={
                    "error_type": type(exc).__name__,
                    "key_hash": hash_identifier(client_id),
                    "fail_open": True,
                },
                exc_info=True,
            )
            return self._admit_without_store()
