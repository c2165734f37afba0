"""Rate limiter interfaces.

The API should depend on this abstraction (not the concrete implementation)
so the admission algorithm and its storage can change independently.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass

MINUTE_MS = 60 * 1000


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of admitting one request.

    Attributes:
        allowed: Whether the request may reach the downstream handler.
        limit: Max requests per sliding window.
        total: Requests counted in the window, including this one when allowed.
        remaining: Requests left in the window (0 when blocked).
        retry_after_ms: Time until the oldest counted bucket leaves the window.
        degraded: True when the decision was made without consulting the store.
    """

    allowed: bool
    limit: int
    total: int
    remaining: int
    retry_after_ms: int | None = None
    degraded: bool = False

    @property
    def retry_after_minutes(self) -> int | None:
        """Wait time rounded up to whole minutes (at least 1) when blocked."""
        if self.retry_after_ms is None:
            return None
        return max(1, math.ceil(self.retry_after_ms / MINUTE_MS))

    @property
    def retry_after_seconds(self) -> int | None:
        if self.retry_after_ms is None:
            return None
        return max(1, math.ceil(self.retry_after_ms / 1000))


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    async def admit(self, client_id: str) -> RateLimitDecision:
        """Decide whether a request from client_id may proceed.

        Args:
            client_id: Identifier of the requesting client (e.g., "ip:1.2.3.4").

        Returns:
            RateLimitDecision describing whether it was allowed.
        """
        raise NotImplementedError
