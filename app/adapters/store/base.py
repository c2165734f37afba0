"""Key-value store interface consumed by the rate limiter."""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractKeyValueStore(ABC):
    """Minimal async string store.

    Implementations raise StoreAppError when the backend cannot be reached.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value stored under key, or None when absent."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Replace the value stored under key."""
        raise NotImplementedError

    async def ping(self) -> bool:
        """Report whether the backend is reachable."""
        return True

    async def close(self) -> None:
        """Release backend resources (connections, pools)."""
        return None
