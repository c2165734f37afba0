"""In-memory key-value store.

Notes:
- Per-process only: running multiple workers gives each worker its own logs.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import logging
import threading

from app.adapters.store.base import AbstractKeyValueStore
from app.core.logging import hash_identifier

logger = logging.getLogger(__name__)


class InMemoryKeyValueStore(AbstractKeyValueStore):
    """Dict-backed store used by tests and single-process development."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.RLock()

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryKeyValueStore(size={len(self._data)})"

    async def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value
        logger.debug(
            "store.memory.set",
            extra={"key_hash": hash_identifier(key), "size": len(self._data)},
        )

    async def close(self) -> None:
        with self._lock:
            self._data.clear()

    def clear(self) -> None:
        """Remove all stored values."""
        with self._lock:
            self._data.clear()
