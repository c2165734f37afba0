"""Key-value store adapters.

The rate limiter keeps one request log per client in a shared store. The
abstraction lets production use Redis while tests and single-process
development use an in-memory dict.
"""

from app.adapters.store.base import AbstractKeyValueStore
from app.adapters.store.factory import create_store
from app.adapters.store.in_memory import InMemoryKeyValueStore
from app.adapters.store.redis_store import RedisKeyValueStore

__all__ = [
    "AbstractKeyValueStore",
    "InMemoryKeyValueStore",
    "RedisKeyValueStore",
    "create_store",
]
