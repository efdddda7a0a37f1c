"""Key-value store backends."""

from larder.kv.stores.inmemory import InMemoryKeyValueStore
from larder.kv.stores.redis import RedisKeyValueStore

__all__ = [
    "InMemoryKeyValueStore",
    "RedisKeyValueStore",
]
