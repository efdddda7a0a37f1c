"""Remote store backends."""

from larder.remote.stores.inmemory import InMemoryRemoteStore
from larder.remote.stores.redis import RedisRemoteStore

__all__ = [
    "InMemoryRemoteStore",
    "RedisRemoteStore",
]
