"""Remote store of record."""

from larder.remote.store import RemoteStore
from larder.remote.stores.inmemory import InMemoryRemoteStore

__all__ = [
    "RemoteStore",
    "InMemoryRemoteStore",
]
