"""Device-local key-value storage.

The persisted store underneath the local repository, archives, sync queue
and event log. Values are opaque bytes; keys are namespaced strings.
"""

from larder.kv.store import KeyValueStore
from larder.kv.stores.inmemory import InMemoryKeyValueStore

__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
]
