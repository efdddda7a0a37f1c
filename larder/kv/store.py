"""KeyValueStore abstract interface."""

from abc import ABC, abstractmethod
from collections.abc import Iterable


class KeyValueStore(ABC):
    """Abstract interface for durable device-local storage.

    Implementations must raise StorageUnavailableError on I/O failure and
    must stay available while the device is offline.
    """

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Get the value stored at key, or None."""
        pass

    @abstractmethod
    async def set(self, key: str, value: bytes) -> None:
        """Store value at key, replacing any previous value."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete key. Missing keys are ignored."""
        pass

    @abstractmethod
    async def delete_many(self, keys: Iterable[str]) -> None:
        """Delete several keys in one batch."""
        pass

    @abstractmethod
    async def keys(self, prefix: str) -> list[str]:
        """List keys starting with prefix."""
        pass
