"""In-memory implementation of KeyValueStore."""

from collections.abc import Iterable

from larder.errors import StorageUnavailableError
from larder.kv.store import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    """In-memory implementation of KeyValueStore for testing and development.

    ``available`` can be switched off to simulate local storage failure.
    """

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}
        self.available = True

    def _check(self) -> None:
        if not self.available:
            raise StorageUnavailableError("In-memory store marked unavailable")

    async def get(self, key: str) -> bytes | None:
        self._check()
        return self._data.get(key)

    async def set(self, key: str, value: bytes) -> None:
        self._check()
        self._data[key] = bytes(value)

    async def delete(self, key: str) -> None:
        self._check()
        self._data.pop(key, None)

    async def delete_many(self, keys: Iterable[str]) -> None:
        self._check()
        for key in list(keys):
            self._data.pop(key, None)

    async def keys(self, prefix: str) -> list[str]:
        self._check()
        return sorted(key for key in self._data if key.startswith(prefix))

    def snapshot(self) -> dict[str, bytes]:
        """Copy of the raw contents (test helper)."""
        return dict(self._data)
