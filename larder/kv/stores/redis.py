"""Redis implementation of KeyValueStore.

Used on devices (or device simulators) that run a local Redis as the
persisted store. Keys are stored verbatim; values are raw bytes.
"""

from collections.abc import Iterable

import redis.asyncio as redis

from larder.errors import StorageUnavailableError
from larder.kv.store import KeyValueStore
from larder.observability.logging import get_logger

logger = get_logger(__name__)


class RedisKeyValueStore(KeyValueStore):
    """Redis implementation of KeyValueStore.

    The client must be created with ``decode_responses=False`` so values
    come back as bytes.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    async def get(self, key: str) -> bytes | None:
        try:
            return await self._client.get(key)
        except redis.RedisError as e:
            logger.error("kv_get_error", key=key, error=str(e))
            raise StorageUnavailableError(f"Failed to read {key}: {e}", cause=e) from e

    async def set(self, key: str, value: bytes) -> None:
        try:
            await self._client.set(key, value)
        except redis.RedisError as e:
            logger.error("kv_set_error", key=key, error=str(e))
            raise StorageUnavailableError(f"Failed to write {key}: {e}", cause=e) from e

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except redis.RedisError as e:
            logger.error("kv_delete_error", key=key, error=str(e))
            raise StorageUnavailableError(f"Failed to delete {key}: {e}", cause=e) from e

    async def delete_many(self, keys: Iterable[str]) -> None:
        batch = list(keys)
        if not batch:
            return
        try:
            # Single DEL: all keys go or none do
            await self._client.delete(*batch)
        except redis.RedisError as e:
            logger.error("kv_delete_many_error", count=len(batch), error=str(e))
            raise StorageUnavailableError(f"Failed to delete {len(batch)} keys: {e}", cause=e) from e

    async def keys(self, prefix: str) -> list[str]:
        try:
            found = [
                key.decode() if isinstance(key, bytes) else key
                async for key in self._client.scan_iter(match=f"{prefix}*")
            ]
        except redis.RedisError as e:
            logger.error("kv_scan_error", prefix=prefix, error=str(e))
            raise StorageUnavailableError(f"Failed to list keys under {prefix}: {e}", cause=e) from e
        return sorted(found)

    async def close(self) -> None:
        await self._client.aclose()
