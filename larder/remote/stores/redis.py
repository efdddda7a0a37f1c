"""Redis implementation of RemoteStore.

Key structure:
- {prefix}:{tenant_id}                              - Profile JSON
- {prefix}:{tenant_id}:{collection}                 - Set of record ids
- {prefix}:{tenant_id}:{collection}:{record_id}     - Record JSON
"""

import redis.asyncio as redis
from pydantic import ValidationError

from larder.config.models.storage import RemoteStoreConfig
from larder.errors import RemoteDataError, UnreachableError
from larder.observability.logging import get_logger
from larder.remote.store import RemoteStore
from larder.repository.enums import Collection
from larder.repository.models import RECORD_TYPES, Profile, Record

logger = get_logger(__name__)


class RedisRemoteStore(RemoteStore):
    """Redis implementation of RemoteStore.

    Every redis error is reported as UnreachableError; the sync engine
    treats that as an ordinary offline condition.
    """

    def __init__(self, client: redis.Redis, config: RemoteStoreConfig | None = None) -> None:
        self._client = client
        self._config = config or RemoteStoreConfig()
        self._prefix = self._config.key_prefix

    def _profile_key(self, tenant_id: str) -> str:
        return f"{self._prefix}:{tenant_id}"

    def _index_key(self, tenant_id: str, collection: Collection) -> str:
        return f"{self._prefix}:{tenant_id}:{collection.value}"

    def _record_key(self, tenant_id: str, collection: Collection, record_id: str) -> str:
        return f"{self._prefix}:{tenant_id}:{collection.value}:{record_id}"

    def _unreachable(self, operation: str, tenant_id: str, e: Exception) -> UnreachableError:
        logger.warning("remote_unreachable", operation=operation, tenant_id=tenant_id, error=str(e))
        return UnreachableError(f"Remote {operation} failed: {e}", cause=e)

    def _decode(self, collection: Collection, record_id: str, data: str | bytes) -> Record:
        try:
            return RECORD_TYPES[collection].model_validate_json(data)
        except ValidationError as e:
            logger.error(
                "remote_record_undecodable",
                collection=collection.value,
                record_id=record_id,
                error=str(e),
            )
            raise RemoteDataError(f"Undecodable remote {collection.value} {record_id}", cause=e) from e

    async def is_reachable(self) -> bool:
        try:
            return bool(await self._client.ping())
        except (redis.RedisError, OSError):
            return False

    async def fetch_tenant(self, tenant_id: str) -> Profile | None:
        try:
            data = await self._client.get(self._profile_key(tenant_id))
        except redis.RedisError as e:
            raise self._unreachable("fetch_tenant", tenant_id, e) from e
        return self._decode(Collection.PROFILE, tenant_id, data) if data else None

    async def fetch_id_set(self, tenant_id: str, collection: Collection) -> set[str]:
        if collection is Collection.PROFILE:
            return {tenant_id} if await self.fetch_tenant(tenant_id) is not None else set()
        try:
            members = await self._client.smembers(self._index_key(tenant_id, collection))
        except redis.RedisError as e:
            raise self._unreachable("fetch_id_set", tenant_id, e) from e
        return {m.decode() if isinstance(m, bytes) else m for m in members}

    async def fetch_record(
        self, tenant_id: str, collection: Collection, record_id: str
    ) -> Record | None:
        if collection is Collection.PROFILE:
            return await self.fetch_tenant(record_id) if record_id == tenant_id else None
        try:
            data = await self._client.get(self._record_key(tenant_id, collection, record_id))
        except redis.RedisError as e:
            raise self._unreachable("fetch_record", tenant_id, e) from e
        return self._decode(collection, record_id, data) if data else None

    async def push_record(self, tenant_id: str, collection: Collection, record: Record) -> None:
        payload = record.model_copy(update={"dirty": False}).model_dump_json(by_alias=True)
        try:
            if collection is Collection.PROFILE:
                await self._client.set(self._profile_key(tenant_id), payload)
                return
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.set(self._record_key(tenant_id, collection, record.id), payload)
                pipe.sadd(self._index_key(tenant_id, collection), record.id)
                await pipe.execute()
        except redis.RedisError as e:
            raise self._unreachable("push_record", tenant_id, e) from e

    async def delete_record(self, tenant_id: str, collection: Collection, record_id: str) -> None:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.delete(self._record_key(tenant_id, collection, record_id))
                pipe.srem(self._index_key(tenant_id, collection), record_id)
                await pipe.execute()
        except redis.RedisError as e:
            raise self._unreachable("delete_record", tenant_id, e) from e

    async def close(self) -> None:
        await self._client.aclose()
