"""Persisted queue of pending outbound mutations.

Lives under the primary repository namespace, so it is archived and
restored together with the tenant it belongs to.
"""

import asyncio
from collections.abc import Callable

from pydantic import TypeAdapter

from larder.kv.store import KeyValueStore
from larder.observability.logging import get_logger
from larder.observability.metrics import SYNC_QUEUE_DEPTH
from larder.repository.enums import Collection
from larder.sync.models import MutationType, PendingMutation

logger = get_logger(__name__)

_MUTATIONS = TypeAdapter(list[PendingMutation])


class SyncQueue:
    """FIFO (by version) of PendingMutation items in the key-value store."""

    def __init__(self, store: KeyValueStore, key: str = "local_repo:sync_queue") -> None:
        self._store = store
        self._key = key
        self._lock = asyncio.Lock()
        self._listeners: list[Callable[[], None]] = []

    def subscribe(self, listener: Callable[[], None]) -> None:
        """Call listener (synchronously) whenever an item is enqueued."""
        self._listeners.append(listener)

    async def _read(self) -> list[PendingMutation]:
        raw = await self._store.get(self._key)
        if raw is None:
            return []
        return _MUTATIONS.validate_json(raw)

    async def _write(self, items: list[PendingMutation]) -> None:
        if items:
            await self._store.set(self._key, _MUTATIONS.dump_json(items))
        else:
            await self._store.delete(self._key)
        SYNC_QUEUE_DEPTH.set(len(items))

    async def all(self) -> list[PendingMutation]:
        """Pending items ordered by version, then enqueue time."""
        items = await self._read()
        return sorted(items, key=lambda m: (m.version, m.enqueued_at))

    async def enqueue(self, mutation: PendingMutation) -> None:
        async with self._lock:
            items = await self._read()
            items.append(mutation)
            await self._write(items)

        logger.debug(
            "mutation_enqueued",
            type=mutation.type.value,
            collection=mutation.collection.value,
            entity_id=mutation.entity_id,
            version=mutation.version,
        )
        for listener in self._listeners:
            listener()

    async def remove(self, op_id: str) -> bool:
        async with self._lock:
            items = await self._read()
            kept = [m for m in items if m.op_id != op_id]
            if len(kept) == len(items):
                return False
            await self._write(kept)
            return True

    async def update(self, mutation: PendingMutation) -> None:
        """Replace the stored item with the same op_id."""
        async with self._lock:
            items = await self._read()
            await self._write([mutation if m.op_id == mutation.op_id else m for m in items])

    async def pending_count(self) -> int:
        return len(await self._read())

    async def has_pending_delete(self, collection: Collection, entity_id: str) -> bool:
        return any(
            m.type is MutationType.DELETE
            and m.collection is collection
            and m.entity_id == entity_id
            for m in await self._read()
        )

    async def pending_deletes(self, collection: Collection) -> set[str]:
        return {
            m.entity_id
            for m in await self._read()
            if m.type is MutationType.DELETE and m.collection is collection
        }

    async def clear(self) -> None:
        async with self._lock:
            await self._write([])
