"""Bounded, append-only device event log.

Diagnostic only: nothing reads it back for correctness. Stored as one JSON
list; on overflow the oldest entries are evicted.
"""

import asyncio
from typing import Any

from pydantic import TypeAdapter

from larder.audit.models import EventAction, EventLogEntry
from larder.kv.store import KeyValueStore
from larder.observability.logging import get_logger

logger = get_logger(__name__)

_ENTRIES = TypeAdapter(list[EventLogEntry])

DEFAULT_CAPACITY = 300


class EventLog:
    """Append-only log with a fixed capacity."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = "local_repo:event_log",
        capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._store = store
        self._key = key
        self._capacity = capacity
        self._lock = asyncio.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    async def entries(self) -> list[EventLogEntry]:
        """All retained entries, oldest first."""
        raw = await self._store.get(self._key)
        if raw is None:
            return []
        return _ENTRIES.validate_json(raw)

    async def record_event(
        self,
        action: EventAction,
        data: dict[str, Any] | None = None,
    ) -> EventLogEntry:
        """Append an entry, evicting the oldest beyond capacity."""
        entry = EventLogEntry(action=action, data=data or {})
        async with self._lock:
            log = await self.entries()
            log.append(entry)
            if len(log) > self._capacity:
                del log[: len(log) - self._capacity]
            await self._store.set(self._key, _ENTRIES.dump_json(log))

        logger.debug("event_recorded", action=action.value, size=len(log))
        return entry

    async def clear(self) -> None:
        async with self._lock:
            await self._store.delete(self._key)
