"""In-memory implementation of RemoteStore."""

from collections import defaultdict
from typing import Any

from pydantic import ValidationError

from larder.errors import RemoteDataError, UnreachableError
from larder.remote.store import RemoteStore
from larder.repository.enums import Collection
from larder.repository.models import Profile, Record, parse_record


class InMemoryRemoteStore(RemoteStore):
    """In-memory implementation of RemoteStore for testing and development.

    Records are held as wire dicts so every read decodes a fresh copy.
    ``online`` toggles reachability; ids in ``failing_ids`` make pushes
    and deletes for that entity fail as if the network dropped.
    """

    def __init__(self) -> None:
        self._profiles: dict[str, dict[str, Any]] = {}
        self._records: dict[tuple[str, Collection], dict[str, dict[str, Any]]] = defaultdict(dict)
        self.online = True
        self.failing_ids: set[str] = set()
        self.pushed: list[tuple[str, Collection, str]] = []
        self.deleted: list[tuple[str, Collection, str]] = []
        self.fetch_count = 0

    def _check(self, record_id: str | None = None) -> None:
        if not self.online:
            raise UnreachableError("Remote store offline")
        if record_id is not None and record_id in self.failing_ids:
            raise UnreachableError(f"Injected failure for {record_id}")

    def _decode(self, collection: Collection, record_id: str, data: dict[str, Any]) -> Record:
        try:
            return parse_record(collection, data)
        except ValidationError as e:
            raise RemoteDataError(f"Undecodable remote {collection.value} {record_id}", cause=e) from e

    def seed(self, tenant_id: str, collection: Collection, record: Record) -> None:
        """Place a record directly (test helper, bypasses reachability)."""
        self.seed_wire(tenant_id, collection, record.to_wire())

    def seed_wire(self, tenant_id: str, collection: Collection, data: dict[str, Any]) -> None:
        """Place a raw wire dict, decoded only when fetched."""
        if collection is Collection.PROFILE:
            self._profiles[tenant_id] = data
        else:
            self._records[(tenant_id, collection)][data["id"]] = data

    async def is_reachable(self) -> bool:
        return self.online

    async def fetch_tenant(self, tenant_id: str) -> Profile | None:
        self._check()
        self.fetch_count += 1
        data = self._profiles.get(tenant_id)
        if data is None:
            return None
        return self._decode(Collection.PROFILE, tenant_id, data)

    async def fetch_id_set(self, tenant_id: str, collection: Collection) -> set[str]:
        self._check()
        if collection is Collection.PROFILE:
            return {tenant_id} if tenant_id in self._profiles else set()
        return set(self._records[(tenant_id, collection)])

    async def fetch_record(
        self, tenant_id: str, collection: Collection, record_id: str
    ) -> Record | None:
        self._check()
        self.fetch_count += 1
        if collection is Collection.PROFILE:
            return await self.fetch_tenant(record_id) if record_id == tenant_id else None
        data = self._records[(tenant_id, collection)].get(record_id)
        if data is None:
            return None
        return self._decode(collection, record_id, data)

    async def push_record(self, tenant_id: str, collection: Collection, record: Record) -> None:
        self._check(record.id)
        wire = record.model_copy(update={"dirty": False}).to_wire()
        if collection is Collection.PROFILE:
            self._profiles[tenant_id] = wire
        else:
            self._records[(tenant_id, collection)][record.id] = wire
        self.pushed.append((tenant_id, collection, record.id))

    async def delete_record(self, tenant_id: str, collection: Collection, record_id: str) -> None:
        self._check(record_id)
        self._records[(tenant_id, collection)].pop(record_id, None)
        self.deleted.append((tenant_id, collection, record_id))
