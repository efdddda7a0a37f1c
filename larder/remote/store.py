"""RemoteStore abstract interface.

The remote store of record, seen only through "fetch by tenant id" and
"push record" semantics. Network failures surface as UnreachableError.
"""

from abc import ABC, abstractmethod

from larder.repository.enums import Collection
from larder.repository.models import Profile, Record


class RemoteStore(ABC):
    """Abstract interface for the remote store of record."""

    @abstractmethod
    async def is_reachable(self) -> bool:
        """Cheap reachability check. Never raises."""
        pass

    @abstractmethod
    async def fetch_tenant(self, tenant_id: str) -> Profile | None:
        """Get the tenant's Profile (with its updatedAt), or None."""
        pass

    @abstractmethod
    async def fetch_id_set(self, tenant_id: str, collection: Collection) -> set[str]:
        """Get the ids of every record in a tenant's collection."""
        pass

    @abstractmethod
    async def fetch_record(
        self, tenant_id: str, collection: Collection, record_id: str
    ) -> Record | None:
        """Get one record, or None if it does not exist remotely."""
        pass

    @abstractmethod
    async def push_record(self, tenant_id: str, collection: Collection, record: Record) -> None:
        """Create or replace a record (the profile included)."""
        pass

    @abstractmethod
    async def delete_record(self, tenant_id: str, collection: Collection, record_id: str) -> None:
        """Delete a record. Missing records are ignored."""
        pass

    async def fetch_all(self, tenant_id: str, collection: Collection) -> list[Record]:
        """Fetch every record of a collection (id set, then each record)."""
        records = []
        for record_id in sorted(await self.fetch_id_set(tenant_id, collection)):
            record = await self.fetch_record(tenant_id, collection, record_id)
            if record is not None:
                records.append(record)
        return records
