"""ArchiveManager: park and restore whole tenant repositories.

An archive is a byte-for-byte copy of the primary repository's parts under
``{archive_prefix}:{tenant_id}:``. One device can hold many archives but
only one resident tenant. Archiving moves data out of the primary slot;
restoring copies it back and makes that tenant resident.
"""

import asyncio

from larder.audit.manifest import SyncManifest
from larder.errors import ArchiveNotFoundError
from larder.observability.logging import get_logger
from larder.observability.metrics import ARCHIVE_OPERATIONS
from larder.repository.keys import ARCHIVED_PARTS, PROFILE_PART
from larder.repository.repository import LocalRepository

logger = get_logger(__name__)


class ArchiveManager:
    """Snapshot/restore of the primary repository per tenant."""

    def __init__(
        self,
        repository: LocalRepository,
        manifest: SyncManifest | None = None,
    ) -> None:
        self._repository = repository
        self._store = repository.store
        self._keys = repository.keys
        self._manifest = manifest

    async def archive(self, tenant_id: str) -> bool:
        """Move the primary repository into tenant_id's archive.

        Any previous archive for the same tenant is overwritten, including
        parts that are absent now. The primary slot is then cleared in one
        batch. A no-op (returns False) if no Profile is resident.

        Raises:
            ValueError: If the resident Profile belongs to another tenant.
        """
        # Shielded so a cancelled caller cannot leave a half-written archive
        archived = await asyncio.shield(self._archive(tenant_id))
        if archived:
            ARCHIVE_OPERATIONS.labels(operation="archive").inc()
        return archived

    async def _archive(self, tenant_id: str) -> bool:
        async with self._repository.exclusive():
            profile = await self._repository.get_profile()
            if profile is None:
                logger.info("archive_skipped_no_profile", tenant_id=tenant_id)
                return False
            if profile.id != tenant_id:
                raise ValueError(
                    f"Resident tenant is {profile.id}; refusing to archive it as {tenant_id}"
                )

            stale = []
            copied = 0
            for part in ARCHIVED_PARTS:
                data = await self._store.get(self._keys.part(part))
                target = self._keys.archived(tenant_id, part)
                if data is None:
                    stale.append(target)
                else:
                    await self._store.set(target, data)
                    copied += 1
            if stale:
                await self._store.delete_many(stale)

            await self._repository.reset_primary()

        logger.info("repository_archived", tenant_id=tenant_id, parts=copied)
        return True

    async def archived_exists(self, tenant_id: str) -> bool:
        """True iff an archived Profile exists for tenant_id."""
        return await self._store.get(self._keys.archived(tenant_id, PROFILE_PART)) is not None

    async def restore(self, tenant_id: str) -> None:
        """Copy tenant_id's archive into the primary slot and make it resident.

        Parts that were never archived are left absent. The tenant pointer
        is set only after every part has been copied. The archive itself is
        kept; a later archive of the same tenant overwrites it.

        Raises:
            ArchiveNotFoundError: If no archive exists for tenant_id.
            ValueError: If a different tenant is resident.
        """
        if not await self.archived_exists(tenant_id):
            raise ArchiveNotFoundError(tenant_id)

        await asyncio.shield(self._restore(tenant_id))
        ARCHIVE_OPERATIONS.labels(operation="restore").inc()

        if self._manifest is not None:
            await self._manifest.set_baseline(await self._repository.counts(self._manifest.tracked))

    async def _restore(self, tenant_id: str) -> None:
        async with self._repository.exclusive():
            resident = await self._repository.get_profile()
            if resident is not None and resident.id != tenant_id:
                raise ValueError(
                    f"Tenant {resident.id} is resident; archive it before restoring {tenant_id}"
                )

            # Full overwrite: nothing from the previous primary contents survives
            await self._repository.reset_primary()
            restored = 0
            for part in ARCHIVED_PARTS:
                data = await self._store.get(self._keys.archived(tenant_id, part))
                if data is not None:
                    await self._store.set(self._keys.part(part), data)
                    restored += 1

            await self._repository.assign_tenant(tenant_id)

        logger.info("repository_restored", tenant_id=tenant_id, parts=restored)

    async def delete_archive(self, tenant_id: str) -> int:
        """Purge tenant_id's archive namespace. Maintenance only."""
        keys = [key for key in self._keys.archived_keys(tenant_id) if await self._store.get(key) is not None]
        await self._store.delete_many(keys)
        ARCHIVE_OPERATIONS.labels(operation="delete").inc()
        logger.info("archive_deleted", tenant_id=tenant_id, keys=len(keys))
        return len(keys)

    async def list_archives(self) -> list[str]:
        """Tenant ids that have an archived Profile on this device."""
        tenants = []
        for key in await self._store.keys(f"{self._keys.archive_prefix}:"):
            tenant_id = self._keys.tenant_from_archived_profile(key)
            if tenant_id is not None:
                tenants.append(tenant_id)
        return sorted(tenants)
