"""Full download of a tenant from the remote store into the primary slot.

Used for first login on a device (DOWNLOAD) and for stale data (REFRESH).
Everything is fetched before anything is written, so a download that is
cancelled or loses the network mid-way leaves the repository untouched.
"""

import asyncio

from pydantic import BaseModel, Field

from larder.audit.manifest import SyncManifest
from larder.errors import UnreachableError
from larder.observability.logging import get_logger
from larder.remote.store import RemoteStore
from larder.repository.enums import Collection
from larder.repository.models import Record
from larder.repository.repository import LIST_COLLECTIONS, LocalRepository

logger = get_logger(__name__)


class DownloadResult(BaseModel):
    """Outcome of download_all."""

    tenant_id: str
    profile_found: bool = True
    counts: dict[Collection, int] = Field(default_factory=dict)
    preserved_deletions: int = 0


class RepositoryDownloader:
    """Fetches a tenant's records and hands them to the repository."""

    def __init__(
        self,
        repository: LocalRepository,
        remote: RemoteStore,
        manifest: SyncManifest | None = None,
    ) -> None:
        self._repository = repository
        self._remote = remote
        self._manifest = manifest

    async def download_all(self, tenant_id: str) -> DownloadResult:
        """Overwrite the primary repository with the remote copy of tenant_id.

        Rewards in the local trash and records with a pending local delete
        are not resurrected. Records still dirty locally are kept.

        Raises:
            UnreachableError: If the remote store cannot be reached.
        """
        if not await self._remote.is_reachable():
            raise UnreachableError(f"Remote store unreachable; cannot download {tenant_id}")

        profile = await self._remote.fetch_tenant(tenant_id)
        if profile is None:
            logger.warning("download_tenant_not_found", tenant_id=tenant_id)
            return DownloadResult(tenant_id=tenant_id, profile_found=False)
        if profile.id != tenant_id:
            profile = profile.model_copy(update={"id": tenant_id})

        trashed = {reward.id for reward in await self._repository.trash()}
        collections: dict[Collection, list[Record]] = {}
        preserved = 0
        for collection in LIST_COLLECTIONS:
            skip = await self._repository.queue.pending_deletes(collection)
            if collection is Collection.REWARDS:
                skip |= trashed
            records = []
            for record in await self._remote.fetch_all(tenant_id, collection):
                if record.id in skip:
                    preserved += 1
                    logger.debug(
                        "download_preserving_local_delete",
                        collection=collection.value,
                        record_id=record.id,
                    )
                    continue
                records.append(record)
            collections[collection] = records

        # Shielded so cancellation cannot interrupt the write phase
        await asyncio.shield(self._repository.apply_download(tenant_id, profile, collections))

        counts = await self._repository.counts(collections)
        if self._manifest is not None:
            await self._manifest.set_baseline(counts)

        logger.info(
            "tenant_downloaded",
            tenant_id=tenant_id,
            counts={c.value: n for c, n in counts.items()},
            preserved_deletions=preserved,
        )
        return DownloadResult(
            tenant_id=tenant_id,
            counts=counts,
            preserved_deletions=preserved,
        )
