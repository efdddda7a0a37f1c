"""Login reconciliation: decide what the device does when a tenant logs in.

Decision procedure, run once per successful login::

    HAS_PRIMARY + matches tenant  -> MATCHED
    HAS_PRIMARY + other tenant    -> archive resident, then NO_PRIMARY
    NO_PRIMARY  + archive exists  -> RESTORE
    NO_PRIMARY  + no archive      -> DOWNLOAD
    then STALENESS_CHECK          -> REFRESH (full download) if stale

Re-running it on a device that is already consistent only repeats the
staleness check.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from larder.archive.manager import ArchiveManager
from larder.audit.manifest import SyncManifest
from larder.errors import UnreachableError
from larder.observability.logging import get_logger
from larder.observability.metrics import RECONCILIATIONS
from larder.remote.store import RemoteStore
from larder.repository.download import RepositoryDownloader
from larder.repository.repository import LocalRepository
from larder.sync.engine import SyncEngine

logger = get_logger(__name__)


class ReconciliationPath(str, Enum):
    """How the tenant's data became resident."""

    MATCHED = "matched"
    RESTORE = "restore"
    DOWNLOAD = "download"


class ReconciliationOutcome(BaseModel):
    """What a reconcile() call did."""

    tenant_id: str
    path: ReconciliationPath
    archived_tenant_id: str | None = None
    found: bool = True
    stale: bool = False
    refreshed: bool = False
    offline: bool = False
    local_updated_at: datetime | None = None
    remote_updated_at: datetime | None = None


def is_stale(local: datetime | None, remote: datetime | None) -> bool:
    """A missing timestamp on either side counts as stale."""
    return local is None or remote is None or local < remote


class LoginReconciliationEngine:
    """Brings the primary repository in line with the tenant logging in."""

    def __init__(
        self,
        repository: LocalRepository,
        archive: ArchiveManager,
        downloader: RepositoryDownloader,
        remote: RemoteStore,
        sync_engine: SyncEngine | None = None,
        manifest: SyncManifest | None = None,
    ) -> None:
        self._repository = repository
        self._archive = archive
        self._downloader = downloader
        self._remote = remote
        self._sync_engine = sync_engine
        self._manifest = manifest

    async def reconcile(self, tenant_id: str) -> ReconciliationOutcome:
        """Make tenant_id the resident tenant with fresh data.

        Offline is not an error: whatever could be made resident stays
        resident and the outcome is flagged ``offline``.

        Raises:
            StorageUnavailableError: If the local store fails.
        """
        await self._repository.load_state()
        archived_tenant_id = None

        if await self._repository.exists():
            if await self._repository.matches_tenant(tenant_id):
                outcome = ReconciliationOutcome(tenant_id=tenant_id, path=ReconciliationPath.MATCHED)
                return await self._finish(await self._staleness_check(outcome))

            resident = await self._repository.get_profile()
            if resident is not None and await self._archive.archive(resident.id):
                archived_tenant_id = resident.id
                logger.info("resident_tenant_evicted", evicted=resident.id, tenant_id=tenant_id)

        if await self._archive.archived_exists(tenant_id):
            await self._archive.restore(tenant_id)
            outcome = ReconciliationOutcome(
                tenant_id=tenant_id,
                path=ReconciliationPath.RESTORE,
                archived_tenant_id=archived_tenant_id,
            )
            return await self._finish(await self._staleness_check(outcome))

        outcome = ReconciliationOutcome(
            tenant_id=tenant_id,
            path=ReconciliationPath.DOWNLOAD,
            archived_tenant_id=archived_tenant_id,
        )
        try:
            download = await self._downloader.download_all(tenant_id)
        except UnreachableError as e:
            logger.warning("download_offline", tenant_id=tenant_id, error=str(e))
            outcome.offline = True
            return await self._finish(outcome)

        if not download.profile_found:
            outcome.found = False
            return await self._finish(outcome)
        return await self._finish(await self._staleness_check(outcome))

    async def _staleness_check(self, outcome: ReconciliationOutcome) -> ReconciliationOutcome:
        tenant_id = outcome.tenant_id
        local = await self._repository.get_profile()
        outcome.local_updated_at = local.updated_at if local is not None else None

        try:
            remote = await self._remote.fetch_tenant(tenant_id)
        except UnreachableError as e:
            logger.info("staleness_check_offline", tenant_id=tenant_id, error=str(e))
            outcome.offline = True
            return outcome

        outcome.remote_updated_at = remote.updated_at if remote is not None else None
        outcome.stale = is_stale(outcome.local_updated_at, outcome.remote_updated_at)
        if not outcome.stale:
            return outcome

        logger.info(
            "tenant_data_stale",
            tenant_id=tenant_id,
            local_updated_at=outcome.local_updated_at,
            remote_updated_at=outcome.remote_updated_at,
        )
        try:
            # Pending local writes go out before the refresh overwrites them
            if self._sync_engine is not None and await self._repository.queue.pending_count() > 0:
                await self._sync_engine.push()
            download = await self._downloader.download_all(tenant_id)
        except UnreachableError as e:
            logger.warning("refresh_offline", tenant_id=tenant_id, error=str(e))
            outcome.offline = True
            return outcome

        outcome.refreshed = download.profile_found
        return outcome

    async def _finish(self, outcome: ReconciliationOutcome) -> ReconciliationOutcome:
        # Every login starts a fresh count, whatever ended up resident
        if self._manifest is not None:
            await self._manifest.set_baseline(await self._repository.counts(self._manifest.tracked))
        RECONCILIATIONS.labels(
            path=outcome.path.value,
            refreshed=str(outcome.refreshed).lower(),
        ).inc()
        logger.info(
            "login_reconciled",
            tenant_id=outcome.tenant_id,
            path=outcome.path.value,
            archived_tenant_id=outcome.archived_tenant_id,
            stale=outcome.stale,
            refreshed=outcome.refreshed,
            offline=outcome.offline,
            current_tenant_id=self._repository.current_tenant_id,
        )
        return outcome
