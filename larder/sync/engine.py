"""Synchronization engine: push queued mutations, pull remote records.

Push and pull degrade to zero-progress results when the remote store is
unreachable; offline is a normal state, not a failure. A full sync is
only marked as synced after the manifest check passes.
"""

import asyncio

from larder.audit.event_log import EventLog
from larder.audit.manifest import SyncManifest
from larder.audit.models import EventAction
from larder.errors import SyncError, UnreachableError
from larder.observability.logging import get_logger
from larder.observability.metrics import (
    CONFLICT_RESOLUTIONS,
    MUTATIONS_DROPPED,
    MUTATIONS_FAILED,
    MUTATIONS_PUSHED,
    RECORDS_PULLED,
    SYNC_LATENCY,
)
from larder.remote.store import RemoteStore
from larder.repository.enums import Collection
from larder.repository.models import Record, utc_now
from larder.repository.repository import LIST_COLLECTIONS, LocalRepository
from larder.sync.conflict import resolve_records
from larder.sync.models import (
    ConflictResolution,
    MutationType,
    PendingMutation,
    PullResult,
    PushResult,
    SyncResult,
    SyncStatus,
)
from larder.sync.queue import SyncQueue

logger = get_logger(__name__)

ALREADY_RUNNING = "sync already in progress"


class SyncEngine:
    """Moves changes between the local repository and the remote store."""

    def __init__(
        self,
        repository: LocalRepository,
        remote: RemoteStore,
        *,
        queue: SyncQueue | None = None,
        manifest: SyncManifest | None = None,
        event_log: EventLog | None = None,
        max_retries: int = 3,
    ) -> None:
        self._repository = repository
        self._remote = remote
        self._queue = queue or repository.queue
        self._manifest = manifest
        self._event_log = event_log
        self._max_retries = max_retries
        self._syncing = False
        self._cancel = asyncio.Event()
        self._last_error: str | None = None

    @property
    def is_syncing(self) -> bool:
        return self._syncing

    def cancel(self) -> None:
        """Ask a running pull to stop after the current entity."""
        self._cancel.set()

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    async def push(self) -> PushResult:
        """Send every queued mutation to the remote store.

        Successful items are removed from the queue. Items that fail are
        requeued with one more retry until the ceiling, then dropped with a
        SYNC_ERROR event. The local record itself is never touched by a drop.
        """
        result = PushResult()
        tenant_id = self._repository.current_tenant_id
        if tenant_id is None:
            return result
        if not await self._remote.is_reachable():
            logger.debug("push_skipped_offline")
            return result

        for mutation in await self._queue.all():
            try:
                sent = await self._send(tenant_id, mutation)
            except UnreachableError as e:
                await self._requeue(mutation, str(e), result)
                continue

            await self._queue.remove(mutation.op_id)
            if sent:
                result.pushed += 1
                MUTATIONS_PUSHED.labels(
                    collection=mutation.collection.value,
                    type=mutation.type.value,
                ).inc()
            else:
                result.skipped += 1

        if result.pushed or result.failed or result.dropped:
            logger.info(
                "push_completed",
                tenant_id=tenant_id,
                pushed=result.pushed,
                failed=result.failed,
                dropped=result.dropped,
                skipped=result.skipped,
            )
        return result

    async def _send(self, tenant_id: str, mutation: PendingMutation) -> bool:
        """Push one mutation. Returns False if there was nothing to send."""
        if mutation.type is MutationType.DELETE:
            await self._remote.delete_record(tenant_id, mutation.collection, mutation.entity_id)
            return True

        # The current record is sent, not the one at enqueue time
        record = await self._repository.get_by_id(mutation.collection, mutation.entity_id)
        if record is None:
            logger.debug(
                "push_record_gone",
                collection=mutation.collection.value,
                entity_id=mutation.entity_id,
            )
            return False

        await self._remote.push_record(tenant_id, mutation.collection, record)
        await self._repository.mark_clean(mutation.collection, record.id, record.version)
        return True

    async def _requeue(self, mutation: PendingMutation, error: str, result: PushResult) -> None:
        retries = mutation.retries + 1
        collection = mutation.collection.value
        if retries < self._max_retries:
            await self._queue.update(mutation.model_copy(update={"retries": retries}))
            result.failed += 1
            MUTATIONS_FAILED.labels(collection=collection).inc()
            logger.warning(
                "push_failed",
                collection=collection,
                entity_id=mutation.entity_id,
                retries=retries,
                error=error,
            )
            return

        await self._queue.remove(mutation.op_id)
        result.dropped += 1
        result.errors.append(f"{collection}/{mutation.entity_id}: {error}")
        MUTATIONS_DROPPED.labels(collection=collection).inc()
        logger.error(
            "push_dropped",
            collection=collection,
            entity_id=mutation.entity_id,
            retries=retries,
            error=error,
        )
        if self._event_log is not None:
            await self._event_log.record_event(
                EventAction.SYNC_ERROR,
                {
                    "reason": "push_dropped",
                    "entityType": mutation.collection.entity_name,
                    "entityId": mutation.entity_id,
                    "operation": mutation.type.value,
                    "retries": retries,
                    "error": error,
                },
            )

    # ------------------------------------------------------------------
    # Pull
    # ------------------------------------------------------------------

    async def pull(self, tenant_id: str, cancel: asyncio.Event | None = None) -> PullResult:
        """Fetch the tenant's records and reconcile each with the local copy.

        A local winner that is still dirty is pushed back instead of being
        overwritten. Cancellation is honored between entities.
        """
        result = PullResult()
        cancel = cancel or self._cancel
        if self._repository.current_tenant_id != tenant_id:
            result.errors.append(f"tenant {tenant_id} is not resident")
            logger.warning(
                "pull_tenant_not_resident",
                tenant_id=tenant_id,
                resident=self._repository.current_tenant_id,
            )
            return result
        if not await self._remote.is_reachable():
            logger.debug("pull_skipped_offline", tenant_id=tenant_id)
            return result

        try:
            remote_profile = await self._remote.fetch_tenant(tenant_id)
            if remote_profile is not None:
                await self._reconcile(tenant_id, Collection.PROFILE, remote_profile, result)

            for collection in LIST_COLLECTIONS:
                skip = await self._queue.pending_deletes(collection)
                if collection is Collection.REWARDS:
                    skip |= {r.id for r in await self._repository.trash()}

                for record_id in sorted(await self._remote.fetch_id_set(tenant_id, collection)):
                    if cancel.is_set():
                        result.cancelled = True
                        logger.info("pull_cancelled", tenant_id=tenant_id, pulled=result.pulled)
                        return result
                    if record_id in skip:
                        continue
                    remote = await self._remote.fetch_record(tenant_id, collection, record_id)
                    if remote is not None:
                        await self._reconcile(tenant_id, collection, remote, result)
        except UnreachableError as e:
            result.errors.append(str(e))
            logger.warning("pull_interrupted", tenant_id=tenant_id, error=str(e))
            return result

        logger.info(
            "pull_completed",
            tenant_id=tenant_id,
            pulled=result.pulled,
            inserted=result.inserted,
            overwritten=result.overwritten,
            kept_local=result.kept_local,
            pushed_back=result.pushed_back,
        )
        return result

    async def _reconcile(
        self,
        tenant_id: str,
        collection: Collection,
        remote: Record,
        result: PullResult,
    ) -> None:
        result.pulled += 1
        RECORDS_PULLED.labels(collection=collection.value).inc()

        local, winner = await self._repository.merge_remote(collection, remote, resolve_records)
        if local is None:
            result.inserted += 1
            if self._manifest is not None:
                await self._manifest.absorb_remote_insert(collection)
            return

        CONFLICT_RESOLUTIONS.labels(collection=collection.value, winner=winner.value).inc()
        if winner is ConflictResolution.REMOTE:
            result.overwritten += 1
        elif local.dirty:
            # mark_clean is a no-op if a newer local write landed meanwhile
            await self._remote.push_record(tenant_id, collection, local)
            await self._repository.mark_clean(collection, local.id, local.version)
            result.pushed_back += 1
        else:
            result.kept_local += 1

    # ------------------------------------------------------------------
    # Full sync
    # ------------------------------------------------------------------

    async def full_sync(self, tenant_id: str) -> SyncResult:
        """Push, pull, validate against the manifest, then mark synced.

        A second call while one is running returns at once with an
        "already in progress" error.

        Raises:
            SyncError: If the manifest check fails. Nothing is marked synced
                and the pushed and pulled data stays in place for a retry.
        """
        if self._syncing:
            logger.warning("sync_already_running", tenant_id=tenant_id)
            return SyncResult(errors=[ALREADY_RUNNING])

        self._syncing = True
        self._cancel.clear()
        try:
            with SYNC_LATENCY.time():
                return await self._full_sync(tenant_id)
        finally:
            self._syncing = False

    async def _full_sync(self, tenant_id: str) -> SyncResult:
        result = SyncResult()
        if not await self._remote.is_reachable():
            logger.debug("sync_skipped_offline", tenant_id=tenant_id)
            return result

        result.push = await self.push()
        result.pull = await self.pull(tenant_id, self._cancel)
        result.errors = result.push.errors + result.pull.errors

        if result.pull.cancelled or result.errors:
            self._last_error = result.errors[0] if result.errors else None
            return result
        if await self._queue.pending_count() > 0:
            logger.info("sync_not_finalized_pending", tenant_id=tenant_id)
            return result

        counts = await self._repository.counts()
        if self._manifest is not None:
            try:
                await self._manifest.validate_dump(counts)
            except SyncError as e:
                self._last_error = e.message
                raise

        await self._repository.update_metadata(
            last_synced_at=utc_now(),
            has_unsynced_changes=False,
        )
        if self._manifest is not None:
            await self._manifest.set_baseline(counts)
        result.finalized = True
        self._last_error = None
        logger.info(
            "sync_finalized",
            tenant_id=tenant_id,
            pushed=result.push.pushed,
            pulled=result.pull.pulled,
        )
        return result

    async def sync_status(self) -> SyncStatus:
        metadata = await self._repository.metadata()
        return SyncStatus(
            is_online=await self._remote.is_reachable(),
            is_syncing=self._syncing,
            pending_operations=await self._queue.pending_count(),
            last_synced_at=metadata.last_synced_at,
            has_unsynced_changes=metadata.has_unsynced_changes,
            last_error=self._last_error,
        )
