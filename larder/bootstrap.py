"""Wiring of a device's components from settings.

``build_device`` is the single place where stores, repository, archive
manager, reconciliation and sync are constructed and connected.
"""

import redis.asyncio as redis

from larder.archive.manager import ArchiveManager
from larder.audit.event_log import EventLog
from larder.audit.manifest import SyncManifest
from larder.audit.models import EventAction
from larder.config import get_settings
from larder.config.settings import Settings
from larder.kv.store import KeyValueStore
from larder.kv.stores import InMemoryKeyValueStore, RedisKeyValueStore
from larder.observability.logging import get_logger, setup_logging
from larder.reconciliation.engine import LoginReconciliationEngine, ReconciliationOutcome
from larder.remote.store import RemoteStore
from larder.remote.stores import InMemoryRemoteStore, RedisRemoteStore
from larder.repository.download import RepositoryDownloader
from larder.repository.enums import Collection
from larder.repository.keys import RepositoryKeys
from larder.repository.repository import LocalRepository
from larder.sync.engine import SyncEngine
from larder.sync.worker import SyncWorker

logger = get_logger(__name__)

DEFAULT_REDIS_URL = "redis://localhost:6379"


class Device:
    """One device's view of the system: the UI layer talks only to this."""

    def __init__(
        self,
        *,
        store: KeyValueStore,
        remote: RemoteStore,
        repository: LocalRepository,
        archive: ArchiveManager,
        event_log: EventLog,
        manifest: SyncManifest,
        sync_engine: SyncEngine,
        reconciler: LoginReconciliationEngine,
        worker: SyncWorker,
    ) -> None:
        self.store = store
        self.remote = remote
        self.repository = repository
        self.archive = archive
        self.event_log = event_log
        self.manifest = manifest
        self.sync_engine = sync_engine
        self.reconciler = reconciler
        self.worker = worker

    async def login(self, tenant_id: str) -> ReconciliationOutcome:
        """Reconcile the device for tenant_id, then record the login.

        Call exactly once per successful authentication, before any tenant
        data is rendered.
        """
        outcome = await self.reconciler.reconcile(tenant_id)
        counts = await self.repository.counts()
        await self.event_log.record_event(
            EventAction.LOGIN,
            {
                "tenantId": tenant_id,
                "path": outcome.path.value,
                "rewards": counts[Collection.REWARDS],
                "campaigns": counts[Collection.CAMPAIGNS],
            },
        )
        return outcome

    async def logout(self) -> None:
        """Record the logout. Primary data stays resident for fast re-login."""
        await self.event_log.record_event(
            EventAction.LOGOUT,
            {"tenantId": self.repository.current_tenant_id},
        )

    async def start_sync(self) -> None:
        await self.worker.start()

    async def close(self) -> None:
        await self.worker.stop()
        for resource in (self.store, self.remote):
            close = getattr(resource, "close", None)
            if close is not None:
                await close()
        logger.info("device_closed")


def _local_store(settings: Settings) -> KeyValueStore:
    config = settings.storage
    if config.backend == "redis":
        url = config.connection_url or DEFAULT_REDIS_URL
        # Values are raw bytes; decoding happens at the repository boundary
        client = redis.from_url(url, decode_responses=False)
        logger.info("local_store_connected", url=url.split("@")[-1])
        return RedisKeyValueStore(client)
    return InMemoryKeyValueStore()


def _remote_store(settings: Settings) -> RemoteStore:
    config = settings.remote
    if config.backend == "redis":
        url = config.connection_url or DEFAULT_REDIS_URL
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=config.timeout_seconds,
            socket_connect_timeout=config.timeout_seconds,
        )
        logger.info("remote_store_connected", url=url.split("@")[-1])
        return RedisRemoteStore(client, config)
    return InMemoryRemoteStore()


def build_device(
    settings: Settings | None = None,
    *,
    store: KeyValueStore | None = None,
    remote: RemoteStore | None = None,
) -> Device:
    """Construct a Device from settings.

    Args:
        settings: Configuration; defaults to get_settings()
        store: Device-local store, overriding the configured backend
        remote: Remote store, overriding the configured backend
    """
    settings = settings or get_settings()
    logging_config = settings.observability.logging
    setup_logging(
        level=logging_config.level,
        format=logging_config.format,
        redact_pii=logging_config.redact_pii,
    )

    store = store or _local_store(settings)
    remote = remote or _remote_store(settings)
    keys = RepositoryKeys(settings.storage.key_prefix, settings.storage.archive_prefix)

    event_log = EventLog(store, keys.event_log, capacity=settings.event_log.capacity)
    manifest = SyncManifest(
        store,
        keys.sync_manifest,
        tracked=settings.sync.tracked_collections,
        event_log=event_log,
    )
    repository = LocalRepository(store, keys=keys, manifest=manifest, event_log=event_log)
    archive = ArchiveManager(repository, manifest)
    downloader = RepositoryDownloader(repository, remote, manifest)
    sync_engine = SyncEngine(
        repository,
        remote,
        manifest=manifest,
        event_log=event_log,
        max_retries=settings.sync.max_retries,
    )
    reconciler = LoginReconciliationEngine(
        repository, archive, downloader, remote, sync_engine, manifest=manifest
    )
    worker = SyncWorker(sync_engine, repository, interval_seconds=settings.sync.interval_seconds)
    repository.queue.subscribe(worker.notify)

    logger.info(
        "device_built",
        storage_backend=settings.storage.backend,
        remote_backend=settings.remote.backend,
    )
    return Device(
        store=store,
        remote=remote,
        repository=repository,
        archive=archive,
        event_log=event_log,
        manifest=manifest,
        sync_engine=sync_engine,
        reconciler=reconciler,
        worker=worker,
    )
