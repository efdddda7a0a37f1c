"""Background sync worker.

A single long-lived task drains the sync queue through
``SyncEngine.full_sync``: periodically, and immediately whenever
``notify()`` is called (the repository's queue calls it on every enqueue).
"""

import asyncio

from larder.errors import LarderError, SyncError
from larder.observability.logging import get_logger
from larder.repository.repository import LocalRepository
from larder.sync.engine import SyncEngine
from larder.sync.models import SyncResult

logger = get_logger(__name__)


class SyncWorker:
    """Runs full syncs for the resident tenant in the background."""

    def __init__(
        self,
        engine: SyncEngine,
        repository: LocalRepository,
        interval_seconds: float = 30.0,
    ) -> None:
        self._engine = engine
        self._repository = repository
        self._interval_seconds = interval_seconds
        self._running = False
        self._wake = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._running

    def notify(self) -> None:
        """Wake the worker now instead of at the next interval."""
        self._wake.set()

    async def start(self) -> None:
        if self._running:
            logger.warning("sync_worker_already_running")
            return

        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("sync_worker_started", interval_seconds=self._interval_seconds)

    async def stop(self) -> None:
        """Stop the loop. A pull in progress is cancelled between entities."""
        if not self._running:
            return

        self._running = False
        self._engine.cancel()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("sync_worker_stopped")

    async def run_once(self) -> SyncResult | None:
        """Run one full sync for the resident tenant, if there is one."""
        tenant_id = self._repository.current_tenant_id
        if tenant_id is None:
            return None

        try:
            return await self._engine.full_sync(tenant_id)
        except SyncError as e:
            logger.warning(
                "sync_blocked_by_manifest",
                tenant_id=tenant_id,
                expected=e.expected,
                actual=e.actual,
            )
        except LarderError as e:
            logger.error("sync_cycle_failed", tenant_id=tenant_id, error=str(e))
        return None

    async def _loop(self) -> None:
        while self._running:
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self._interval_seconds)
            except TimeoutError:
                pass
            self._wake.clear()
            try:
                await self.run_once()
            except Exception as e:
                logger.error("sync_loop_error", error=str(e), error_type=type(e).__name__)
