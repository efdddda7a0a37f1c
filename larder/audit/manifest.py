"""Sync manifest: expected record counts for bulk sync validation.

Baseline counts are captured right after a download or restore; explicit
creates and deletes are tallied on top. A full sync is only finalized when
the actual counts equal ``baseline + creates - deletes`` for every tracked
collection. This is the one hard integrity gate in the system.
"""

import asyncio
from collections.abc import Iterable, Mapping

from larder.audit.event_log import EventLog
from larder.audit.models import CollectionTally, EventAction, ManifestState
from larder.errors import SyncError
from larder.kv.store import KeyValueStore
from larder.observability.logging import get_logger
from larder.observability.metrics import MANIFEST_MISMATCHES
from larder.repository.enums import Collection
from larder.repository.models import utc_now

logger = get_logger(__name__)

DEFAULT_TRACKED: tuple[Collection, ...] = (Collection.REWARDS, Collection.CAMPAIGNS)


class SyncManifest:
    """Running tally of creates/deletes against a baseline."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = "local_repo:sync_manifest",
        tracked: Iterable[Collection] = DEFAULT_TRACKED,
        event_log: EventLog | None = None,
    ) -> None:
        self._store = store
        self._key = key
        self._tracked = tuple(tracked)
        self._event_log = event_log
        self._lock = asyncio.Lock()

    @property
    def tracked(self) -> tuple[Collection, ...]:
        return self._tracked

    def tracks(self, collection: Collection) -> bool:
        return collection in self._tracked

    async def state(self) -> ManifestState:
        raw = await self._store.get(self._key)
        if raw is None:
            return ManifestState(
                tallies={c.value: CollectionTally() for c in self._tracked}
            )
        return ManifestState.model_validate_json(raw)

    async def _write(self, state: ManifestState) -> None:
        await self._store.set(self._key, state.model_dump_json(by_alias=True).encode())

    async def set_baseline(self, counts: Mapping[Collection, int]) -> ManifestState:
        """Reset every tally to the given counts with zero deltas."""
        state = ManifestState(
            tallies={
                c.value: CollectionTally(count_at_login=counts.get(c, 0))
                for c in self._tracked
            },
            baseline_at=utc_now(),
        )
        async with self._lock:
            await self._write(state)
        logger.info(
            "manifest_baseline_set",
            counts={c.value: counts.get(c, 0) for c in self._tracked},
        )
        return state

    async def _bump(self, collection: Collection, *, creates: int = 0, deletes: int = 0, baseline: int = 0) -> None:
        if not self.tracks(collection):
            return
        async with self._lock:
            state = await self.state()
            tally = state.tallies.setdefault(collection.value, CollectionTally())
            tally.creates += creates
            tally.deletes += deletes
            tally.count_at_login += baseline
            await self._write(state)

    async def tally_create(self, collection: Collection) -> None:
        await self._bump(collection, creates=1)

    async def tally_delete(self, collection: Collection) -> None:
        await self._bump(collection, deletes=1)

    async def absorb_remote_insert(self, collection: Collection, count: int = 1) -> None:
        """Raise the baseline for records that arrived from the remote via pull."""
        if count > 0:
            await self._bump(collection, baseline=count)

    async def expected_counts(self) -> dict[Collection, int]:
        state = await self.state()
        return {
            c: state.tallies.get(c.value, CollectionTally()).expected
            for c in self._tracked
        }

    async def validate_dump(self, actual: Mapping[Collection, int]) -> None:
        """Compare actual counts with the manifest.

        Raises:
            SyncError: If any tracked collection's count differs. A
                SYNC_ERROR event is appended before raising.
        """
        expected = await self.expected_counts()
        mismatched = [c for c in self._tracked if actual.get(c, 0) != expected[c]]
        if not mismatched:
            logger.debug("manifest_validated", counts={c.value: n for c, n in expected.items()})
            return

        expected_out = {c.value: expected[c] for c in self._tracked}
        actual_out = {c.value: actual.get(c, 0) for c in self._tracked}
        for collection in mismatched:
            MANIFEST_MISMATCHES.labels(collection=collection.value).inc()

        logger.error("manifest_mismatch", expected=expected_out, actual=actual_out)
        if self._event_log is not None:
            await self._event_log.record_event(
                EventAction.SYNC_ERROR,
                {
                    "reason": "manifest_mismatch",
                    "expected": expected_out,
                    "actual": actual_out,
                },
            )
        raise SyncError(
            "Record counts do not match the sync manifest: "
            + ", ".join(
                f"{c.value} expected {expected[c]} got {actual.get(c, 0)}"
                for c in mismatched
            ),
            expected=expected_out,
            actual=actual_out,
        )
