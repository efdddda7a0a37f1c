"""LocalRepository: typed collections over the device key-value store.

Every collection is stored as one JSON value and written whole
(read-modify-write). Mutations are serialized per collection through an
asyncio.Lock; archive, restore and download take every lock at once via
``exclusive()``.

Writes made by the UI are "dirtying": they bump the record and repository
versions, set ``dirty``/``has_unsynced_changes``, enqueue a pending
mutation, tally the manifest and append to the event log. Writes made on
behalf of download, restore or pull are not.
"""

import asyncio
from collections.abc import AsyncIterator, Callable, Iterable, Mapping
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from larder.audit.event_log import EventLog
from larder.audit.manifest import SyncManifest
from larder.audit.models import EventAction
from larder.errors import StorageUnavailableError
from larder.kv.store import KeyValueStore
from larder.observability.logging import get_logger
from larder.observability.metrics import REPOSITORY_WRITES
from larder.repository.enums import Collection
from larder.repository.keys import RepositoryKeys
from larder.repository.models import (
    LIST_ADAPTERS,
    RECORD_TYPES,
    Profile,
    Record,
    RepositoryState,
    Reward,
    SyncMetadata,
    utc_now,
)
from larder.sync.models import ConflictResolution, MutationType, PendingMutation
from larder.sync.queue import SyncQueue

logger = get_logger(__name__)

LIST_COLLECTIONS: tuple[Collection, ...] = (
    Collection.REWARDS,
    Collection.CAMPAIGNS,
    Collection.CUSTOMERS,
)

_TRASH = LIST_ADAPTERS[Collection.REWARDS]


def _later(now: datetime, previous: datetime | None) -> datetime:
    # updatedAt never goes backwards for a record
    if previous is not None and previous > now:
        return previous
    return now


class LocalRepository:
    """The single resident tenant's data on this device."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        keys: RepositoryKeys | None = None,
        queue: SyncQueue | None = None,
        manifest: SyncManifest | None = None,
        event_log: EventLog | None = None,
    ) -> None:
        self.store = store
        self.keys = keys or RepositoryKeys()
        self.state = RepositoryState()
        self.queue = queue or SyncQueue(store, self.keys.sync_queue)
        self.manifest = manifest
        self.event_log = event_log
        self._locks = {collection: asyncio.Lock() for collection in Collection}
        self._metadata_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Raw access
    # ------------------------------------------------------------------

    def _coerce(self, collection: Collection, record: Record | Mapping[str, Any]) -> Record:
        record_type = RECORD_TYPES[collection]
        if isinstance(record, record_type):
            return record
        if isinstance(record, Record):
            return record_type.model_validate(record.to_wire())
        return record_type.model_validate(dict(record))

    async def _read_profile(self) -> Profile | None:
        key = self.keys.collection(Collection.PROFILE)
        raw = await self.store.get(key)
        if raw is None:
            return None
        try:
            return Profile.model_validate_json(raw)
        except ValidationError as e:
            raise StorageUnavailableError(f"Corrupt profile at {key}", cause=e) from e

    async def _write_profile(self, profile: Profile) -> None:
        await self.store.set(
            self.keys.collection(Collection.PROFILE),
            profile.model_dump_json(by_alias=True).encode(),
        )

    async def _read_list(self, collection: Collection) -> list[Record]:
        key = self.keys.collection(collection)
        raw = await self.store.get(key)
        if raw is None:
            return []
        try:
            return LIST_ADAPTERS[collection].validate_json(raw)
        except ValidationError as e:
            raise StorageUnavailableError(f"Corrupt {collection.value} at {key}", cause=e) from e

    async def _write_list(self, collection: Collection, records: list[Record]) -> None:
        await self.store.set(
            self.keys.collection(collection),
            LIST_ADAPTERS[collection].dump_json(records, by_alias=True),
        )

    async def _read_trash(self) -> list[Reward]:
        raw = await self.store.get(self.keys.rewards_trash)
        if raw is None:
            return []
        try:
            return _TRASH.validate_json(raw)
        except ValidationError as e:
            raise StorageUnavailableError("Corrupt rewards trash", cause=e) from e

    async def _read_metadata(self) -> SyncMetadata:
        raw = await self.store.get(self.keys.sync_metadata)
        if raw is None:
            return SyncMetadata()
        try:
            return SyncMetadata.model_validate_json(raw)
        except ValidationError as e:
            raise StorageUnavailableError("Corrupt sync metadata", cause=e) from e

    async def _write_metadata(self, metadata: SyncMetadata) -> None:
        await self.store.set(
            self.keys.sync_metadata,
            metadata.model_dump_json(by_alias=True).encode(),
        )

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        """Hold every collection lock and the metadata lock.

        Locks are always taken in the same order (collections, then
        metadata) so this cannot deadlock against single-collection writers.
        """
        async with AsyncExitStack() as stack:
            for collection in Collection:
                await stack.enter_async_context(self._locks[collection])
            await stack.enter_async_context(self._metadata_lock)
            yield

    # ------------------------------------------------------------------
    # Resident tenant
    # ------------------------------------------------------------------

    async def load_state(self) -> RepositoryState:
        """Load the resident tenant pointer and repair it if inconsistent.

        A pointer without a matching Profile is dropped; a Profile without
        a pointer (an interrupted download) is adopted.
        """
        raw = await self.store.get(self.keys.current_tenant)
        tenant_id = raw.decode() if raw is not None else None
        profile = await self._read_profile()

        if tenant_id is not None and (profile is None or profile.id != tenant_id):
            logger.warning("dangling_tenant_pointer", tenant_id=tenant_id)
            await self.store.delete(self.keys.current_tenant)
            tenant_id = None
        if tenant_id is None and profile is not None:
            logger.warning("adopting_unpointed_profile", tenant_id=profile.id)
            await self.store.set(self.keys.current_tenant, profile.id.encode())
            tenant_id = profile.id

        self.state.current_tenant_id = tenant_id
        return self.state

    @property
    def current_tenant_id(self) -> str | None:
        return self.state.current_tenant_id

    async def exists(self) -> bool:
        """True iff a Profile is present in the primary repository."""
        return await self._read_profile() is not None

    async def matches_tenant(self, tenant_id: str) -> bool:
        profile = await self._read_profile()
        return profile is not None and profile.id == tenant_id

    async def assign_tenant(self, tenant_id: str) -> None:
        """Point the primary slot at tenant_id. Caller must hold exclusive().

        Raises:
            ValueError: If no Profile with that id is resident.
        """
        profile = await self._read_profile()
        if profile is None or profile.id != tenant_id:
            raise ValueError(f"Cannot point repository at {tenant_id}: profile not resident")
        await self.store.set(self.keys.current_tenant, tenant_id.encode())
        self.state.current_tenant_id = tenant_id

    async def reset_primary(self) -> None:
        """Delete every primary key in one batch. Caller must hold exclusive()."""
        await self.store.delete_many(self.keys.primary_keys())
        self.state.current_tenant_id = None

    async def clear(self) -> None:
        """Empty the primary repository. Archives are left untouched."""
        async with self.exclusive():
            await self.reset_primary()
        logger.info("repository_cleared")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, collection: Collection) -> list[Record]:
        """All records of a collection (the profile collection has 0 or 1)."""
        if collection is Collection.PROFILE:
            profile = await self._read_profile()
            return [profile] if profile is not None else []
        return await self._read_list(collection)

    async def get_profile(self) -> Profile | None:
        return await self._read_profile()

    async def get_by_id(self, collection: Collection, record_id: str) -> Record | None:
        for record in await self.get(collection):
            if record.id == record_id:
                return record
        return None

    async def active_rewards(self) -> list[Reward]:
        rewards = await self._read_list(Collection.REWARDS)
        return [r for r in rewards if isinstance(r, Reward) and r.is_active]

    async def trash(self) -> list[Reward]:
        """Rewards deleted locally; never resurrected by a download."""
        return await self._read_trash()

    async def counts(self, collections: Iterable[Collection] = LIST_COLLECTIONS) -> dict[Collection, int]:
        return {c: len(await self._read_list(c)) for c in collections}

    async def metadata(self) -> SyncMetadata:
        return await self._read_metadata()

    async def sync_status(self) -> SyncMetadata:
        return await self._read_metadata()

    # ------------------------------------------------------------------
    # Dirtying writes
    # ------------------------------------------------------------------

    def _stamp(self, record: Record, previous: Record | None) -> Record:
        now = utc_now()
        if previous is None:
            created_at = record.created_at or now
            updated_at = now
            version = record.version + 1
        else:
            created_at = previous.created_at or record.created_at
            updated_at = _later(now, previous.updated_at)
            version = max(record.version, previous.version) + 1
        return record.model_copy(
            update={
                "created_at": created_at,
                "updated_at": updated_at,
                "version": version,
                "dirty": True,
            }
        )

    async def save(self, collection: Collection, record: Record | Mapping[str, Any]) -> Record:
        """Upsert a record by id and stamp ``updatedAt``.

        An existing record is replaced entirely except for ``createdAt``.
        """
        if collection is Collection.PROFILE:
            return await self.save_profile(record)

        record = self._coerce(collection, record)
        async with self._locks[collection]:
            records = await self._read_list(collection)
            index = next((i for i, r in enumerate(records) if r.id == record.id), None)
            previous = records[index] if index is not None else None
            saved = self._stamp(record, previous)
            if index is None:
                records.append(saved)
            else:
                records[index] = saved
            await self._write_list(collection, records)

        await self._after_write(
            collection,
            saved,
            MutationType.CREATE if previous is None else MutationType.UPDATE,
        )
        return saved

    async def save_profile(self, profile: Profile | Mapping[str, Any]) -> Profile:
        """Create or replace the business profile.

        Saving the first profile into an empty repository makes its id the
        resident tenant.

        Raises:
            ValueError: If the profile belongs to a different tenant than
                the one resident.
        """
        profile = self._coerce(Collection.PROFILE, profile)
        async with self._locks[Collection.PROFILE]:
            previous = await self._read_profile()
            resident = self.state.current_tenant_id or (previous.id if previous else None)
            if resident is not None and profile.id != resident:
                raise ValueError(
                    f"Profile {profile.id} does not belong to resident tenant {resident}"
                )
            saved = self._stamp(profile, previous)
            await self._write_profile(saved)
            if self.state.current_tenant_id is None:
                await self.store.set(self.keys.current_tenant, saved.id.encode())
                self.state.current_tenant_id = saved.id

        await self._after_write(
            Collection.PROFILE,
            saved,
            MutationType.CREATE if previous is None else MutationType.UPDATE,
        )
        return saved

    async def delete(self, collection: Collection, record_id: str) -> bool:
        """Delete a record by id. Returns False if it did not exist.

        Deleted rewards are also kept, inactive, in the rewards trash.

        Raises:
            ValueError: For the profile; archive or clear the repository instead.
        """
        if collection is Collection.PROFILE:
            raise ValueError("The profile cannot be deleted; archive or clear the repository")

        async with self._locks[collection]:
            records = await self._read_list(collection)
            victim = next((r for r in records if r.id == record_id), None)
            if victim is None:
                logger.warning(
                    "delete_missing_record",
                    collection=collection.value,
                    record_id=record_id,
                )
                return False

            if collection is Collection.REWARDS:
                trashed = victim.model_copy(
                    update={
                        "is_active": False,
                        "updated_at": _later(utc_now(), victim.updated_at),
                        "version": victim.version + 1,
                        "dirty": True,
                    }
                )
                trash = [r for r in await self._read_trash() if r.id != record_id]
                trash.append(trashed)
                await self.store.set(self.keys.rewards_trash, _TRASH.dump_json(trash, by_alias=True))

            await self._write_list(collection, [r for r in records if r.id != record_id])

        await self._after_write(collection, victim, MutationType.DELETE)
        return True

    async def _after_write(
        self,
        collection: Collection,
        record: Record,
        mutation_type: MutationType,
    ) -> None:
        metadata = await self._touch_metadata()
        await self.queue.enqueue(
            PendingMutation(
                type=mutation_type,
                collection=collection,
                entity_id=record.id,
                version=metadata.version,
            )
        )

        if self.manifest is not None:
            if mutation_type is MutationType.CREATE:
                await self.manifest.tally_create(collection)
            elif mutation_type is MutationType.DELETE:
                await self.manifest.tally_delete(collection)

        if self.event_log is not None:
            action = {
                MutationType.CREATE: EventAction.CREATE,
                MutationType.UPDATE: EventAction.EDIT,
                MutationType.DELETE: EventAction.DELETE,
            }[mutation_type]
            await self.event_log.record_event(
                action,
                {
                    "entityType": collection.entity_name,
                    "entityId": record.id,
                    "name": getattr(record, "name", ""),
                },
            )

        REPOSITORY_WRITES.labels(collection=collection.value, operation=mutation_type.value).inc()
        logger.info(
            "record_written",
            collection=collection.value,
            record_id=record.id,
            operation=mutation_type.value,
            version=record.version,
            repository_version=metadata.version,
        )

    async def _touch_metadata(self) -> SyncMetadata:
        async with self._metadata_lock:
            metadata = await self._read_metadata()
            metadata.version += 1
            metadata.has_unsynced_changes = True
            metadata.last_modified = utc_now()
            await self._write_metadata(metadata)
            return metadata

    # ------------------------------------------------------------------
    # Non-dirtying writes (download, pull, push bookkeeping)
    # ------------------------------------------------------------------

    async def update_metadata(self, **changes: Any) -> SyncMetadata:
        async with self._metadata_lock:
            metadata = await self._read_metadata()
            for name, value in changes.items():
                setattr(metadata, name, value)
            await self._write_metadata(metadata)
            return metadata

    async def replace_all(self, collection: Collection, records: Iterable[Record]) -> None:
        """Overwrite a whole collection without dirtying or tallying."""
        items = [self._coerce(collection, r) for r in records]
        async with self._locks[collection]:
            if collection is Collection.PROFILE:
                if len(items) != 1:
                    raise ValueError("The profile collection holds exactly one record")
                await self._write_profile(items[0])
            else:
                await self._write_list(collection, items)

    async def merge_remote(
        self,
        collection: Collection,
        record: Record,
        resolve: Callable[[Record, Record], ConflictResolution],
    ) -> tuple[Record | None, ConflictResolution | None]:
        """Reconcile a remote record with the local copy under one lock hold.

        The local copy is read, resolved against the remote one and, when
        the remote side wins or there is no local copy, replaced, all while
        the collection lock is held. Returns the local copy as it was read
        (None on insert) and the winner (None on insert).

        Raises:
            ValueError: If a remote profile belongs to another tenant.
        """
        remote = self._coerce(collection, record).model_copy(update={"dirty": False})
        async with self._locks[collection]:
            if collection is Collection.PROFILE:
                local = await self._read_profile()
                if local is not None and local.id != remote.id:
                    raise ValueError(f"Remote profile {remote.id} is not the resident tenant")
                winner = resolve(local, remote) if local is not None else None
                if winner is not ConflictResolution.LOCAL:
                    await self._write_profile(remote)
                return local, winner

            records = await self._read_list(collection)
            index = next((i for i, r in enumerate(records) if r.id == remote.id), None)
            if index is None:
                records.append(remote)
                await self._write_list(collection, records)
                return None, None

            local = records[index]
            winner = resolve(local, remote)
            if winner is ConflictResolution.REMOTE:
                records[index] = remote
                await self._write_list(collection, records)
            return local, winner

    async def mark_clean(self, collection: Collection, record_id: str, version: int) -> bool:
        """Clear ``dirty`` if the record is still at the pushed version."""
        async with self._locks[collection]:
            if collection is Collection.PROFILE:
                profile = await self._read_profile()
                if profile is None or profile.id != record_id or profile.version != version:
                    return False
                await self._write_profile(profile.model_copy(update={"dirty": False}))
                return True

            records = await self._read_list(collection)
            for index, record in enumerate(records):
                if record.id == record_id and record.version == version:
                    records[index] = record.model_copy(update={"dirty": False})
                    await self._write_list(collection, records)
                    return True
            return False

    async def apply_download(
        self,
        tenant_id: str,
        profile: Profile,
        collections: Mapping[Collection, list[Record]],
    ) -> SyncMetadata:
        """Replace the primary repository with downloaded data.

        Local records that are still dirty survive the overwrite, so a
        refresh never discards a write that has not reached the remote
        store. The tenant pointer is written last, after the Profile exists.

        Raises:
            ValueError: If a different tenant is resident.
        """
        if profile.id != tenant_id:
            raise ValueError(f"Downloaded profile {profile.id} does not match {tenant_id}")

        kept = 0
        async with self.exclusive():
            resident = await self._read_profile()
            if resident is not None and resident.id != tenant_id:
                raise ValueError(
                    f"Tenant {resident.id} is resident; archive it before downloading {tenant_id}"
                )
            for collection, records in collections.items():
                dirty = {r.id: r for r in await self._read_list(collection) if r.dirty}
                kept += len(dirty)
                merged = [
                    dirty.pop(r.id, None) or self._coerce(collection, r).model_copy(update={"dirty": False})
                    for r in records
                ]
                await self._write_list(collection, merged + list(dirty.values()))

            if resident is not None and resident.dirty:
                kept += 1
            else:
                await self._write_profile(profile.model_copy(update={"dirty": False}))

            metadata = await self._read_metadata()
            metadata.last_downloaded_at = utc_now()
            metadata.has_unsynced_changes = kept > 0 or await self.queue.pending_count() > 0
            await self._write_metadata(metadata)

            await self.assign_tenant(tenant_id)

        if kept:
            logger.info("download_kept_local_writes", tenant_id=tenant_id, kept=kept)
        return metadata
