"""Tests for ArchiveManager."""

import pytest

from larder.archive.manager import ArchiveManager
from larder.errors import ArchiveNotFoundError
from larder.repository.enums import Collection
from tests.factories import RecordFactory, populate


@pytest.fixture
def archive(repository, manifest) -> ArchiveManager:
    return ArchiveManager(repository, manifest)


async def _snapshot(repository) -> dict:
    return {
        "profile": await repository.get_profile(),
        **{c: await repository.get(c) for c in Collection if c is not Collection.PROFILE},
        "metadata": await repository.metadata(),
        "trash": await repository.trash(),
        "queue": await repository.queue.all(),
    }


class TestArchive:
    @pytest.mark.asyncio
    async def test_archive_clears_primary(self, repository, archive, kv_store):
        await populate(repository, "A")

        assert await archive.archive("A") is True

        assert await repository.exists() is False
        assert repository.current_tenant_id is None
        assert await archive.archived_exists("A") is True
        primary = [k for k in kv_store.snapshot() if k.startswith("local_repo:")]
        assert set(primary) <= {repository.keys.event_log, repository.keys.sync_manifest}

    @pytest.mark.asyncio
    async def test_archive_without_profile_is_noop(self, repository, archive):
        assert await archive.archive("A") is False
        assert await archive.archived_exists("A") is False

    @pytest.mark.asyncio
    async def test_archive_other_tenant_rejected(self, repository, archive):
        await populate(repository, "A")

        with pytest.raises(ValueError):
            await archive.archive("B")

        assert repository.current_tenant_id == "A"

    @pytest.mark.asyncio
    async def test_archive_overwrites_previous_archive(self, repository, archive):
        await populate(repository, "A", campaigns=2)
        await archive.archive("A")
        await archive.restore("A")
        await repository.delete(Collection.CAMPAIGNS, "A-c0")
        await repository.delete(Collection.CAMPAIGNS, "A-c1")

        await archive.archive("A")
        await archive.restore("A")

        assert await repository.get(Collection.CAMPAIGNS) == []


class TestRestore:
    @pytest.mark.asyncio
    async def test_round_trip(self, repository, archive):
        await populate(repository, "A", rewards=3, campaigns=2, customers=2)
        await repository.delete(Collection.REWARDS, "A-r2")
        before = await _snapshot(repository)

        await archive.archive("A")
        await archive.restore("A")

        assert await _snapshot(repository) == before
        assert repository.current_tenant_id == "A"

    @pytest.mark.asyncio
    async def test_restore_missing_archive(self, archive):
        with pytest.raises(ArchiveNotFoundError) as exc_info:
            await archive.restore("Z")
        assert exc_info.value.tenant_id == "Z"

    @pytest.mark.asyncio
    async def test_restore_refuses_other_resident(self, repository, archive):
        await populate(repository, "A")
        await archive.archive("A")
        await populate(repository, "B")

        with pytest.raises(ValueError):
            await archive.restore("A")

        assert repository.current_tenant_id == "B"

    @pytest.mark.asyncio
    async def test_restore_skips_absent_parts(self, repository, archive):
        await repository.save_profile(RecordFactory.profile("A"))
        await repository.queue.clear()
        await archive.archive("A")

        await archive.restore("A")

        assert await repository.get(Collection.CUSTOMERS) == []
        assert await repository.queue.pending_count() == 0

    @pytest.mark.asyncio
    async def test_restore_sets_manifest_baseline(self, repository, archive, manifest):
        await populate(repository, "A", rewards=2, campaigns=1)
        await archive.archive("A")

        await archive.restore("A")

        assert await manifest.expected_counts() == {
            Collection.REWARDS: 2,
            Collection.CAMPAIGNS: 1,
        }

    @pytest.mark.asyncio
    async def test_tenants_isolated(self, repository, archive):
        await populate(repository, "A", rewards=1)
        await archive.archive("A")
        await populate(repository, "B", rewards=4)
        await archive.archive("B")

        await archive.restore("A")

        assert [r.id for r in await repository.get(Collection.REWARDS)] == ["A-r0"]


class TestMaintenance:
    @pytest.mark.asyncio
    async def test_list_archives(self, repository, archive):
        for tenant_id in ("B", "A"):
            await populate(repository, tenant_id)
            await archive.archive(tenant_id)

        assert await archive.list_archives() == ["A", "B"]

    @pytest.mark.asyncio
    async def test_delete_archive_leaves_other_tenants(self, repository, archive):
        await populate(repository, "A")
        await archive.archive("A")
        await populate(repository, "A:B")
        await archive.archive("A:B")

        removed = await archive.delete_archive("A")

        assert removed > 0
        assert await archive.archived_exists("A") is False
        assert await archive.archived_exists("A:B") is True
        assert await archive.list_archives() == ["A:B"]
